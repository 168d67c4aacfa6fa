import pytest
from fastapi.testclient import TestClient

from coupon_dispenser.core.clock import get_clock
from coupon_dispenser.core.config import Settings
from coupon_dispenser.main import create_app

T0 = 1_700_000_000_000  # epoch ms


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += round(seconds * 1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    # X-Forwarded-For simula IPs distintas desde el mismo TestClient
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'coupons.db'}",
        trust_forwarded_for=True,
        cors_origin="https://coupons.example.com",
    )


@pytest.fixture
def app(settings, clock):
    app = create_app(settings)
    app.dependency_overrides[get_clock] = lambda: clock
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
