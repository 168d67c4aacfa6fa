import json
from typing import Annotated, List

from fastapi import Request
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    app_name: str = Field(default="Coupon Dispenser", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5000, alias="PORT")
    database_url: str = Field(default="sqlite:///./coupons.db", alias="DATABASE_URL")
    cors_origin: str = Field(
        default="https://coupon-app-frontend-pied.vercel.app", alias="CORS_ORIGIN"
    )
    claim_window_seconds: int = Field(default=3600, gt=0, alias="CLAIM_WINDOW_SECONDS")
    session_cookie_name: str = Field(default="user_session", alias="SESSION_COOKIE_NAME")
    cookie_secure: bool = Field(default=False, alias="COOKIE_SECURE")
    cookie_samesite: str = Field(default="lax", alias="COOKIE_SAMESITE")
    trust_forwarded_for: bool = Field(default=False, alias="TRUST_FORWARDED_FOR")
    # SEED_COUPONS acepta "A1,B2" o JSON '["A1","B2"]'
    seed_coupons: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["DISCOUNT10", "SAVE20", "OFFER30", "DEAL40"],
        alias="SEED_COUPONS",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("seed_coupons", mode="before")
    @classmethod
    def _split_seed_coupons(cls, v):
        if not isinstance(v, str):
            return v
        raw = v.strip()
        if raw.startswith("["):
            return json.loads(raw)
        return [c.strip() for c in raw.split(",") if c.strip()]

    @property
    def claim_window_ms(self) -> int:
        return self.claim_window_seconds * 1000


# Dependencia FastAPI: la app guarda sus settings en app.state
def get_settings(request: Request) -> Settings:
    return request.app.state.settings
