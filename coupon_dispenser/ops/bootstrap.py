# coupon_dispenser/ops/bootstrap.py
from __future__ import annotations

import logging
import sys
from typing import Iterable

from sqlalchemy import func, inspect, select
from sqlalchemy.engine import Engine

from ..db import Base
from ..models.coupon import Claim, Coupon

logger = logging.getLogger(__name__)


def init_store(engine: Engine, seed_codes: Iterable[str]) -> int:
    """
    Crea tablas faltantes. Siembra cupones SOLO si la tabla `coupons` no
    existía: un cupón borrado (entregado) no vuelve a emitirse tras reiniciar.
    Devuelve cuántos cupones se sembraron.
    """
    fresh = Coupon.__tablename__ not in inspect(engine).get_table_names()
    Base.metadata.create_all(bind=engine, tables=[Coupon.__table__, Claim.__table__])
    logger.info("tables ready: %s, %s", Coupon.__tablename__, Claim.__tablename__)

    if not fresh:
        return 0

    # dedup conservando el orden (el orden define el FIFO de entrega)
    codes = list(dict.fromkeys(c.strip() for c in seed_codes if c and c.strip()))
    with engine.begin() as conn:
        for code in codes:
            conn.execute(Coupon.__table__.insert().values(code=code))
    logger.info("seeded %d coupons: %s", len(codes), ", ".join(codes))
    return len(codes)


def coupons_left(engine: Engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(Coupon.__table__)).scalar_one()


def main() -> int:
    from ..core.config import Settings
    from ..core.log import configure_logging
    from ..db import make_engine

    settings = Settings()
    configure_logging(settings.log_level)
    engine = make_engine(settings.database_url)
    try:
        seeded = init_store(engine, settings.seed_coupons)
        logger.info(
            "[bootstrap] db=%s seeded=%d coupons_left=%d",
            settings.database_url,
            seeded,
            coupons_left(engine),
        )
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
