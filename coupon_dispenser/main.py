import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings
from .core.log import configure_logging
from .db import make_engine, make_session_factory
from .ops.bootstrap import init_store
from .routers import coupon, health

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)
    engine = make_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Crea tablas faltantes y siembra en el primer arranque
        init_store(engine, settings.seed_coupons)
        logger.info("%s ready (db=%s)", settings.app_name, settings.database_url)
        try:
            yield
        finally:
            engine.dispose()
            logger.info("store handle closed")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    # Un solo origen, con cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin.rstrip("/")],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Todas las respuestas de error con forma {"message": ...}
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    app.include_router(health.router)
    app.include_router(coupon.router)
    return app


def run() -> None:
    """
    Arranque: `python -m coupon_dispenser` o el script `coupon-dispenser`.
    Con uvicorn directo usar la factory: `uvicorn coupon_dispenser.main:create_app --factory`.
    """
    import uvicorn

    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
