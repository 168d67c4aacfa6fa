from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

# Base para modelos (lo importan models/*)
Base = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def make_engine(url: str) -> Engine:
    """
    Engine único por proceso (el "store handle"). Lo crea create_app y se
    libera con dispose() al apagar la app.
    """
    connect_args = {}
    if _is_sqlite(url):
        # Handlers sync corren en el threadpool de FastAPI; timeout alto (contención ligera)
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    if _is_sqlite(url):
        # PRAGMAs por conexión
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA busy_timeout=30000;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            finally:
                cur.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia FastAPI
def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
