from contextlib import contextmanager
import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..models.base import Base


logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/storefront.db")

engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None


def _ensure_sqlite_parent(database_url: str) -> None:
    # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure(database_url: Optional[str] = None) -> Engine:
    """(Re)bind the module-level engine and session factory."""
    global engine, SessionLocal
    url = database_url or DATABASE_URL
    _ensure_sqlite_parent(url)
    if engine is not None:
        engine.dispose()
    kwargs = {"future": True}
    if url.startswith("sqlite"):
        # request threads share the pool; sqlite serializes writers itself
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    logger.debug("database configured: %s", engine.url.render_as_string(hide_password=True))
    return engine


def init_db() -> None:
    from .. import models  # noqa: F401  registers tables on Base.metadata

    if engine is None:
        configure()
    Base.metadata.create_all(engine)


@contextmanager
def get_session():
    if SessionLocal is None:
        configure()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
