from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from hookrelay.config import get_settings
from hookrelay.utils.logging import get_logger

logger = get_logger(__name__)

_sync_engine: Engine | None = None
_sync_session_factory = None


def init_sync_db(database_url: str | None = None) -> None:
    """Initialize the database engine. Called once at process startup."""
    global _sync_engine, _sync_session_factory
    if _sync_engine is not None:
        return

    url = database_url or get_settings().DATABASE_URL
    if url.startswith("sqlite"):
        _sync_engine = create_engine(
            url, connect_args={"check_same_thread": False}
        )
    else:
        _sync_engine = create_engine(
            url,
            pool_size=10,
            max_overflow=10,
            pool_pre_ping=True,
        )
    _sync_session_factory = sessionmaker(bind=_sync_engine, expire_on_commit=False)
    logger.info("Database engine initialized")


def get_engine() -> Engine:
    if _sync_engine is None:
        init_sync_db()
    return _sync_engine


def close_sync_db() -> None:
    """Dispose of the database engine."""
    global _sync_engine, _sync_session_factory
    if _sync_engine:
        _sync_engine.dispose()
        logger.info("Database engine disposed")
    _sync_engine = None
    _sync_session_factory = None


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """Yield a database session with auto-commit/rollback."""
    if _sync_session_factory is None:
        init_sync_db()
    session = _sync_session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_db_health() -> bool:
    """Check if the database is reachable."""
    if _sync_engine is None:
        return False
    try:
        with _sync_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False
