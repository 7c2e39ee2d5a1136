"""
Database engine, session factory and FastAPI session dependency.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from eod_backend.fastapi.core.init_settings import global_settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    global_settings.DB_URL,
    connect_args=_connect_args(global_settings.DB_URL),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class Base(DeclarativeBase):
    pass


def get_sync_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables registered on Base.metadata."""
    # Import models so they're registered with Base.metadata
    from eod_backend.fastapi import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))
