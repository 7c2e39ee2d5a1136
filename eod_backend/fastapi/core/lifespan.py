import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from eod_backend.fastapi.core.init_settings import global_settings
from eod_backend.fastapi.dependencies.database import init_db, SessionLocal
from eod_backend.fastapi.crud.user import count_admins, create_user
from eod_backend.fastapi.schemas.user import UserCreate

logger = logging.getLogger(__name__)


def ensure_initial_admin() -> None:
    """Create the configured initial admin when no admin or owner exists."""
    db = SessionLocal()
    try:
        admin_count = count_admins(db)
        if admin_count:
            logger.info("Found %d existing admin(s)", admin_count)
            return

        admin = create_user(db, UserCreate(
            email=global_settings.INITIAL_ADMIN_EMAIL,
            password=global_settings.INITIAL_ADMIN_PASSWORD,
            display_name="Administrator",
            role="admin",
            approved=True,
            is_active=True,
        ))
        logger.warning(
            "Created initial admin user %s with the configured default password; change it after first login",
            admin.email
        )
    except (HTTPException, SQLAlchemyError) as e:
        db.rollback()
        logger.error("Error creating initial admin: %s", e)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize the database schema
    init_db()

    ensure_initial_admin()
    logger.info("%s %s started", global_settings.APP_NAME, global_settings.APP_VERSION)

    yield

    logger.info("%s shutting down", global_settings.APP_NAME)
