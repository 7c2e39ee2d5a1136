"""
FastAPI application for end-of-day reporting.
"""

import logging

from fastapi import FastAPI

from eod_backend.fastapi.core.cache import TTLCache
from eod_backend.fastapi.core.init_settings import global_settings
from eod_backend.fastapi.core.lifespan import lifespan
from eod_backend.fastapi.core.middleware import setup_cors
from eod_backend.fastapi.core.routers import setup_routers

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def create_app() -> FastAPI:
    app = FastAPI(
        title=global_settings.APP_NAME,
        version=global_settings.APP_VERSION,
        description="End-of-day sales reporting and cash reconciliation for restaurant venues.",
        lifespan=lifespan
    )
    app.state.analytics_cache = TTLCache(default_ttl=global_settings.ANALYTICS_CACHE_TTL_SECONDS)

    setup_cors(app)
    setup_routers(app)

    @app.get("/health", tags=["main"])
    async def health():
        return {"status": "ok", "service": global_settings.APP_NAME, "version": global_settings.APP_VERSION}

    return app


app = create_app()
