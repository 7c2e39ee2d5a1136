from fastapi import FastAPI
from eod_backend.fastapi.api.v1.endpoints import analytics, auth, reports, users, venues


def setup_routers(app: FastAPI):
    # Authentication routes
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])

    # User and venue management routes
    app.include_router(users.router, prefix="/api/v1/users", tags=["user-management"])
    app.include_router(venues.router, prefix="/api/v1/venues", tags=["venue-management"])

    # Daily report routes
    app.include_router(reports.router, prefix="/api/v1/reports", tags=["daily-reports"])

    # Analytics routes
    app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["analytics"])
