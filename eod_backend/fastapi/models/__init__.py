from eod_backend.fastapi.models.venue import Venue
from eod_backend.fastapi.models.user import User, UserRole, ADMIN_ROLES, user_venues
from eod_backend.fastapi.models.daily_report import (
    DailyReport,
    ReportStatus,
    FINALIZED_STATUSES,
    PENDING_STATUSES,
)
from eod_backend.fastapi.models.line_items import (
    ReportWithdrawal,
    ReportRepresentacja1,
    ReportServiceKwotowy,
    ReportStrata,
    LINE_ITEM_KINDS,
)

__all__ = [
    "Venue",
    "User",
    "UserRole",
    "ADMIN_ROLES",
    "user_venues",
    "DailyReport",
    "ReportStatus",
    "FINALIZED_STATUSES",
    "PENDING_STATUSES",
    "ReportWithdrawal",
    "ReportRepresentacja1",
    "ReportServiceKwotowy",
    "ReportStrata",
    "LINE_ITEM_KINDS",
]
