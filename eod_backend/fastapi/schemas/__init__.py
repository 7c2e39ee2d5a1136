from eod_backend.fastapi.schemas.user import (
    UserBase,
    UserSignup,
    UserCreate,
    UserUpdate,
    UserApproval,
    UserRead,
    UserLogin,
    UserToken,
    UserTokenResponse,
    UserSignupResponse,
    UserListResponse,
    UserDeleteResponse,
)
from eod_backend.fastapi.schemas.venue import (
    VenueBase,
    VenueCreate,
    VenueUpdate,
    VenueRead,
    VenueListResponse,
)
from eod_backend.fastapi.schemas.report import (
    LineItemInput,
    LineItemRead,
    ReportAmounts,
    ReportCreate,
    ReportUpdate,
    ReportStatusUpdate,
    ReportRead,
    ReportWithDetails,
    ReportListResponse,
    ReportPreview,
    ReportPreviewRequest,
)
from eod_backend.fastapi.schemas.analytics import DailyAnalytics, AnalyticsResponse
