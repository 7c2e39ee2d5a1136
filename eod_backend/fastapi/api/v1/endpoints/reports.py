"""
Daily report API endpoints.

This module provides REST API endpoints for end-of-day reports: validation
preview, create, list, detail, update, admin status changes, deletion and
the monthly export. Every write clears the analytics cache.
"""

import logging
from uuid import UUID
from typing import Optional
from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from eod_backend.fastapi.core.cache import TTLCache, get_analytics_cache
from eod_backend.fastapi.core.init_settings import global_settings
from eod_backend.fastapi.dependencies.database import get_sync_db
from eod_backend.fastapi.models.daily_report import DailyReport, ReportStatus
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.schemas.report import (
    ReportCreate,
    ReportListResponse,
    ReportPreview,
    ReportPreviewRequest,
    ReportRead,
    ReportStatusUpdate,
    ReportUpdate,
    ReportWithDetails,
)
from eod_backend.fastapi.crud import report as report_crud
from eod_backend.fastapi.crud import user as user_crud
from eod_backend.fastapi.crud import venue as venue_crud
from eod_backend.fastapi.services.export import EXPORT_FORMATS, build_month_export, month_bounds
from eod_backend.fastapi.services.notifications import notify_report_submitted, unique_recipients
from eod_backend.security.dependencies import RequireAdmin, RequireAnyAuth

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_details(report: DailyReport) -> ReportWithDetails:
    return ReportWithDetails.model_validate(report_crud.report_with_details(report), from_attributes=True)


def _get_visible_report(db: Session, report_id: UUID, current_user: User) -> DailyReport:
    report = report_crud.get_report(db, report_id)
    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report with ID {report_id} not found"
        )
    if not current_user.is_admin and report.created_by != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own reports"
        )
    return report


def _queue_submission_email(
    background_tasks: BackgroundTasks,
    db: Session,
    report: DailyReport,
    submitted_by: User
) -> None:
    recipients = unique_recipients(
        [admin.email for admin in user_crud.get_admins(db)],
        global_settings.notification_emails,
    )
    background_tasks.add_task(
        notify_report_submitted,
        recipients,
        report.venue.name,
        report.for_date,
        submitted_by.display_name or submitted_by.email,
        report_crud.submission_summary(report),
    )


@router.post(
    "/validate",
    response_model=ReportPreview,
    summary="Validate Report",
    description="Run the business rules and compute derived values without saving."
)
async def validate_report(
    *,
    db: Session = Depends(get_sync_db),
    report_in: ReportPreviewRequest,
    current_user: User = RequireAnyAuth
) -> ReportPreview:
    """
    Preview a report.

    Returns every validation error at once together with the derived values
    (total service, card, cash, delivery income, gross/net revenue, expected
    cash and reconciliation difference). The previous day's cash is looked up
    when venue and date are given.
    """
    return ReportPreview.model_validate(report_crud.preview_report(db, report_in, current_user))


@router.get(
    "/export",
    summary="Export Month",
    description="Download approved and locked reports of a venue for one month as CSV or XLSX."
)
async def export_reports(
    *,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin,
    venue_id: UUID = Query(..., description="Venue to export"),
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    format: str = Query("csv", pattern="^(csv|xlsx)$", description="csv or xlsx")
):
    venue = venue_crud.get_venue(db, venue_id)
    if not venue:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Venue with ID {venue_id} not found"
        )

    start_date, end_date = month_bounds(year, month)
    reports = report_crud.list_finalized_reports(db, venue_id, start_date, end_date)
    filename, content = build_month_export(reports, venue.name, venue.slug, year, month, format)

    return Response(
        content=content,
        media_type=EXPORT_FORMATS[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post(
    "",
    response_model=ReportWithDetails,
    status_code=status.HTTP_201_CREATED,
    summary="Create Report",
    description="Create a daily report as a draft, or submit it directly."
)
async def create_report(
    *,
    db: Session = Depends(get_sync_db),
    report_in: ReportCreate,
    background_tasks: BackgroundTasks,
    cache: TTLCache = Depends(get_analytics_cache),
    current_user: User = RequireAnyAuth
) -> ReportWithDetails:
    """
    Create a new daily report.

    - **Staff** may only report for venues assigned to them
    - One report per venue and day (409 on duplicates)
    - All business-rule errors are returned together (422)
    - Submitted reports are approved at once and admins are notified
    """
    try:
        report = report_crud.create_report(db, report_in, current_user)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Failed to create report")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create report: {str(e)}"
        )

    cache.clear()
    if report_in.status == ReportStatus.SUBMITTED.value:
        _queue_submission_email(background_tasks, db, report, current_user)
    return _to_details(report)


@router.get(
    "",
    response_model=ReportListResponse,
    summary="List Reports",
    description="Paginated list of reports with optional filters."
)
async def list_reports(
    *,
    db: Session = Depends(get_sync_db),
    current_user: User = RequireAnyAuth,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    venue_id: Optional[UUID] = Query(None, description="Filter by venue"),
    status_filter: Optional[ReportStatus] = Query(None, alias="status", description="Filter by status"),
    start_date: Optional[date] = Query(None, description="Reports from this date"),
    end_date: Optional[date] = Query(None, description="Reports until this date"),
    order_by: str = Query("date_desc", pattern="^(date_desc|date_asc)$")
) -> ReportListResponse:
    """
    - **Admins** see all reports
    - **Staff** see only reports they created
    """
    created_by = None if current_user.is_admin else current_user.id
    status_value = status_filter.value if status_filter else None

    reports = report_crud.list_reports(
        db,
        skip=skip,
        limit=limit,
        venue_id=venue_id,
        created_by=created_by,
        status_filter=status_value,
        start_date=start_date,
        end_date=end_date,
        order_by=order_by
    )
    total_count = report_crud.count_reports(
        db,
        venue_id=venue_id,
        created_by=created_by,
        status_filter=status_value,
        start_date=start_date,
        end_date=end_date
    )

    return ReportListResponse(
        reports=[ReportRead.model_validate(report) for report in reports],
        total_count=total_count,
        skip=skip,
        limit=limit,
        has_next=skip + len(reports) < total_count
    )


@router.get("/{report_id}", response_model=ReportWithDetails, summary="Get Report")
async def get_report(
    *,
    db: Session = Depends(get_sync_db),
    report_id: UUID,
    current_user: User = RequireAnyAuth
) -> ReportWithDetails:
    """Report with venue, creator and line items. Staff see only their own."""
    return _to_details(_get_visible_report(db, report_id, current_user))


@router.put("/{report_id}", response_model=ReportWithDetails, summary="Update Report")
async def update_report(
    *,
    db: Session = Depends(get_sync_db),
    report_id: UUID,
    report_update: ReportUpdate,
    background_tasks: BackgroundTasks,
    cache: TTLCache = Depends(get_analytics_cache),
    current_user: User = RequireAnyAuth
) -> ReportWithDetails:
    """
    Update a report.

    - **Staff** may edit their own reports while they are drafts
    - **Admins** may edit any report at any status
    - Line item lists that are sent replace all stored rows of that kind
    - Derived values and the next day's carryover are recomputed
    """
    report = _get_visible_report(db, report_id, current_user)
    was_draft = report.status == ReportStatus.DRAFT.value

    try:
        report = report_crud.update_report(db, report, report_update, current_user)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Failed to update report %s", report_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update report: {str(e)}"
        )

    cache.clear()
    if was_draft and report_update.status == ReportStatus.SUBMITTED.value:
        _queue_submission_email(background_tasks, db, report, current_user)
    return _to_details(report)


@router.patch("/{report_id}/status", response_model=ReportWithDetails, summary="Set Report Status")
async def set_report_status(
    *,
    db: Session = Depends(get_sync_db),
    report_id: UUID,
    status_in: ReportStatusUpdate,
    cache: TTLCache = Depends(get_analytics_cache),
    current_admin: User = RequireAdmin
) -> ReportWithDetails:
    """Set any status (draft, submitted, approved, locked). Admins only."""
    report = _get_visible_report(db, report_id, current_admin)
    report = report_crud.set_report_status(db, report, status_in.status, current_admin)
    cache.clear()
    return _to_details(report)


@router.delete("/{report_id}", summary="Delete Report")
async def delete_report(
    *,
    db: Session = Depends(get_sync_db),
    report_id: UUID,
    cache: TTLCache = Depends(get_analytics_cache),
    current_admin: User = RequireAdmin
):
    """
    Delete a report and its line items.

    - **Only admins** can delete reports
    - Returns 404 if the report doesn't exist
    """
    report = _get_visible_report(db, report_id, current_admin)
    report_crud.delete_report(db, report)
    cache.clear()
    return {"message": "Report deleted successfully", "report_id": str(report_id)}
