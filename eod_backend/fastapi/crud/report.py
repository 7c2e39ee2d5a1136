"""
Daily report CRUD operations.

This module provides Create, Read, Update, Delete operations for daily
reports. Every save runs in one transaction that replaces line items,
refreshes the mirrored line item sums, recomputes the derived snapshot and
then recomputes the following day's report, whose carryover depends on the
saved day.
"""

import logging
from uuid import UUID
from typing import List, Optional, Dict, Any, Iterable
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy import and_, desc, asc
from fastapi import HTTPException, status

from eod_backend.fastapi.models.daily_report import DailyReport, ReportStatus, FINALIZED_STATUSES
from eod_backend.fastapi.models.line_items import LINE_ITEM_KINDS
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.models.venue import Venue
from eod_backend.fastapi.schemas.report import (
    LINE_ITEM_FIELDS,
    REPORT_AMOUNT_FIELDS,
    ReportCreate,
    ReportPreviewRequest,
    ReportUpdate,
    report_fields,
)
from eod_backend.fastapi.services.reconciliation import (
    ChildTotals,
    DerivedValues,
    ZERO,
    channel_total,
    compute_derived,
    quantize_money,
    sum_line_items,
    validate,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _with_relations(query):
    return query.options(
        joinedload(DailyReport.venue),
        joinedload(DailyReport.creator),
        selectinload(DailyReport.withdrawals),
        selectinload(DailyReport.representacja_items),
        selectinload(DailyReport.service_kwotowy_items),
        selectinload(DailyReport.strata_items),
    )


def get_report(db: Session, report_id: UUID) -> Optional[DailyReport]:
    """
    Get a report by ID with its venue, creator and line items loaded.

    Args:
        db: Database session
        report_id: Report unique identifier

    Returns:
        DailyReport instance if found, None otherwise
    """
    return _with_relations(db.query(DailyReport)).filter(DailyReport.id == report_id).first()


def get_report_for_day(db: Session, venue_id: UUID, for_date: date) -> Optional[DailyReport]:
    return (
        db.query(DailyReport)
        .filter(and_(DailyReport.venue_id == venue_id, DailyReport.for_date == for_date))
        .first()
    )


def get_previous_day_report(db: Session, venue_id: UUID, for_date: date) -> Optional[DailyReport]:
    """Report for the previous calendar day at the same venue, if one exists."""
    return get_report_for_day(db, venue_id, for_date - timedelta(days=1))


def previous_day_cash(db: Session, venue_id: Optional[UUID], for_date: Optional[date]) -> Decimal:
    """
    Carryover into ``for_date``: the cash left in the drawer the day before.

    Returns zero when venue or date is unknown or the previous calendar day
    has no report. A gap of more than one day does not carry over.
    """
    if venue_id is None or for_date is None:
        return ZERO
    previous = get_previous_day_report(db, venue_id, for_date)
    if previous is None or previous.left_in_drawer is None:
        return ZERO
    return Decimal(previous.left_in_drawer)


def child_totals(report: DailyReport) -> ChildTotals:
    """Line item totals of a report, read from its loaded child rows."""
    return ChildTotals(
        withdrawals_sum=sum_line_items(report.withdrawals),
        service_kwotowy_sum=sum_line_items(report.service_kwotowy_items),
        representacja_1_sum=sum_line_items(report.representacja_items),
        strata_sum=sum_line_items(report.strata_items),
    )


def sync_line_item_totals(report: DailyReport) -> ChildTotals:
    """
    Write the mirrored line item sums onto the report.

    ``withdrawal``, ``representacja``, ``serwis`` and ``strata_loss`` always
    equal the sum of their child rows after this call.
    """
    totals = child_totals(report)
    report.withdrawal = quantize_money(totals.withdrawals_sum)
    report.representacja = quantize_money(totals.representacja_1_sum)
    report.serwis = quantize_money(totals.service_kwotowy_sum)
    report.strata_loss = quantize_money(totals.strata_sum)
    return totals


def apply_derived(db: Session, report: DailyReport) -> DerivedValues:
    """
    Recompute mirrored sums and the derived snapshot of a report in place.

    Args:
        db: Database session (used for the previous-day carryover lookup)
        report: Report to refresh

    Returns:
        The full precision derived values
    """
    totals = sync_line_item_totals(report)
    carryover = previous_day_cash(db, report.venue_id, report.for_date)
    derived = compute_derived(report, totals, carryover)
    for field, value in derived.snapshot().items():
        setattr(report, field, value)
    return derived


def recompute_following_day(db: Session, venue_id: UUID, for_date: date) -> Optional[DailyReport]:
    """
    Refresh the report of the day after ``for_date`` at the same venue.

    The caller must have flushed its changes so the carryover lookup sees them.
    """
    following = get_report_for_day(db, venue_id, for_date + timedelta(days=1))
    if following is None:
        return None
    apply_derived(db, following)
    logger.info("Recomputed carryover for report %s (%s)", following.id, following.for_date)
    return following


def _keep_line_item(item) -> bool:
    return item.amount > 0 or bool(item.reason and item.reason.strip())


def replace_line_items(report: DailyReport, kind: str, items: Iterable) -> None:
    """
    Replace every line item of one kind on a report.

    Entries with neither a positive amount nor a reason are dropped.
    """
    model, relationship_name, _ = LINE_ITEM_KINDS[kind]
    rows = [
        model(amount=item.amount, reason=(item.reason or "").strip() or None)
        for item in items
        if _keep_line_item(item)
    ]
    setattr(report, relationship_name, rows)


def _raise_if_invalid(fields: Dict[str, Any]) -> None:
    result = validate(fields)
    if not result.is_valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "Report validation failed",
                "errors": result.as_list(),
            }
        )


def _check_venue(db: Session, venue_id: UUID, current_user: User) -> Venue:
    venue = db.query(Venue).filter(Venue.id == venue_id).first()
    if not venue:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Venue with ID {venue_id} not found"
        )
    if not current_user.can_access_venue(venue.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this venue"
        )
    return venue


def _check_unique_day(db: Session, venue_id: UUID, for_date: date, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(DailyReport).filter(
        and_(DailyReport.venue_id == venue_id, DailyReport.for_date == for_date)
    )
    if exclude_id is not None:
        query = query.filter(DailyReport.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A report for {for_date} already exists at this venue"
        )


def _mark_submitted(report: DailyReport, user: User) -> None:
    # Submitted reports are approved on the spot
    now = _now()
    report.status = ReportStatus.APPROVED.value
    report.submitted_at = now
    report.approved_at = now
    report.approved_by = user.id


def _commit(db: Session, flush_only: bool = False) -> None:
    try:
        if flush_only:
            db.flush()
        else:
            db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A report for this venue and date already exists"
        )
    except DataError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="An amount is outside the range that can be stored"
        )


def create_report(db: Session, report_data: ReportCreate, current_user: User) -> DailyReport:
    """
    Create a report as a draft or submit it directly.

    ``total_sale_gross`` defaults to the sum of payment channels when omitted.

    Args:
        db: Database session
        report_data: Report creation data with line items
        current_user: Creator of the report

    Returns:
        Created report with derived values

    Raises:
        HTTPException: 404 unknown venue, 403 venue not accessible, 409 a
            report for the venue and date exists, 422 validation failed
    """
    venue = _check_venue(db, report_data.venue_id, current_user)
    if not venue.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Venue '{venue.name}' is not accepting reports"
        )
    _check_unique_day(db, report_data.venue_id, report_data.for_date)

    fields = report_fields(report_data)
    if fields.get("total_sale_gross") is None:
        fields["total_sale_gross"] = quantize_money(channel_total(fields))
    _raise_if_invalid(fields)

    db_report = DailyReport(created_by=current_user.id, status=ReportStatus.DRAFT.value, **fields)
    for kind in LINE_ITEM_FIELDS:
        replace_line_items(db_report, kind, getattr(report_data, kind))
    if report_data.status == ReportStatus.SUBMITTED.value:
        _mark_submitted(db_report, current_user)

    db.add(db_report)
    apply_derived(db, db_report)
    _commit(db, flush_only=True)
    recompute_following_day(db, db_report.venue_id, db_report.for_date)
    _commit(db)

    logger.info(
        "Report %s created for venue %s on %s by %s (status=%s)",
        db_report.id, db_report.venue_id, db_report.for_date, current_user.email, db_report.status
    )
    return get_report(db, db_report.id)


def update_report(
    db: Session,
    db_report: DailyReport,
    report_update: ReportUpdate,
    current_user: User
) -> DailyReport:
    """
    Update a report and replace any line item kinds that were sent.

    Staff may only update their own drafts; admins may update any report.

    Raises:
        HTTPException: 403 not allowed, 409 venue/date clash, 422 validation failed
    """
    if not current_user.is_admin:
        if db_report.created_by != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit your own reports"
            )
        if db_report.status != ReportStatus.DRAFT.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only draft reports can be edited"
            )

    old_venue_id, old_for_date = db_report.venue_id, db_report.for_date
    update_data = report_fields(report_update, exclude_unset=True)
    # Explicit nulls on amounts mean "keep the stored value"
    update_data = {
        field: value for field, value in update_data.items()
        if value is not None or field in ("notes", "representation_note")
    }

    new_venue_id = update_data.get("venue_id", old_venue_id)
    new_for_date = update_data.get("for_date", old_for_date)
    if new_venue_id != old_venue_id:
        _check_venue(db, new_venue_id, current_user)
    if (new_venue_id, new_for_date) != (old_venue_id, old_for_date):
        _check_unique_day(db, new_venue_id, new_for_date, exclude_id=db_report.id)

    merged = {
        "venue_id": new_venue_id,
        "for_date": new_for_date,
        "total_sale_gross": update_data.get("total_sale_gross", db_report.total_sale_gross),
    }
    for field in REPORT_AMOUNT_FIELDS:
        merged[field] = update_data.get(field, getattr(db_report, field))
    _raise_if_invalid(merged)

    for field, value in update_data.items():
        setattr(db_report, field, value)
    for kind in LINE_ITEM_FIELDS:
        items = getattr(report_update, kind)
        if items is not None:
            replace_line_items(db_report, kind, items)

    if report_update.status == ReportStatus.SUBMITTED.value and db_report.status == ReportStatus.DRAFT.value:
        _mark_submitted(db_report, current_user)
    elif report_update.status == ReportStatus.DRAFT.value and current_user.is_admin:
        db_report.status = ReportStatus.DRAFT.value

    apply_derived(db, db_report)
    _commit(db, flush_only=True)
    recompute_following_day(db, db_report.venue_id, db_report.for_date)
    if (new_venue_id, new_for_date) != (old_venue_id, old_for_date):
        recompute_following_day(db, old_venue_id, old_for_date)
    _commit(db)

    logger.info("Report %s updated by %s (status=%s)", db_report.id, current_user.email, db_report.status)
    return get_report(db, db_report.id)


def set_report_status(db: Session, db_report: DailyReport, new_status: str, admin: User) -> DailyReport:
    """
    Set any status on a report (admin only), stamping the matching timestamps.

    Args:
        db: Database session
        db_report: Report to change
        new_status: draft, submitted, approved or locked
        admin: Admin performing the change

    Returns:
        Updated report
    """
    now = _now()
    new_status = ReportStatus(new_status).value
    db_report.status = new_status

    if new_status == ReportStatus.SUBMITTED.value and db_report.submitted_at is None:
        db_report.submitted_at = now
    elif new_status == ReportStatus.APPROVED.value:
        db_report.approved_at = now
        db_report.approved_by = admin.id
    elif new_status == ReportStatus.LOCKED.value:
        db_report.locked_at = now
        if db_report.approved_at is None:
            db_report.approved_at = now
            db_report.approved_by = admin.id

    db.commit()
    logger.info("Report %s status set to %s by %s", db_report.id, new_status, admin.email)
    return get_report(db, db_report.id)


def delete_report(db: Session, db_report: DailyReport) -> None:
    """
    Delete a report together with its line items.

    The following day's carryover is recomputed, falling back to zero.
    """
    venue_id, for_date, report_id = db_report.venue_id, db_report.for_date, db_report.id
    db.delete(db_report)
    db.flush()
    recompute_following_day(db, venue_id, for_date)
    db.commit()
    logger.info("Report %s (%s, venue %s) deleted", report_id, for_date, venue_id)


def _filtered_query(
    db: Session,
    venue_id: Optional[UUID] = None,
    created_by: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = db.query(DailyReport)
    if venue_id:
        query = query.filter(DailyReport.venue_id == venue_id)
    if created_by:
        query = query.filter(DailyReport.created_by == created_by)
    if status_filter:
        query = query.filter(DailyReport.status == status_filter)
    if start_date:
        query = query.filter(DailyReport.for_date >= start_date)
    if end_date:
        query = query.filter(DailyReport.for_date <= end_date)
    return query


def list_reports(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    venue_id: Optional[UUID] = None,
    created_by: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    order_by: str = "date_desc"
) -> List[DailyReport]:
    """
    Get reports with filtering and pagination.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return
        venue_id: Filter by venue
        created_by: Filter by creator (used to scope staff to their own reports)
        status_filter: Filter by status
        start_date: Filter reports from this date
        end_date: Filter reports until this date
        order_by: date_desc or date_asc

    Returns:
        List of reports
    """
    query = _filtered_query(db, venue_id, created_by, status_filter, start_date, end_date)
    if order_by == "date_asc":
        query = query.order_by(asc(DailyReport.for_date), asc(DailyReport.created_at))
    else:
        query = query.order_by(desc(DailyReport.for_date), desc(DailyReport.created_at))
    return query.offset(skip).limit(limit).all()


def count_reports(
    db: Session,
    venue_id: Optional[UUID] = None,
    created_by: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> int:
    return _filtered_query(db, venue_id, created_by, status_filter, start_date, end_date).count()


def transfer_reports(db: Session, from_user_id: UUID, to_user_id: UUID) -> int:
    """
    Hand every report created or approved by one user over to another.

    Does not commit; user deletion commits the transfer together with the
    deletion.

    Returns:
        Number of reports whose creator changed
    """
    moved = (
        db.query(DailyReport)
        .filter(DailyReport.created_by == from_user_id)
        .update({DailyReport.created_by: to_user_id}, synchronize_session="fetch")
    )
    (
        db.query(DailyReport)
        .filter(DailyReport.approved_by == from_user_id)
        .update({DailyReport.approved_by: to_user_id}, synchronize_session="fetch")
    )
    return moved


def preview_report(db: Session, report_data: ReportPreviewRequest, current_user: User) -> Dict[str, Any]:
    """
    Validate an unsaved report and compute its derived values.

    The carryover is looked up when venue and date are given; the caller
    must have access to that venue.
    """
    if report_data.venue_id is not None:
        _check_venue(db, report_data.venue_id, current_user)
    fields = report_fields(report_data)
    if fields.get("total_sale_gross") is None:
        fields["total_sale_gross"] = quantize_money(channel_total(fields))

    totals = ChildTotals(
        withdrawals_sum=sum_line_items(report_data.withdrawals),
        service_kwotowy_sum=sum_line_items(report_data.service_kwotowy),
        representacja_1_sum=sum_line_items(report_data.representacja_1),
        strata_sum=sum_line_items(report_data.strata),
    )
    carryover = previous_day_cash(db, report_data.venue_id, report_data.for_date)
    result = validate(fields)
    derived = compute_derived(fields, totals, carryover)

    return {
        "is_valid": result.is_valid,
        "errors": result.as_list(),
        "total_payments": quantize_money(channel_total(fields)),
        "derived": derived.quantized(),
    }


def report_with_details(report: DailyReport) -> Dict[str, Any]:
    """Flatten a report with its venue, creator and line items for the API."""
    data = {column.name: getattr(report, column.name) for column in DailyReport.__table__.columns}
    data.update({
        "venue_name": report.venue.name if report.venue else None,
        "created_by_email": report.creator.email if report.creator else None,
        "created_by_name": report.creator.display_name if report.creator else None,
        "has_discrepancy": report.has_discrepancy,
    })
    for kind, (_, relationship_name, _) in LINE_ITEM_KINDS.items():
        data[kind] = getattr(report, relationship_name)
    return data


def list_finalized_reports(db: Session, venue_id: UUID, start_date: date, end_date: date) -> List[DailyReport]:
    """Approved and locked reports of a venue between two dates, oldest first."""
    return (
        db.query(DailyReport)
        .filter(
            and_(
                DailyReport.venue_id == venue_id,
                DailyReport.for_date >= start_date,
                DailyReport.for_date <= end_date,
                DailyReport.status.in_(FINALIZED_STATUSES),
            )
        )
        .order_by(asc(DailyReport.for_date))
        .all()
    )


def submission_summary(report: DailyReport) -> Dict[str, Decimal]:
    """Mini calculations of a saved report for the submission email."""
    derived = compute_derived(report, child_totals(report), report.cash_previous_day).quantized()
    return {
        "total_sale_gross": quantize_money(Decimal(report.total_sale_gross)),
        "total_service": derived["total_service"],
        "total_card_payment": derived["total_card_payment"],
        "total_cash": derived["total_cash"],
        "total_delivery_income": derived["total_delivery_income"],
        "gross_revenue": derived["gross_revenue"],
        "net_revenue": derived["net_revenue"],
    }
