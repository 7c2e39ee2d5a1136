"""
Period analytics over daily reports.

Totals cover every report in the range whatever its status; the report
counts split them into approved (approved + locked) and pending (draft +
submitted).
"""

from uuid import UUID
from typing import Any, Dict, Optional
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import and_, case, func

from eod_backend.fastapi.models.daily_report import DailyReport, FINALIZED_STATUSES, PENDING_STATUSES
from eod_backend.fastapi.services.reconciliation import ZERO, quantize_money


def _money(value: Any) -> Decimal:
    if value is None:
        return quantize_money(ZERO)
    return quantize_money(Decimal(str(value)))


def get_period_analytics(
    db: Session,
    start_date: date,
    end_date: date,
    venue_id: Optional[UUID] = None
) -> Dict[str, Any]:
    """
    Aggregate reports between two dates (inclusive).

    Args:
        db: Database session
        start_date: First day of the period
        end_date: Last day of the period
        venue_id: Restrict to one venue (optional)

    Returns:
        Dictionary matching ``AnalyticsResponse``. ``daily_data`` holds one
        entry per calendar day of the period, zero-filled where nothing was
        reported. Averages divide by the number of days with gross sales
        above zero (at least one).
    """
    query = db.query(DailyReport).filter(
        and_(
            DailyReport.for_date >= start_date,
            DailyReport.for_date <= end_date
        )
    )
    if venue_id:
        query = query.filter(DailyReport.venue_id == venue_id)

    rows = (
        query.with_entities(
            DailyReport.for_date.label("day"),
            func.sum(DailyReport.total_sale_gross).label("gross_sales"),
            func.sum(DailyReport.withdrawal).label("withdrawals"),
            func.sum(DailyReport.tips_cash + DailyReport.tips_card).label("tips"),
            func.sum(DailyReport.voids).label("voids"),
            func.sum(DailyReport.strata_loss).label("loss"),
            func.sum(DailyReport.gross_revenue).label("gross_revenue"),
            func.sum(DailyReport.net_revenue).label("net_revenue"),
            func.count(DailyReport.id).label("reports"),
            func.sum(case((DailyReport.status.in_(FINALIZED_STATUSES), 1), else_=0)).label("approved"),
            func.sum(case((DailyReport.status.in_(PENDING_STATUSES), 1), else_=0)).label("pending"),
        )
        .group_by(DailyReport.for_date)
        .all()
    )

    daily = {}
    current = start_date
    while current <= end_date:
        daily[current] = {
            "date": current,
            "gross_sales": _money(None),
            "withdrawals": _money(None),
            "tips": _money(None),
            "voids": _money(None),
            "loss": _money(None),
            "gross_revenue": _money(None),
            "net_revenue": _money(None),
            "reports": 0,
        }
        current += timedelta(days=1)

    approved_reports = 0
    pending_reports = 0
    for row in rows:
        entry = daily.get(row.day)
        if entry is None:
            continue
        for key in ("gross_sales", "withdrawals", "tips", "voids", "loss", "gross_revenue", "net_revenue"):
            entry[key] = _money(getattr(row, key))
        entry["reports"] = int(row.reports or 0)
        approved_reports += int(row.approved or 0)
        pending_reports += int(row.pending or 0)

    days = list(daily.values())
    totals = {
        key: sum((day[key] for day in days), _money(None))
        for key in ("gross_sales", "withdrawals", "tips", "voids", "loss", "gross_revenue", "net_revenue")
    }
    days_with_data = sum(1 for day in days if day["gross_sales"] > 0)
    divisor = Decimal(max(days_with_data, 1))

    return {
        "start_date": start_date,
        "end_date": end_date,
        "venue_id": venue_id,
        "total_gross_sales": totals["gross_sales"],
        "total_withdrawals": totals["withdrawals"],
        "total_tips": totals["tips"],
        "total_voids": totals["voids"],
        "total_loss": totals["loss"],
        "total_gross_revenue": totals["gross_revenue"],
        "total_net_revenue": totals["net_revenue"],
        "total_reports": sum(day["reports"] for day in days),
        "approved_reports": approved_reports,
        "pending_reports": pending_reports,
        "days_with_data": days_with_data,
        "average_daily_sales": quantize_money(totals["gross_sales"] / divisor),
        "average_daily_withdrawals": quantize_money(totals["withdrawals"] / divisor),
        "average_daily_gross_revenue": quantize_money(totals["gross_revenue"] / divisor),
        "average_daily_net_revenue": quantize_money(totals["net_revenue"] / divisor),
        "daily_data": days,
    }
