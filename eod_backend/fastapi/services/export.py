"""
Monthly report export to CSV or Excel.

One row per approved or locked report of a venue in a calendar month,
oldest day first, in the column layout accounting imports.
"""

import calendar
import io
import logging
from datetime import date
from typing import Iterable, List, Tuple

import pandas as pd

from eod_backend.fastapi.models.daily_report import DailyReport

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

EXPORT_COLUMNS = [
    "date",
    "venue",
    "total_sale_gross",
    "card_1",
    "card_2",
    "cash",
    "przelew",
    "glovo",
    "uber",
    "wolt",
    "pyszne",
    "bolt",
    "total_sale_with_special_payment",
    "tips_cash",
    "tips_card",
    "withdrawal",
    "locker_withdrawal",
    "deposit",
    "left_in_drawer",
    "cash_in_envelope_after_tips",
    "total_cash_in_locker",
    "voids",
    "strata_loss",
    "serwis",
    "serwis_k",
    "company",
    "representation_note",
    "representation_amount",
    "flavour",
    "cash_previous_day",
    "calculated_cash_expected",
    "reconciliation_diff",
    "gross_revenue",
    "net_revenue",
    "status",
    "approved_at",
]

# Export column -> report attribute, where the names differ
_SOURCE_ATTRIBUTES = {
    "date": "for_date",
    "representation_amount": "representacja",
}


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def export_filename(venue_slug: str, year: int, month: int, export_format: str) -> str:
    return f"{venue_slug}-{year:04d}-{month:02d}-daily-line-items.{export_format}"


def reports_to_dataframe(reports: Iterable[DailyReport], venue_name: str) -> pd.DataFrame:
    """Build the export table; an empty month still yields the header row."""
    rows: List[dict] = []
    for report in sorted(reports, key=lambda r: r.for_date):
        row = {}
        for column in EXPORT_COLUMNS:
            if column == "venue":
                row[column] = venue_name
                continue
            value = getattr(report, _SOURCE_ATTRIBUTES.get(column, column))
            if column == "approved_at" and value is not None:
                value = value.isoformat()
            row[column] = value
        rows.append(row)
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def render_export(frame: pd.DataFrame, export_format: str) -> bytes:
    """
    Serialize the export table.

    Raises:
        ValueError: For formats other than csv and xlsx
    """
    if export_format == "csv":
        return frame.to_csv(index=False).encode("utf-8")
    if export_format == "xlsx":
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name="Daily reports", index=False)
        return buffer.getvalue()
    raise ValueError(f"Unsupported export format: {export_format}")


def build_month_export(
    reports: Iterable[DailyReport],
    venue_name: str,
    venue_slug: str,
    year: int,
    month: int,
    export_format: str,
) -> Tuple[str, bytes]:
    """
    Render a venue's monthly export.

    Returns:
        (file name, file content)
    """
    frame = reports_to_dataframe(reports, venue_name)
    content = render_export(frame, export_format)
    logger.info("Exported %d report(s) for %s %04d-%02d as %s", len(frame), venue_slug, year, month, export_format)
    return export_filename(venue_slug, year, month, export_format), content
