"""
Data correction script that recomputes stored report snapshots.

For every daily report, oldest day first per venue, this refreshes the
mirrored line item sums (withdrawal, representacja, serwis, strata_loss),
the previous-day carryover and the derived snapshot (cash_previous_day,
calculated_cash_expected, reconciliation_diff, gross_revenue, net_revenue).
Run it after changing the reconciliation formulas or importing data.

Run with: python scripts/recalculate_reports.py [--dry-run] [--venue-id UUID]
"""

import argparse
import os
import sys
from decimal import Decimal
from uuid import UUID

# Add parent directory to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sqlalchemy import asc
from sqlalchemy.orm import selectinload

from eod_backend.fastapi.crud.report import apply_derived
from eod_backend.fastapi.dependencies.database import SessionLocal
from eod_backend.fastapi.models.daily_report import DailyReport

TRACKED_FIELDS = (
    "withdrawal",
    "representacja",
    "serwis",
    "strata_loss",
    "cash_previous_day",
    "calculated_cash_expected",
    "reconciliation_diff",
    "gross_revenue",
    "net_revenue",
)


def _snapshot(report: DailyReport) -> dict:
    return {name: Decimal(str(getattr(report, name) or 0)) for name in TRACKED_FIELDS}


def recalculate_reports(db, dry_run: bool = False, venue_id: UUID = None) -> dict:
    """
    Recompute every report and report what changed.

    Args:
        db: Database session
        dry_run: If True, roll back instead of committing
        venue_id: Limit the run to one venue

    Returns:
        Dict with ``processed``, ``changed`` and ``changes`` (report id -> field diffs)
    """
    query = db.query(DailyReport).options(
        selectinload(DailyReport.withdrawals),
        selectinload(DailyReport.representacja_items),
        selectinload(DailyReport.service_kwotowy_items),
        selectinload(DailyReport.strata_items),
    )
    if venue_id:
        query = query.filter(DailyReport.venue_id == venue_id)
    reports = query.order_by(asc(DailyReport.venue_id), asc(DailyReport.for_date)).all()

    changes = {}
    for report in reports:
        before = _snapshot(report)
        apply_derived(db, report)
        # Flush so the next day's carryover lookup sees this day's values
        db.flush()
        after = _snapshot(report)

        diff = {
            name: (before[name], after[name])
            for name in TRACKED_FIELDS
            if abs(before[name] - after[name]) >= Decimal("0.01")
        }
        if diff:
            changes[str(report.id)] = diff

    if dry_run:
        db.rollback()
    else:
        db.commit()

    return {"processed": len(reports), "changed": len(changes), "changes": changes}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Recompute derived values of all daily reports")
    parser.add_argument("--dry-run", action="store_true", help="Show changes without committing")
    parser.add_argument("--venue-id", type=UUID, default=None, help="Only recompute one venue")
    args = parser.parse_args(argv)

    print(f"\n{'='*80}")
    print("Daily Report Recalculation")
    print(f"{'='*80}")
    print(f"Mode: {'DRY RUN' if args.dry_run else 'LIVE UPDATE'}")

    db = SessionLocal()
    try:
        result = recalculate_reports(db, dry_run=args.dry_run, venue_id=args.venue_id)
    finally:
        db.close()

    for index, (report_id, diff) in enumerate(result["changes"].items()):
        # Print first 10 changes as sample
        if index >= 10:
            break
        print(f"Report {report_id}")
        for name, (old, new) in diff.items():
            print(f"  {name}: {old} -> {new} (diff: {new - old:+.2f})")
        print()

    print(f"\n{'='*80}")
    print("SUMMARY")
    print(f"{'='*80}")
    print(f"Total reports processed: {result['processed']}")
    print(f"Reports with changes: {result['changed']}")
    print(f"Reports unchanged: {result['processed'] - result['changed']}")
    print(f"{'='*80}\n")

    if args.dry_run:
        print("DRY RUN MODE - No changes were made to the database")
        print("  Run without --dry-run to apply changes\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
