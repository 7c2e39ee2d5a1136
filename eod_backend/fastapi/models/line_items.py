"""
Itemized line entries attached to a daily report.

Each kind lives in its own table with the same shape. The parent report
keeps a mirrored sum of each kind, kept in step by the report CRUD layer.
"""

from uuid import uuid4
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr, relationship, validates
from eod_backend.fastapi.dependencies.database import Base


class LineItemMixin:
    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        doc="Unique identifier for the line item"
    )

    @declared_attr
    def report_id(cls):
        return Column(
            UUID(as_uuid=True),
            ForeignKey("daily_reports.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
            doc="Report this line item belongs to"
        )

    amount = Column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Line item amount"
    )

    reason = Column(
        Text,
        nullable=True,
        doc="Free text description"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        doc="When the line item was recorded"
    )

    @validates('amount')
    def validate_amount(self, key, value):
        if value is not None and value < 0:
            raise ValueError("amount must be non-negative")
        return value

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(report_id='{self.report_id}', amount={self.amount})>"


class ReportWithdrawal(LineItemMixin, Base):
    __tablename__ = "report_withdrawals"

    report = relationship("DailyReport", back_populates="withdrawals")


class ReportRepresentacja1(LineItemMixin, Base):
    __tablename__ = "report_representacja_1"

    report = relationship("DailyReport", back_populates="representacja_items")


class ReportServiceKwotowy(LineItemMixin, Base):
    __tablename__ = "report_service_kwotowy"

    report = relationship("DailyReport", back_populates="service_kwotowy_items")


class ReportStrata(LineItemMixin, Base):
    __tablename__ = "report_strata"

    report = relationship("DailyReport", back_populates="strata_items")


# Line item kind -> (model, report relationship, mirrored report column)
LINE_ITEM_KINDS = {
    "withdrawals": (ReportWithdrawal, "withdrawals", "withdrawal"),
    "representacja_1": (ReportRepresentacja1, "representacja_items", "representacja"),
    "service_kwotowy": (ReportServiceKwotowy, "service_kwotowy_items", "serwis"),
    "strata": (ReportStrata, "strata_items", "strata_loss"),
}
