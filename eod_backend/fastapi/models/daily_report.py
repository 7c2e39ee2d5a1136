"""
Daily report model for end-of-day sales and cash reconciliation.

One record is kept per venue and calendar day. It stores the payment
channel breakdown entered by staff, cash handling figures, the mirrored
sums of its itemized line entries and a snapshot of the derived
reconciliation values computed at save time.
"""

from uuid import uuid4
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from sqlalchemy import Column, DateTime, Date, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates
from eod_backend.fastapi.dependencies.database import Base


class ReportStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    LOCKED = "locked"


FINALIZED_STATUSES = (ReportStatus.APPROVED.value, ReportStatus.LOCKED.value)
PENDING_STATUSES = (ReportStatus.DRAFT.value, ReportStatus.SUBMITTED.value)


def _money(doc: str, nullable: bool = False) -> Column:
    return Column(
        Numeric(precision=12, scale=2),
        nullable=nullable,
        default=None if nullable else Decimal("0.00"),
        doc=doc
    )


class DailyReport(Base):
    """
    End-of-day report for a venue.

    Attributes:
        id: Unique identifier for the report
        venue_id: Venue the report belongs to
        for_date: Business day being reported
        status: draft, submitted, approved or locked

        Payment channels:
        card_1, card_2: Card terminal totals
        cash: Cash sales
        przelew: Bank transfer payments
        glovo, uber, wolt, pyszne, bolt: Delivery platform sales
        total_sale_with_special_payment: Sales settled with special payment

        total_sale_gross: Declared gross sales, must match the channels (±0.50)

        Line item mirrors:
        withdrawal, representacja, serwis, strata_loss: Sums of the
        report's withdrawal, Representacja 1, Service Kwotowy and Strata rows

        Derived snapshot:
        cash_previous_day, calculated_cash_expected, reconciliation_diff,
        gross_revenue, net_revenue

        Provenance:
        created_by, submitted_at, approved_by, approved_at, locked_at
    """
    __tablename__ = "daily_reports"
    __table_args__ = (
        UniqueConstraint("venue_id", "for_date", name="uq_daily_reports_venue_date"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        index=True,
        doc="Unique identifier for the report"
    )

    venue_id = Column(
        UUID(as_uuid=True),
        ForeignKey("venues.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="Venue this report was filed for"
    )

    for_date = Column(
        Date,
        nullable=False,
        index=True,
        doc="Business day covered by the report"
    )

    status = Column(
        String(20),
        nullable=False,
        default=ReportStatus.DRAFT.value,
        index=True,
        doc="Lifecycle status: draft, submitted, approved or locked"
    )

    # Payment channels
    card_1 = _money("Card terminal 1 total")
    card_2 = _money("Card terminal 2 total")
    cash = _money("Cash sales")
    przelew = _money("Bank transfer payments")
    glovo = _money("Glovo sales")
    uber = _money("Uber Eats sales")
    wolt = _money("Wolt sales")
    pyszne = _money("Pyszne.pl sales")
    bolt = _money("Bolt Food sales")
    total_sale_with_special_payment = _money("Sales settled with special payment")

    total_sale_gross = _money("Declared gross sales for the day")

    # Cash handling
    cash_deposits = _money("Cash deposited into the register during the day")
    drawer = _money("Opening float counted in the drawer")
    withdrawal = _money("Sum of withdrawal line items")
    locker_withdrawal = _money("Cash taken out of the locker")
    deposit = _money("Bank deposit")
    representacja = _money("Sum of Representacja 1 line items")
    staff_cost = _money("Staff meals and costs")
    staff_spent = _money("Cash spent by staff")
    tips_cash = _money("Cash tips")
    tips_card = _money("Card tips")
    cash_in_envelope_after_tips = _money("Cash in envelope after tips were paid out")
    left_in_drawer = _money("Cash left in the drawer at close")
    total_cash_in_locker = _money("Total cash held in the locker")

    # Service and adjustments
    service_10_percent = _money("10% service charge collected")
    serwis = _money("Sum of Service Kwotowy line items")
    serwis_k = _money("Service paid by card")
    company = _money("Company account sales")
    voids = _money("Voided sales")
    strata_loss = _money("Sum of Strata line items")
    flavour = _money("Flavour sales paid in cash")

    # Derived snapshot
    cash_previous_day = _money("Carryover: left_in_drawer of the previous day")
    calculated_cash_expected = _money("Carryover plus total cash of the day")
    reconciliation_diff = _money("Expected cash minus cash left in drawer")
    gross_revenue = _money("Gross revenue of the day")
    net_revenue = _money("Net revenue after withdrawals and retained service")

    notes = Column(
        Text,
        nullable=True,
        doc="Free text notes about the day"
    )

    representation_note = Column(
        Text,
        nullable=True,
        doc="Note describing representation expenses"
    )

    # Provenance
    created_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="User who created the report"
    )

    submitted_at = Column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the report was submitted"
    )

    approved_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="User who approved the report"
    )

    approved_at = Column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the report was approved"
    )

    locked_at = Column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the report was locked"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        doc="When the report was created"
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        doc="Last update timestamp"
    )

    # Relationships
    venue = relationship(
        "Venue",
        back_populates="reports",
        doc="Venue this report belongs to"
    )

    creator = relationship(
        "User",
        back_populates="reports",
        foreign_keys=[created_by],
        doc="User who created the report"
    )

    approver = relationship(
        "User",
        foreign_keys=[approved_by],
        doc="User who approved the report"
    )

    withdrawals = relationship(
        "ReportWithdrawal",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportWithdrawal.created_at",
        doc="Itemized cash withdrawals"
    )

    representacja_items = relationship(
        "ReportRepresentacja1",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportRepresentacja1.created_at",
        doc="Itemized Representacja 1 expenses"
    )

    service_kwotowy_items = relationship(
        "ReportServiceKwotowy",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportServiceKwotowy.created_at",
        doc="Itemized Service Kwotowy amounts"
    )

    strata_items = relationship(
        "ReportStrata",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportStrata.created_at",
        doc="Itemized losses"
    )

    def __repr__(self) -> str:
        return (
            f"<DailyReport(id='{self.id}', "
            f"venue_id='{self.venue_id}', "
            f"for_date='{self.for_date}', "
            f"status='{self.status}', "
            f"total_sale_gross={self.total_sale_gross})>"
        )

    @validates(
        'card_1', 'card_2', 'cash', 'przelew', 'glovo', 'uber', 'wolt', 'pyszne', 'bolt',
        'total_sale_with_special_payment', 'cash_deposits', 'drawer', 'left_in_drawer',
        'tips_cash', 'tips_card', 'service_10_percent',
    )
    def validate_amounts(self, key, value):
        """Validate that entered amounts are non-negative."""
        if value is not None and value < 0:
            raise ValueError(f"{key} must be non-negative")
        return value

    @validates('status')
    def validate_status(self, key, value):
        if value not in {status.value for status in ReportStatus}:
            raise ValueError(f"Unknown report status: {value}")
        return value

    @property
    def has_discrepancy(self) -> bool:
        """Check whether counted cash differs from expected cash."""
        return abs(self.reconciliation_diff or Decimal("0")) > Decimal("0.01")
