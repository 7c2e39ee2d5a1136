"""
Daily report Pydantic schemas for request/response validation.

Amounts are Decimal with two decimal places. Inputs for payment channels and
cash handling are non-negative; ``total_sale_gross`` is left unconstrained so
that a zero or negative declaration reaches the business rules and comes back
as a structured validation error.
"""

from uuid import UUID
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict

from eod_backend.fastapi.models.daily_report import ReportStatus


def _amount(description: str, default: Any = Decimal("0.00")) -> Any:
    return Field(
        default,
        decimal_places=2,
        max_digits=12,
        ge=0,
        description=description
    )


# Fields copied 1:1 between the schemas and the DailyReport model
REPORT_AMOUNT_FIELDS = (
    "card_1", "card_2", "cash", "przelew", "glovo", "uber", "wolt", "pyszne", "bolt",
    "total_sale_with_special_payment",
    "cash_deposits", "drawer", "locker_withdrawal", "deposit", "staff_cost", "staff_spent",
    "tips_cash", "tips_card", "cash_in_envelope_after_tips", "left_in_drawer",
    "total_cash_in_locker",
    "service_10_percent", "serwis_k", "company", "voids", "flavour",
)

LINE_ITEM_FIELDS = ("withdrawals", "representacja_1", "service_kwotowy", "strata")

SubmitStatus = Literal["draft", "submitted"]


class LineItemInput(BaseModel):
    """A single itemized entry (withdrawal, representacja, service or loss)."""

    amount: Decimal = _amount("Line item amount")
    reason: Optional[str] = Field(
        None,
        max_length=500,
        description="What the amount was for"
    )


class LineItemRead(LineItemInput):
    id: UUID = Field(..., description="Line item identifier")
    created_at: datetime = Field(..., description="When the line item was recorded")

    model_config = ConfigDict(from_attributes=True)


class ReportAmounts(BaseModel):
    """Amounts entered on the end-of-day form."""

    # Payment channels
    card_1: Decimal = _amount("Card terminal 1 total")
    card_2: Decimal = _amount("Card terminal 2 total")
    cash: Decimal = _amount("Cash sales")
    przelew: Decimal = _amount("Bank transfer payments")
    glovo: Decimal = _amount("Glovo sales")
    uber: Decimal = _amount("Uber Eats sales")
    wolt: Decimal = _amount("Wolt sales")
    pyszne: Decimal = _amount("Pyszne.pl sales")
    bolt: Decimal = _amount("Bolt Food sales")
    total_sale_with_special_payment: Decimal = _amount("Sales settled with special payment")

    # Cash handling
    cash_deposits: Decimal = _amount("Cash deposited into the register")
    drawer: Decimal = _amount("Opening float in the drawer")
    locker_withdrawal: Decimal = _amount("Cash taken from the locker")
    deposit: Decimal = _amount("Bank deposit")
    staff_cost: Decimal = _amount("Staff meals and costs")
    staff_spent: Decimal = _amount("Cash spent by staff")
    tips_cash: Decimal = _amount("Cash tips")
    tips_card: Decimal = _amount("Card tips")
    cash_in_envelope_after_tips: Decimal = _amount("Cash in envelope after tips")
    left_in_drawer: Decimal = _amount("Cash left in the drawer at close")
    total_cash_in_locker: Decimal = _amount("Total cash in the locker")

    # Service and adjustments
    service_10_percent: Decimal = _amount("10% service charge collected")
    serwis_k: Decimal = _amount("Service paid by card")
    company: Decimal = _amount("Company account sales")
    voids: Decimal = _amount("Voided sales")
    flavour: Decimal = _amount("Flavour sales paid in cash")

    notes: Optional[str] = Field(None, description="Free text notes about the day")
    representation_note: Optional[str] = Field(None, description="Representation expense note")


class ReportCreate(ReportAmounts):
    """Schema for creating a daily report, optionally submitting it at once."""

    venue_id: UUID = Field(..., description="Venue the report is filed for")
    for_date: date = Field(..., description="Business day covered by the report")

    total_sale_gross: Optional[Decimal] = Field(
        None,
        decimal_places=2,
        max_digits=12,
        description="Declared gross sales; defaults to the sum of payment channels"
    )

    status: SubmitStatus = Field(
        default="draft",
        description="Save as draft or submit (submitted reports are approved immediately)"
    )

    withdrawals: List[LineItemInput] = Field(default_factory=list)
    representacja_1: List[LineItemInput] = Field(default_factory=list)
    service_kwotowy: List[LineItemInput] = Field(default_factory=list)
    strata: List[LineItemInput] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "venue_id": "456e7890-e89b-12d3-a456-426614174000",
                "for_date": "2025-09-24",
                "status": "submitted",
                "total_sale_gross": "2891.00",
                "card_1": "2346.00",
                "cash": "441.00",
                "uber": "104.00",
                "service_10_percent": "13.00",
                "left_in_drawer": "300.00",
                "withdrawals": [{"amount": "50.00", "reason": "Vegetables"}],
                "service_kwotowy": [{"amount": "53.00", "reason": "Table 4"}],
            }
        }
    )


class ReportUpdate(BaseModel):
    """
    Schema for updating a report.

    Omitted fields keep their stored value. A line item list, when given,
    replaces all stored rows of that kind.
    """

    venue_id: Optional[UUID] = None
    for_date: Optional[date] = None
    status: Optional[SubmitStatus] = None

    total_sale_gross: Optional[Decimal] = Field(None, decimal_places=2, max_digits=12)

    card_1: Optional[Decimal] = _amount("Card terminal 1 total", None)
    card_2: Optional[Decimal] = _amount("Card terminal 2 total", None)
    cash: Optional[Decimal] = _amount("Cash sales", None)
    przelew: Optional[Decimal] = _amount("Bank transfer payments", None)
    glovo: Optional[Decimal] = _amount("Glovo sales", None)
    uber: Optional[Decimal] = _amount("Uber Eats sales", None)
    wolt: Optional[Decimal] = _amount("Wolt sales", None)
    pyszne: Optional[Decimal] = _amount("Pyszne.pl sales", None)
    bolt: Optional[Decimal] = _amount("Bolt Food sales", None)
    total_sale_with_special_payment: Optional[Decimal] = _amount("Special payment sales", None)

    cash_deposits: Optional[Decimal] = _amount("Cash deposited", None)
    drawer: Optional[Decimal] = _amount("Opening float", None)
    locker_withdrawal: Optional[Decimal] = _amount("Locker withdrawal", None)
    deposit: Optional[Decimal] = _amount("Bank deposit", None)
    staff_cost: Optional[Decimal] = _amount("Staff cost", None)
    staff_spent: Optional[Decimal] = _amount("Staff spent", None)
    tips_cash: Optional[Decimal] = _amount("Cash tips", None)
    tips_card: Optional[Decimal] = _amount("Card tips", None)
    cash_in_envelope_after_tips: Optional[Decimal] = _amount("Envelope cash", None)
    left_in_drawer: Optional[Decimal] = _amount("Cash left in drawer", None)
    total_cash_in_locker: Optional[Decimal] = _amount("Cash in locker", None)

    service_10_percent: Optional[Decimal] = _amount("10% service", None)
    serwis_k: Optional[Decimal] = _amount("Service paid by card", None)
    company: Optional[Decimal] = _amount("Company sales", None)
    voids: Optional[Decimal] = _amount("Voids", None)
    flavour: Optional[Decimal] = _amount("Flavour", None)

    notes: Optional[str] = None
    representation_note: Optional[str] = None

    withdrawals: Optional[List[LineItemInput]] = None
    representacja_1: Optional[List[LineItemInput]] = None
    service_kwotowy: Optional[List[LineItemInput]] = None
    strata: Optional[List[LineItemInput]] = None


class ReportStatusUpdate(BaseModel):
    """Admin status change."""

    status: ReportStatus = Field(..., description="New status: draft, submitted, approved or locked")


class ReportRead(ReportAmounts):
    """Schema for reading a stored report."""

    id: UUID
    venue_id: UUID
    for_date: date
    status: str
    total_sale_gross: Decimal

    # Line item mirrors
    withdrawal: Decimal
    representacja: Decimal
    serwis: Decimal
    strata_loss: Decimal

    # Derived snapshot
    cash_previous_day: Decimal
    calculated_cash_expected: Decimal
    reconciliation_diff: Decimal
    gross_revenue: Decimal
    net_revenue: Decimal
    has_discrepancy: bool = Field(False, description="Counted cash differs from expected cash")

    created_by: UUID
    submitted_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    locked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportWithDetails(ReportRead):
    """Report with venue, creator and line items."""

    venue_name: Optional[str] = None
    created_by_email: Optional[str] = None
    created_by_name: Optional[str] = None

    withdrawals: List[LineItemRead] = Field(default_factory=list)
    representacja_1: List[LineItemRead] = Field(default_factory=list)
    service_kwotowy: List[LineItemRead] = Field(default_factory=list)
    strata: List[LineItemRead] = Field(default_factory=list)


class ReportListResponse(BaseModel):
    """Schema for paginated report listing."""

    reports: List[ReportRead] = Field(..., description="List of reports")
    total_count: int = Field(..., description="Total number of matching reports")
    skip: int = Field(..., description="Number of records skipped")
    limit: int = Field(..., description="Maximum number of records returned")
    has_next: bool = Field(..., description="Whether there are more records available")


class ValidationIssueRead(BaseModel):
    field: str
    code: str
    message: str
    total_payments: Optional[Decimal] = None
    total_sale_gross: Optional[Decimal] = None
    difference: Optional[Decimal] = None


class DerivedValuesRead(BaseModel):
    cash_previous_day: Decimal
    total_service: Decimal
    total_card_payment: Decimal
    total_cash: Decimal
    total_delivery_income: Decimal
    gross_revenue: Decimal
    net_revenue: Decimal
    calculated_cash_expected: Decimal
    reconciliation_diff: Decimal


class ReportPreview(BaseModel):
    """Validation outcome and derived values of an unsaved report."""

    is_valid: bool
    errors: List[ValidationIssueRead] = Field(default_factory=list)
    total_payments: Decimal
    derived: DerivedValuesRead

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "is_valid": True,
                "errors": [],
                "total_payments": "2891.00",
                "derived": {
                    "cash_previous_day": "0.00",
                    "total_service": "49.50",
                    "total_card_payment": "2346.00",
                    "total_cash": "341.50",
                    "total_delivery_income": "72.80",
                    "gross_revenue": "2859.80",
                    "net_revenue": "2760.30",
                    "calculated_cash_expected": "341.50",
                    "reconciliation_diff": "41.50",
                },
            }
        }
    )


def report_fields(data: BaseModel, exclude_unset: bool = False) -> Dict[str, Any]:
    """Plain dict of the scalar report fields of a schema."""
    return data.model_dump(exclude=set(LINE_ITEM_FIELDS) | {"status"}, exclude_unset=exclude_unset)


class ReportPreviewRequest(ReportCreate):
    """Unsaved report sent for validation; venue and date may still be missing."""

    venue_id: Optional[UUID] = Field(None, description="Venue the report is filed for")
    for_date: Optional[date] = Field(None, description="Business day covered by the report")
