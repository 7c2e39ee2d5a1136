"""
Daily report financial reconciliation.

Pure computation and validation over a single end-of-day report. Nothing in
this module touches the database, the clock or the network: callers pass in
the raw report fields, the totals of its line items and the previous day's
carryover, and get back plain values.

Two kinds of failure are distinguished:

* Business-rule violations (missing venue/date, non-positive sales, payment
  channels that do not add up) are returned as a ``ValidationResult`` so the
  caller can show every problem at once.
* Contract violations (amounts that cannot be read as a decimal) raise
  ``MalformedAmountError``. They cannot happen through the schema-validated
  API path and indicate a caller bug.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Maximum tolerated gap between the declared gross total and the channel sum
RECONCILIATION_TOLERANCE = Decimal("0.50")

# Share of the service pool retained by the venue
SERVICE_RETENTION_RATE = Decimal("0.75")

# Share of delivery-platform revenue left after platform commission
DELIVERY_NET_RATE = Decimal("0.70")

PAYMENT_CHANNEL_FIELDS = (
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
)

DELIVERY_CHANNEL_FIELDS = ("przelew", "glovo", "uber", "wolt", "pyszne", "bolt")

# Amount fields that must never be negative (checked in addition to channels)
NON_NEGATIVE_FIELDS = PAYMENT_CHANNEL_FIELDS + (
    "flavour",
    "cash_deposits",
    "drawer",
    "service_10_percent",
    "locker_withdrawal",
    "deposit",
    "staff_cost",
    "tips_cash",
    "tips_card",
    "cash_in_envelope_after_tips",
    "left_in_drawer",
    "total_cash_in_locker",
    "serwis_k",
    "company",
    "voids",
    "staff_spent",
)


class ContractViolation(ValueError):
    """Input that the normal validated path can never produce."""


class MalformedAmountError(ContractViolation):
    """An amount that cannot be interpreted as a finite decimal."""

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name}: {value!r} is not a valid amount")


class ValidationCode(str, Enum):
    MISSING_FIELD = "MissingField"
    INVALID_AMOUNT = "InvalidAmount"
    RECONCILIATION_MISMATCH = "ReconciliationMismatch"


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    code: ValidationCode
    message: str
    details: Dict[str, Decimal] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "field": self.field,
            "code": self.code.value,
            "message": self.message,
        }
        payload.update({key: str(value) for key, value in self.details.items()})
        return payload


@dataclass(frozen=True)
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def for_field(self, field_name: str) -> Optional[ValidationIssue]:
        for issue in self.errors:
            if issue.field == field_name:
                return issue
        return None

    def as_list(self) -> List[Dict[str, Any]]:
        return [issue.as_dict() for issue in self.errors]


@dataclass(frozen=True)
class ChildTotals:
    """Sums of a report's itemized line entries."""

    withdrawals_sum: Decimal = ZERO
    service_kwotowy_sum: Decimal = ZERO
    representacja_1_sum: Decimal = ZERO
    strata_sum: Decimal = ZERO


@dataclass(frozen=True)
class DerivedValues:
    """
    Derived financial summary of a report.

    Values keep full decimal precision; call ``quantized()`` to get the
    two-decimal figures used for storage and display.
    """

    cash_previous_day: Decimal
    total_service: Decimal
    total_card_payment: Decimal
    total_cash: Decimal
    total_delivery_income: Decimal
    gross_revenue: Decimal
    net_revenue: Decimal
    calculated_cash_expected: Decimal
    reconciliation_diff: Decimal

    def quantized(self) -> Dict[str, Decimal]:
        return {
            name: quantize_money(value)
            for name, value in self.__dict__.items()
        }

    def snapshot(self) -> Dict[str, Decimal]:
        """Quantized subset persisted on the report row."""
        values = self.quantized()
        return {
            "cash_previous_day": values["cash_previous_day"],
            "calculated_cash_expected": values["calculated_cash_expected"],
            "reconciliation_diff": values["reconciliation_diff"],
            "gross_revenue": values["gross_revenue"],
            "net_revenue": values["net_revenue"],
        }


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_amount(value: Any, field_name: str = "amount") -> Decimal:
    """
    Coerce an input amount to Decimal.

    ``None`` reads as zero (an empty form field). Floats go through ``str`` so
    that 0.1 becomes Decimal("0.1") rather than its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise MalformedAmountError(field_name, value)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise MalformedAmountError(field_name, value) from None
    else:
        raise MalformedAmountError(field_name, value)
    if not amount.is_finite():
        raise MalformedAmountError(field_name, value)
    return amount


def _read(report: Any, name: str) -> Any:
    if isinstance(report, dict):
        return report.get(name)
    return getattr(report, name, None)


def _amount(report: Any, name: str) -> Decimal:
    return to_amount(_read(report, name), name)


def channel_total(report: Any) -> Decimal:
    """Sum of every payment channel, special payment included."""
    return sum((_amount(report, name) for name in PAYMENT_CHANNEL_FIELDS), ZERO)


def sum_line_items(rows: Iterable[Any]) -> Decimal:
    """Total of line item rows (dicts or objects with an ``amount``)."""
    return sum((_amount(row, "amount") for row in rows), ZERO)


def validate(report: Any) -> ValidationResult:
    """
    Check a report's inputs against the business rules.

    Every rule is evaluated; the result lists all failures in rule order with
    at most one error per field.
    """
    errors: Dict[str, ValidationIssue] = {}

    def add(issue: ValidationIssue) -> None:
        errors.setdefault(issue.field, issue)

    if not _read(report, "venue_id"):
        add(ValidationIssue("venue_id", ValidationCode.MISSING_FIELD, "Please select a venue"))
    if not _read(report, "for_date"):
        add(ValidationIssue("for_date", ValidationCode.MISSING_FIELD, "Please select a date"))

    total_sale_gross = _amount(report, "total_sale_gross")
    if total_sale_gross <= ZERO:
        add(ValidationIssue(
            "total_sale_gross",
            ValidationCode.INVALID_AMOUNT,
            "Total sales must be greater than 0",
        ))

    total_payments = channel_total(report)
    difference = abs(total_payments - total_sale_gross)
    if difference > RECONCILIATION_TOLERANCE:
        add(ValidationIssue(
            "payment_channels",
            ValidationCode.RECONCILIATION_MISMATCH,
            f"Payment channels sum to {quantize_money(total_payments)} but total sales "
            f"is {quantize_money(total_sale_gross)} (difference {quantize_money(difference)})",
            {
                "total_payments": total_payments,
                "total_sale_gross": total_sale_gross,
                "difference": difference,
            },
        ))

    for name in NON_NEGATIVE_FIELDS:
        if _amount(report, name) < ZERO:
            add(ValidationIssue(name, ValidationCode.INVALID_AMOUNT, f"{name} must be non-negative"))

    return ValidationResult(errors=list(errors.values()))


def compute_derived(
    report: Any,
    child_totals: Optional[ChildTotals] = None,
    previous_day_cash: Any = ZERO,
) -> DerivedValues:
    """
    Compute the derived financial summary of a report.

    Args:
        report: Raw report fields (mapping, schema or ORM object)
        child_totals: Sums of the report's line items
        previous_day_cash: Carryover from the previous calendar day at the
            same venue, zero when there is no such report

    Returns:
        DerivedValues at full precision
    """
    totals = child_totals or ChildTotals()
    withdrawals_sum = to_amount(totals.withdrawals_sum, "withdrawals_sum")
    service_kwotowy_sum = to_amount(totals.service_kwotowy_sum, "service_kwotowy_sum")
    carryover = to_amount(previous_day_cash, "previous_day_cash")

    card_1 = _amount(report, "card_1")
    card_2 = _amount(report, "card_2")
    cash = _amount(report, "cash")
    special = _amount(report, "total_sale_with_special_payment")
    cash_deposits = _amount(report, "cash_deposits")

    total_service = (service_kwotowy_sum + _amount(report, "service_10_percent")) * SERVICE_RETENTION_RATE
    total_card_payment = card_1 + card_2
    total_cash = (
        cash
        + _amount(report, "flavour")
        + cash_deposits
        + special
        + _amount(report, "drawer")
        - withdrawals_sum
        - total_service
    )
    delivery_gross = sum((_amount(report, name) for name in DELIVERY_CHANNEL_FIELDS), ZERO)
    total_delivery_income = delivery_gross * DELIVERY_NET_RATE
    gross_revenue = total_card_payment + total_delivery_income + special + cash + cash_deposits
    net_revenue = gross_revenue - withdrawals_sum - total_service
    calculated_cash_expected = carryover + total_cash
    reconciliation_diff = calculated_cash_expected - _amount(report, "left_in_drawer")

    return DerivedValues(
        cash_previous_day=carryover,
        total_service=total_service,
        total_card_payment=total_card_payment,
        total_cash=total_cash,
        total_delivery_income=total_delivery_income,
        gross_revenue=gross_revenue,
        net_revenue=net_revenue,
        calculated_cash_expected=calculated_cash_expected,
        reconciliation_diff=reconciliation_diff,
    )
