from datetime import date
from decimal import Decimal

import pytest

from eod_backend.fastapi.services.reconciliation import (
    ChildTotals,
    ContractViolation,
    MalformedAmountError,
    ValidationCode,
    channel_total,
    compute_derived,
    quantize_money,
    sum_line_items,
    to_amount,
    validate,
)


def _report(**overrides):
    report = {
        "venue_id": "venue-1",
        "for_date": date(2025, 9, 24),
        "total_sale_gross": Decimal("2891.00"),
        "card_1": Decimal("2346.00"),
        "cash": Decimal("441.00"),
        "uber": Decimal("104.00"),
    }
    report.update(overrides)
    return report


def test_total_service_keeps_three_quarters_of_service_pool():
    derived = compute_derived(
        {"service_10_percent": Decimal("13")},
        ChildTotals(service_kwotowy_sum=Decimal("53")),
    )
    assert quantize_money(derived.total_service) == Decimal("49.50")


def test_delivery_income_is_seventy_percent_of_platform_sales():
    derived = compute_derived({"glovo": Decimal("104")})
    assert quantize_money(derived.total_delivery_income) == Decimal("72.80")


def test_full_derivation_of_a_day():
    derived = compute_derived(
        _report(service_10_percent=Decimal("13"), left_in_drawer=Decimal("300")),
        ChildTotals(withdrawals_sum=Decimal("50"), service_kwotowy_sum=Decimal("53")),
        previous_day_cash=Decimal("120"),
    ).quantized()

    assert derived["total_card_payment"] == Decimal("2346.00")
    assert derived["total_cash"] == Decimal("341.50")
    assert derived["total_delivery_income"] == Decimal("72.80")
    assert derived["gross_revenue"] == Decimal("2859.80")
    assert derived["net_revenue"] == Decimal("2760.30")
    assert derived["cash_previous_day"] == Decimal("120.00")
    assert derived["calculated_cash_expected"] == Decimal("461.50")
    assert derived["reconciliation_diff"] == Decimal("161.50")


def test_derivation_is_repeatable():
    fields = _report(service_10_percent=Decimal("13"), left_in_drawer=Decimal("300"))
    totals = ChildTotals(withdrawals_sum=Decimal("50"), service_kwotowy_sum=Decimal("53"))

    first = compute_derived(fields, totals, previous_day_cash=Decimal("120"))
    second = compute_derived(fields, totals, previous_day_cash=Decimal("120"))
    assert first == second
    assert first.quantized() == second.quantized()
    assert fields == _report(service_10_percent=Decimal("13"), left_in_drawer=Decimal("300"))


def test_cash_includes_float_deposits_and_special_payment():
    derived = compute_derived({
        "cash": Decimal("100"),
        "flavour": Decimal("10"),
        "cash_deposits": Decimal("20"),
        "total_sale_with_special_payment": Decimal("30"),
        "drawer": Decimal("200"),
    })
    assert derived.total_cash == Decimal("360")
    assert derived.gross_revenue == Decimal("150")


def test_missing_inputs_read_as_zero():
    derived = compute_derived({})
    assert all(value == Decimal("0.00") for value in derived.quantized().values())


def test_balanced_report_is_valid():
    result = validate(_report())
    assert result.is_valid
    assert result.as_list() == []


@pytest.mark.parametrize("gross,valid", [
    (Decimal("2890.50"), True),
    (Decimal("2891.50"), True),
    (Decimal("2890.49"), False),
    (Decimal("2891.51"), False),
])
def test_reconciliation_tolerance_is_fifty_groszy(gross, valid):
    result = validate(_report(total_sale_gross=gross))
    assert (result.for_field("payment_channels") is None) is valid


def test_special_payment_counts_towards_channel_sum():
    # Sample day: channels 2891.00 plus 4290.00 special against 2703.00 declared
    report = _report(
        total_sale_gross=Decimal("2703.00"),
        cash=Decimal("0"),
        card_2=Decimal("441.00"),
        uber=Decimal("0"),
        glovo=Decimal("104.00"),
        total_sale_with_special_payment=Decimal("4290.00"),
    )
    assert channel_total(report) == Decimal("7181.00")

    issue = validate(report).for_field("payment_channels")
    assert issue.code == ValidationCode.RECONCILIATION_MISMATCH
    assert issue.details["difference"] == Decimal("4478.00")

    without_special = dict(report, total_sale_with_special_payment=Decimal("0"))
    issue = validate(without_special).for_field("payment_channels")
    assert issue.details["difference"] == Decimal("188.00")


def test_all_errors_are_reported_together():
    result = validate({
        "total_sale_gross": Decimal("0"),
        "card_1": Decimal("10"),
        "tips_cash": Decimal("-1"),
    })
    fields = [issue["field"] for issue in result.as_list()]
    assert fields == ["venue_id", "for_date", "total_sale_gross", "payment_channels", "tips_cash"]
    codes = {issue["field"]: issue["code"] for issue in result.as_list()}
    assert codes["venue_id"] == "MissingField"
    assert codes["total_sale_gross"] == "InvalidAmount"
    assert codes["payment_channels"] == "ReconciliationMismatch"
    assert codes["tips_cash"] == "InvalidAmount"


def test_negative_channel_reports_one_error_per_field():
    result = validate(_report(card_1=Decimal("-5"), total_sale_gross=Decimal("540")))
    fields = [issue.field for issue in result.errors]
    assert fields.count("card_1") == 1


def test_issue_details_serialize_as_strings():
    payload = validate(_report(total_sale_gross=Decimal("100"))).as_list()[0]
    assert payload["field"] == "payment_channels"
    assert payload["difference"] == "2791.00"


@pytest.mark.parametrize("value", ["abc", float("nan"), "Infinity", True, object()])
def test_malformed_amounts_raise(value):
    with pytest.raises(MalformedAmountError) as excinfo:
        to_amount(value, "cash")
    assert excinfo.value.field_name == "cash"
    assert isinstance(excinfo.value, ContractViolation)


def test_malformed_amount_in_report_propagates_from_validate():
    with pytest.raises(MalformedAmountError):
        validate(_report(cash="twelve"))


def test_to_amount_reads_floats_through_str():
    assert to_amount(0.1) == Decimal("0.1")
    assert to_amount(None) == Decimal("0")
    assert to_amount(" 12.30 ") == Decimal("12.30")


def test_quantize_rounds_half_up():
    assert quantize_money(Decimal("0.125")) == Decimal("0.13")
    assert quantize_money(Decimal("-0.125")) == Decimal("-0.13")
    assert quantize_money(Decimal("49.5")) == Decimal("49.50")


def test_sum_line_items_accepts_dicts_and_objects():
    class Row:
        amount = Decimal("2.50")

    assert sum_line_items([{"amount": "1.25"}, Row(), {"amount": None}]) == Decimal("3.75")
