from decimal import Decimal
import io

import pandas as pd

from conftest import make_user, make_venue, login
from eod_backend.fastapi.models import DailyReport, ReportServiceKwotowy, ReportWithdrawal

REPORTS = "/api/v1/reports"


def _money(value) -> Decimal:
    return Decimal(str(value))


def _create(client, headers, payload, **overrides):
    body = dict(payload)
    body.update(overrides)
    return client.post(REPORTS, json=body, headers=headers)


def test_reports_require_authentication(client):
    assert client.get(REPORTS).status_code in (401, 403)


def test_create_draft_computes_derived_values(client, staff, staff_headers, report_payload):
    response = _create(client, staff_headers, report_payload)
    assert response.status_code == 201, response.text
    data = response.json()

    assert data["status"] == "draft"
    assert data["submitted_at"] is None
    assert data["venue_name"] == "Sushi Old Town"
    assert data["created_by_email"] == staff["email"]
    assert _money(data["withdrawal"]) == Decimal("50.00")
    assert _money(data["serwis"]) == Decimal("53.00")
    assert _money(data["cash_previous_day"]) == Decimal("0.00")
    assert _money(data["gross_revenue"]) == Decimal("2859.80")
    assert _money(data["net_revenue"]) == Decimal("2760.30")
    assert _money(data["calculated_cash_expected"]) == Decimal("341.50")
    assert _money(data["reconciliation_diff"]) == Decimal("41.50")
    assert data["has_discrepancy"] is True
    assert [item["reason"] for item in data["withdrawals"]] == ["Vegetables"]


def test_submitted_report_is_approved_immediately(client, staff, staff_headers, report_payload):
    response = _create(client, staff_headers, report_payload, status="submitted")
    assert response.status_code == 201, response.text
    data = response.json()

    assert data["status"] == "approved"
    assert data["submitted_at"] is not None
    assert data["approved_at"] is not None
    assert data["approved_by"] == staff["id"]


def test_gross_defaults_to_channel_sum(client, staff_headers, report_payload):
    payload = dict(report_payload)
    payload.pop("total_sale_gross")
    response = _create(client, staff_headers, payload)
    assert response.status_code == 201, response.text
    assert _money(response.json()["total_sale_gross"]) == Decimal("2891.00")


def test_duplicate_day_conflicts(client, staff_headers, report_payload):
    assert _create(client, staff_headers, report_payload).status_code == 201
    response = _create(client, staff_headers, report_payload)
    assert response.status_code == 409


def test_validation_errors_are_listed_together(client, staff_headers, report_payload):
    response = _create(
        client, staff_headers, report_payload,
        total_sale_gross="100.00",
    )
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Report validation failed"
    assert [error["code"] for error in detail["errors"]] == ["ReconciliationMismatch"]
    assert detail["errors"][0]["difference"] == "2791.00"

    response = _create(client, staff_headers, report_payload, total_sale_gross="0", card_1="0", cash="0", uber="0")
    assert response.status_code == 422
    fields = [error["field"] for error in response.json()["detail"]["errors"]]
    assert fields == ["total_sale_gross"]


def test_negative_amount_rejected_by_schema(client, staff_headers, report_payload):
    response = _create(client, staff_headers, report_payload, tips_cash="-5.00")
    assert response.status_code == 422


def test_staff_cannot_report_for_unassigned_venue(client, staff_headers, report_payload):
    other = make_venue("Sushi Mokotow")
    response = _create(client, staff_headers, report_payload, venue_id=other["id"])
    assert response.status_code == 403


def test_unknown_venue_is_not_found(client, admin_headers, report_payload):
    response = _create(client, admin_headers, report_payload, venue_id="00000000-0000-0000-0000-000000000001")
    assert response.status_code == 404


def test_update_replaces_line_items_and_mirrors(client, staff_headers, report_payload, db):
    report_id = _create(client, staff_headers, report_payload).json()["id"]

    response = client.put(
        f"{REPORTS}/{report_id}",
        json={
            "withdrawals": [
                {"amount": "20.00", "reason": "Bread"},
                {"amount": "30.00", "reason": "Fish"},
                {"amount": "0", "reason": "   "},
            ],
            "service_kwotowy": [],
        },
        headers=staff_headers,
    )
    assert response.status_code == 200, response.text
    data = response.json()

    assert [item["reason"] for item in data["withdrawals"]] == ["Bread", "Fish"]
    assert _money(data["withdrawal"]) == Decimal("50.00")
    assert data["service_kwotowy"] == []
    assert _money(data["serwis"]) == Decimal("0.00")
    # (0 + 13) * 0.75 = 9.75 of service now
    assert _money(data["net_revenue"]) == Decimal("2800.05")

    assert db.query(ReportWithdrawal).count() == 2
    assert db.query(ReportServiceKwotowy).count() == 0


def test_zero_amount_with_reason_is_kept(client, staff_headers, report_payload):
    response = _create(
        client, staff_headers, report_payload,
        strata=[{"amount": "0", "reason": "Dropped tray, no cost"}],
    )
    assert response.status_code == 201
    assert len(response.json()["strata"]) == 1


def test_omitted_fields_keep_stored_values(client, staff_headers, report_payload):
    report_id = _create(client, staff_headers, report_payload).json()["id"]
    response = client.put(f"{REPORTS}/{report_id}", json={"notes": "Quiet evening"}, headers=staff_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["notes"] == "Quiet evening"
    assert _money(data["card_1"]) == Decimal("2346.00")
    assert len(data["withdrawals"]) == 1


def test_update_is_validated_on_merged_values(client, staff_headers, report_payload):
    report_id = _create(client, staff_headers, report_payload).json()["id"]
    response = client.put(f"{REPORTS}/{report_id}", json={"card_1": "100.00"}, headers=staff_headers)
    assert response.status_code == 422
    assert response.json()["detail"]["errors"][0]["field"] == "payment_channels"


def test_carryover_chain_follows_previous_day(client, admin_headers, report_payload):
    day1 = _create(client, admin_headers, report_payload, for_date="2025-09-24").json()
    day2 = _create(client, admin_headers, report_payload, for_date="2025-09-25", left_in_drawer="250.00").json()
    day3 = _create(client, admin_headers, report_payload, for_date="2025-09-26").json()

    assert _money(day2["cash_previous_day"]) == Decimal("300.00")
    assert _money(day2["calculated_cash_expected"]) == Decimal("641.50")
    assert _money(day3["cash_previous_day"]) == Decimal("250.00")

    # Editing day 1 refreshes day 2's carryover but leaves day 3 alone
    response = client.put(f"{REPORTS}/{day1['id']}", json={"left_in_drawer": "400.00"}, headers=admin_headers)
    assert response.status_code == 200
    day2 = client.get(f"{REPORTS}/{day2['id']}", headers=admin_headers).json()
    assert _money(day2["cash_previous_day"]) == Decimal("400.00")
    assert _money(day2["reconciliation_diff"]) == Decimal("491.50")
    day3 = client.get(f"{REPORTS}/{day3['id']}", headers=admin_headers).json()
    assert _money(day3["cash_previous_day"]) == Decimal("250.00")


def test_gap_day_does_not_carry_over(client, admin_headers, report_payload):
    _create(client, admin_headers, report_payload, for_date="2025-09-24")
    later = _create(client, admin_headers, report_payload, for_date="2025-09-26").json()
    assert _money(later["cash_previous_day"]) == Decimal("0.00")


def test_creating_earlier_day_updates_following_report(client, admin_headers, report_payload):
    day2 = _create(client, admin_headers, report_payload, for_date="2025-09-25").json()
    assert _money(day2["cash_previous_day"]) == Decimal("0.00")

    _create(client, admin_headers, report_payload, for_date="2025-09-24")
    day2 = client.get(f"{REPORTS}/{day2['id']}", headers=admin_headers).json()
    assert _money(day2["cash_previous_day"]) == Decimal("300.00")


def test_delete_removes_line_items_and_resets_carryover(client, admin_headers, report_payload, db):
    day1 = _create(client, admin_headers, report_payload, for_date="2025-09-24").json()
    day2 = _create(client, admin_headers, report_payload, for_date="2025-09-25").json()

    response = client.delete(f"{REPORTS}/{day1['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Report deleted successfully", "report_id": day1["id"]}

    assert client.get(f"{REPORTS}/{day1['id']}", headers=admin_headers).status_code == 404
    day2 = client.get(f"{REPORTS}/{day2['id']}", headers=admin_headers).json()
    assert _money(day2["cash_previous_day"]) == Decimal("0.00")
    # Only day 2's line items remain
    assert db.query(ReportWithdrawal).count() == 1
    assert db.query(DailyReport).count() == 1


def test_staff_cannot_delete_reports(client, staff_headers, report_payload):
    report_id = _create(client, staff_headers, report_payload).json()["id"]
    assert client.delete(f"{REPORTS}/{report_id}", headers=staff_headers).status_code == 403


def test_staff_edit_rules(client, staff_headers, admin_headers, report_payload):
    report_id = _create(client, staff_headers, report_payload).json()["id"]

    response = client.put(f"{REPORTS}/{report_id}", json={"status": "submitted"}, headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    # Finalized reports are read-only for staff
    response = client.put(f"{REPORTS}/{report_id}", json={"notes": "late change"}, headers=staff_headers)
    assert response.status_code == 403

    # Admins can still correct them
    response = client.put(f"{REPORTS}/{report_id}", json={"notes": "corrected"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["notes"] == "corrected"


def test_staff_only_see_their_own_reports(client, venue, staff_headers, admin_headers, report_payload):
    own = _create(client, staff_headers, report_payload).json()
    other_staff = make_user("tomek@coco.pl", "tomek-pass-123", venue_ids=[venue["id"]])
    other_headers = login(client, other_staff["email"], other_staff["password"])
    foreign = _create(client, other_headers, report_payload, for_date="2025-09-25").json()

    listing = client.get(REPORTS, headers=staff_headers).json()
    assert [report["id"] for report in listing["reports"]] == [own["id"]]
    assert listing["total_count"] == 1
    assert client.get(f"{REPORTS}/{foreign['id']}", headers=staff_headers).status_code == 403

    listing = client.get(REPORTS, params={"order_by": "date_asc"}, headers=admin_headers).json()
    assert [report["for_date"] for report in listing["reports"]] == ["2025-09-24", "2025-09-25"]


def test_list_filters_and_pagination(client, admin_headers, report_payload):
    for day in ("2025-09-22", "2025-09-23", "2025-09-24"):
        _create(client, admin_headers, report_payload, for_date=day)
    _create(client, admin_headers, report_payload, for_date="2025-09-25", status="submitted")

    page = client.get(REPORTS, params={"limit": 2}, headers=admin_headers).json()
    assert page["total_count"] == 4
    assert page["has_next"] is True
    assert page["reports"][0]["for_date"] == "2025-09-25"

    approved = client.get(REPORTS, params={"status": "approved"}, headers=admin_headers).json()
    assert [report["for_date"] for report in approved["reports"]] == ["2025-09-25"]

    ranged = client.get(
        REPORTS,
        params={"start_date": "2025-09-23", "end_date": "2025-09-24"},
        headers=admin_headers,
    ).json()
    assert ranged["total_count"] == 2


def test_admin_status_changes(client, staff_headers, admin, admin_headers, report_payload):
    report_id = _create(client, staff_headers, report_payload).json()["id"]

    assert client.patch(
        f"{REPORTS}/{report_id}/status", json={"status": "locked"}, headers=staff_headers
    ).status_code == 403

    response = client.patch(f"{REPORTS}/{report_id}/status", json={"status": "locked"}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "locked"
    assert data["locked_at"] is not None
    assert data["approved_by"] == admin["id"]

    response = client.patch(f"{REPORTS}/{report_id}/status", json={"status": "bogus"}, headers=admin_headers)
    assert response.status_code == 422


def test_validate_preview_reports_everything(client, staff_headers, report_payload):
    response = client.post(
        f"{REPORTS}/validate",
        json={"total_sale_gross": "0", "card_1": "10.00", "service_10_percent": "13.00"},
        headers=staff_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is False
    assert [error["field"] for error in data["errors"]] == [
        "venue_id", "for_date", "total_sale_gross", "payment_channels",
    ]
    assert _money(data["total_payments"]) == Decimal("10.00")
    assert _money(data["derived"]["total_service"]) == Decimal("9.75")

    response = client.post(f"{REPORTS}/validate", json=report_payload, headers=staff_headers)
    data = response.json()
    assert data["is_valid"] is True
    assert _money(data["derived"]["total_service"]) == Decimal("49.50")


def test_validate_preview_uses_stored_carryover(client, staff_headers, report_payload):
    _create(client, staff_headers, report_payload)
    response = client.post(
        f"{REPORTS}/validate",
        json=dict(report_payload, for_date="2025-09-25"),
        headers=staff_headers,
    )
    assert _money(response.json()["derived"]["cash_previous_day"]) == Decimal("300.00")


def test_validate_preview_checks_venue_access(client, admin_headers, staff_headers, report_payload):
    other = make_venue("Sushi Mokotow")
    _create(client, admin_headers, report_payload, venue_id=other["id"], left_in_drawer="777.00")

    response = client.post(
        f"{REPORTS}/validate",
        json=dict(report_payload, venue_id=other["id"], for_date="2025-09-25"),
        headers=staff_headers,
    )
    assert response.status_code == 403
    assert "777" not in response.text

    response = client.post(
        f"{REPORTS}/validate",
        json=dict(report_payload, venue_id="00000000-0000-0000-0000-000000000000"),
        headers=staff_headers,
    )
    assert response.status_code == 404


def test_month_export_csv(client, admin_headers, report_payload, venue):
    _create(client, admin_headers, report_payload, for_date="2025-09-01", status="submitted")
    _create(client, admin_headers, report_payload, for_date="2025-09-02")
    _create(client, admin_headers, report_payload, for_date="2025-10-01", status="submitted")

    response = client.get(
        f"{REPORTS}/export",
        params={"venue_id": venue["id"], "year": 2025, "month": 9, "format": "csv"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="sushi-old-town-2025-09-daily-line-items.csv"' in response.headers["content-disposition"]

    frame = pd.read_csv(io.BytesIO(response.content))
    assert list(frame["date"]) == ["2025-09-01"]
    assert frame.loc[0, "venue"] == "Sushi Old Town"
    assert frame.loc[0, "withdrawal"] == 50.0
    assert frame.loc[0, "status"] == "approved"


def test_month_export_xlsx(client, admin_headers, report_payload, venue):
    _create(client, admin_headers, report_payload, for_date="2025-09-01", status="submitted")
    response = client.get(
        f"{REPORTS}/export",
        params={"venue_id": venue["id"], "year": 2025, "month": 9, "format": "xlsx"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    frame = pd.read_excel(io.BytesIO(response.content), sheet_name="Daily reports")
    assert len(frame) == 1


def test_month_export_is_admin_only(client, staff_headers, venue):
    response = client.get(
        f"{REPORTS}/export",
        params={"venue_id": venue["id"], "year": 2025, "month": 9},
        headers=staff_headers,
    )
    assert response.status_code == 403


def test_amounts_must_fit_the_stored_column(client, staff_headers, report_payload):
    fits = dict(report_payload, total_sale_gross="9999999999.99", card_1="9999999999.99", cash="0", uber="0")
    response = client.post(f"{REPORTS}/validate", json=fits, headers=staff_headers)
    assert response.status_code == 200, response.text

    for field in ("total_sale_gross", "card_1"):
        response = _create(client, staff_headers, report_payload, **{field: "99999999999.99"})
        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"][-1] == field
