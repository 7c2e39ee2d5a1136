from conftest import make_venue

VENUES = "/api/v1/venues"


def test_admin_creates_venue_with_slug(client, admin_headers):
    response = client.post(VENUES, json={"name": "Sushi Łódź Piotrkowska"}, headers=admin_headers)
    assert response.status_code == 201, response.text
    assert response.json()["slug"] == "sushi-lodz-piotrkowska"

    response = client.post(VENUES, json={"name": "Sushi Łódź Piotrkowska"}, headers=admin_headers)
    assert response.status_code == 409


def test_staff_see_only_assigned_venues(client, venue, staff_headers, admin_headers):
    make_venue("Sushi Mokotow")

    staff_view = client.get(VENUES, headers=staff_headers).json()
    assert [v["name"] for v in staff_view["venues"]] == ["Sushi Old Town"]

    admin_view = client.get(VENUES, headers=admin_headers).json()
    assert admin_view["total_count"] == 2


def test_rename_and_deactivate(client, venue, admin_headers, report_payload):
    response = client.put(
        f"{VENUES}/{venue['id']}",
        json={"name": "Sushi Stare Miasto", "is_active": False},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["slug"] == "sushi-stare-miasto"

    assert client.get(VENUES, headers=admin_headers).json()["total_count"] == 0
    listing = client.get(VENUES, params={"include_inactive": True}, headers=admin_headers).json()
    assert listing["total_count"] == 1

    # Inactive venues accept no new reports
    response = client.post("/api/v1/reports", json=report_payload, headers=admin_headers)
    assert response.status_code == 400


def test_staff_cannot_create_venues(client, staff_headers):
    assert client.post(VENUES, json={"name": "Nowa"}, headers=staff_headers).status_code == 403
