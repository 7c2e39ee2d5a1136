import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="eod-tests-")

os.environ["ENV_MODE"] = "dev"
os.environ["DATABASE_URL"] = f"sqlite:///{_db_dir}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["MAILGUN_API_KEY"] = ""
os.environ["MAILGUN_DOMAIN"] = ""
os.environ["REPORT_NOTIFICATION_EMAILS"] = ""
os.environ["REPORTS_FALLBACK_ADMIN_EMAIL"] = ""

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from eod_backend.fastapi import models  # noqa: E402,F401
from eod_backend.fastapi.crud.user import create_user  # noqa: E402
from eod_backend.fastapi.crud.venue import create_venue  # noqa: E402
from eod_backend.fastapi.dependencies.database import Base, SessionLocal, engine  # noqa: E402
from eod_backend.fastapi.main import app  # noqa: E402
from eod_backend.fastapi.schemas.user import UserCreate  # noqa: E402
from eod_backend.fastapi.schemas.venue import VenueCreate  # noqa: E402

ADMIN_EMAIL = "admin@coco.pl"
ADMIN_PASSWORD = "admin-pass-123"
STAFF_EMAIL = "kasia@coco.pl"
STAFF_PASSWORD = "staff-pass-123"


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.state.analytics_cache.clear()
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def make_venue(name: str = "Sushi Old Town") -> dict:
    with SessionLocal() as session:
        venue = create_venue(session, VenueCreate(name=name))
        return {"id": str(venue.id), "name": venue.name, "slug": venue.slug}


def make_user(email: str, password: str, role: str = "staff", venue_ids=(), approved: bool = True) -> dict:
    with SessionLocal() as session:
        user = create_user(session, UserCreate(
            email=email,
            password=password,
            display_name=email.split("@")[0].title(),
            role=role,
            approved=approved,
            venue_ids=list(venue_ids),
        ))
        return {"id": str(user.id), "email": user.email, "password": password, "role": user.role}


def login(client: TestClient, email: str, password: str) -> dict:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def venue() -> dict:
    return make_venue()


@pytest.fixture()
def admin() -> dict:
    return make_user(ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")


@pytest.fixture()
def staff(venue) -> dict:
    return make_user(STAFF_EMAIL, STAFF_PASSWORD, venue_ids=[venue["id"]])


@pytest.fixture()
def admin_headers(client, admin) -> dict:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture()
def staff_headers(client, staff) -> dict:
    return login(client, STAFF_EMAIL, STAFF_PASSWORD)


@pytest.fixture()
def report_payload(venue) -> dict:
    """A balanced day: 2346 card + 441 cash + 104 Uber = 2891 gross."""
    return {
        "venue_id": venue["id"],
        "for_date": "2025-09-24",
        "status": "draft",
        "total_sale_gross": "2891.00",
        "card_1": "2346.00",
        "cash": "441.00",
        "uber": "104.00",
        "service_10_percent": "13.00",
        "left_in_drawer": "300.00",
        "withdrawals": [{"amount": "50.00", "reason": "Vegetables"}],
        "service_kwotowy": [{"amount": "53.00", "reason": "Table 4"}],
    }
