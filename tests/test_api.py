import datetime as dt
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from xplorium.api import deps
from xplorium.core import rate_limit
from xplorium.main import app
from xplorium.models.user import User, UserRole

API = "/api/v1"


def booking_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Birthday party for Mila",
        "date": (dt.date.today() + dt.timedelta(days=7)).isoformat(),
        "time": "15:00",
        "type": "PARTY",
        "guest_count": 12,
        "phone": "+381641234567",
        "email": "parent@example.com",
    }
    payload.update(overrides)
    return payload


@pytest.fixture(autouse=True)  # type: ignore[misc]
def fresh_limiter() -> Iterator[None]:
    rate_limit.set_limiter(rate_limit.InMemorySlidingWindowLimiter())
    yield
    rate_limit.set_limiter(None)


@pytest.fixture  # type: ignore[misc]
def client() -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture  # type: ignore[misc]
def admin_client(client: TestClient) -> TestClient:
    admin = User(
        id=1,
        email="admin@example.com",
        hashed_password="x",
        name="Admin",
        role=UserRole.ADMIN,
        is_active=True,
    )
    app.dependency_overrides[deps.get_current_active_user] = lambda: admin
    return client


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["components"]["database"]["status"] == "healthy"
    assert body["components"]["redis"]["status"] == "disabled"


def test_public_booking_is_created_pending(client: TestClient) -> None:
    response = client.post(
        f"{API}/bookings/",
        json=booking_payload(),
        headers={"x-forwarded-for": "203.0.113.1"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["user_id"] is None
    assert body["time"] == "15:00"


def test_booking_validation(client: TestClient) -> None:
    response = client.post(
        f"{API}/bookings/",
        json=booking_payload(time="25:00", guest_count=0),
        headers={"x-forwarded-for": "203.0.113.2"},
    )
    assert response.status_code == 422


def test_booking_form_is_rate_limited_per_ip(client: TestClient) -> None:
    headers = {"x-forwarded-for": "203.0.113.3"}
    for remaining in range(4, -1, -1):
        created = client.post(f"{API}/bookings/", json=booking_payload(), headers=headers)
        assert created.status_code == 201
        assert created.headers["X-RateLimit-Limit"] == "5"
        assert created.headers["X-RateLimit-Remaining"] == str(remaining)

    response = client.post(f"{API}/bookings/", json=booking_payload(), headers=headers)
    assert response.status_code == 429
    assert response.headers["X-RateLimit-Remaining"] == "0"
    body = response.json()
    assert body["error_type"] == "RATE_LIMIT_ERROR"
    assert body["retry_after"] > 0
    assert int(response.headers["Retry-After"]) == body["retry_after"]

    # a different client is unaffected
    other = client.post(
        f"{API}/bookings/", json=booking_payload(), headers={"x-forwarded-for": "203.0.113.4"}
    )
    assert other.status_code == 201


def test_admin_routes_require_token(client: TestClient) -> None:
    assert client.get(f"{API}/analytics/dashboard").status_code == 401
    assert client.get(f"{API}/bookings/").status_code == 401


def test_register_login_and_role_check(client: TestClient) -> None:
    credentials = {"email": "customer@example.com", "password": "Str0ng!Pass"}
    registered = client.post(
        f"{API}/auth/register", json={"name": "Customer", **credentials}
    )
    assert registered.status_code == 201
    assert registered.json()["role"] == "USER"

    duplicate = client.post(f"{API}/auth/register", json={"name": "Customer", **credentials})
    assert duplicate.status_code == 409
    assert duplicate.json()["error_type"] == "CONFLICT"

    login = client.post(f"{API}/auth/login", json=credentials)
    assert login.status_code == 200
    token = login.json()["access_token"]

    # registering twice spent two of the five attempts for this address
    assert login.headers["X-RateLimit-Remaining"] == "2"

    response = client.get(
        f"{API}/analytics/dashboard", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 403
    assert response.json()["error_type"] == "AUTHORIZATION_ERROR"


def test_invalid_token_is_rejected(client: TestClient) -> None:
    response = client.get(
        f"{API}/analytics/dashboard", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401
    assert response.json()["error_type"] == "AUTHENTICATION_ERROR"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_weak_password_rejected(client: TestClient) -> None:
    response = client.post(
        f"{API}/auth/register",
        json={"name": "Weak", "email": "weak@example.com", "password": "password"},
    )
    assert response.status_code == 422


def test_login_is_rate_limited_per_email(client: TestClient) -> None:
    credentials = {"email": "nobody@example.com", "password": "wrong"}
    for _ in range(5):
        assert client.post(f"{API}/auth/login", json=credentials).status_code == 400

    response = client.post(f"{API}/auth/login", json=credentials)
    assert response.status_code == 429
    assert "Retry-After" in response.headers


def test_password_reset_is_strictly_limited(client: TestClient) -> None:
    body = {"email": "someone@example.com"}
    for _ in range(3):
        assert client.post(f"{API}/auth/password-reset", json=body).status_code == 202
    assert client.post(f"{API}/auth/password-reset", json=body).status_code == 429


def test_dashboard_and_status_update(admin_client: TestClient) -> None:
    created = admin_client.post(
        f"{API}/bookings/",
        json=booking_payload(type="CAFE", time="10:30"),
        headers={"x-forwarded-for": "198.51.100.7"},
    ).json()

    dashboard = admin_client.get(f"{API}/analytics/dashboard")
    assert dashboard.status_code == 200
    stats = dashboard.json()["stats"]
    assert stats["total_bookings"] >= 1
    assert stats["pending_bookings"] >= 1

    updated = admin_client.patch(
        f"{API}/bookings/{created['id']}/status",
        json={"status": "APPROVED", "admin_notes": "See you there"},
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "APPROVED"
    assert updated.json()["date"] == created["date"]

    listed = admin_client.get(f"{API}/bookings/", params={"status": "APPROVED"})
    assert created["id"] in [b["id"] for b in listed.json()]


def test_update_missing_booking(admin_client: TestClient) -> None:
    response = admin_client.patch(f"{API}/bookings/999999/status", json={"status": "APPROVED"})
    assert response.status_code == 404
    assert response.json() == {"detail": "Booking not found", "error_type": "NOT_FOUND"}


def test_revenue_forecast_endpoint(admin_client: TestClient) -> None:
    response = admin_client.get(f"{API}/analytics/revenue-forecast")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] in ("OK", "NOT_ENOUGH_DATA")
    assert len(body["historical_data"]) == 12
    assert len(body["forecast"]) == 3


def test_revenue_endpoints(admin_client: TestClient) -> None:
    for path in (
        "/analytics/revenue",
        "/analytics/revenue/by-type",
        "/analytics/revenue/over-time?interval=week",
        "/analytics/payments",
        "/analytics/top-customers",
        "/analytics/popular-services",
        "/analytics/cancellations",
        "/analytics/time-to-approval",
    ):
        assert admin_client.get(f"{API}{path}").status_code == 200, path


def test_revenue_range_validation(admin_client: TestClient) -> None:
    response = admin_client.get(
        f"{API}/analytics/revenue", params={"start": "2024-06-30", "end": "2024-06-01"}
    )
    assert response.status_code == 400
    assert response.json()["error_type"] == "VALIDATION_ERROR"
