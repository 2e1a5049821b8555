"""
Integration tests for the REST API endpoints.

Uses an in-memory SQLite database; the DB session and mailer dependencies
are overridden and the reconciliation worker is patched out.
"""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.domain.enums import BookingStatus, UserRole
from src.infrastructure.mailer import Mailer
from src.infrastructure.security import create_access_token
from tests.conftest import make_booking, make_user, make_vehicle


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory):
    """AsyncClient backed by SQLite with rate limiting disabled."""
    with (
        patch(
            "src.workers.reconciler.start_reconcile_loop",
            new_callable=AsyncMock,
        ),
        patch(
            "src.workers.reconciler.stop_reconcile_loop",
            new_callable=AsyncMock,
        ),
    ):
        # DB session dependency
        async def _test_db():
            async with session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        from src.api.app import create_app
        from src.api.dependencies import get_db, get_mailer, get_session_factory
        from src.api.middleware import limiter

        app = create_app()
        app.dependency_overrides[get_db] = _test_db
        app.dependency_overrides[get_mailer] = lambda: Mailer(api_key=None)
        app.dependency_overrides[get_session_factory] = lambda: session_factory
        limiter.enabled = False

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

        limiter.enabled = True


@pytest_asyncio.fixture
async def people(db_session):
    """One user per role plus a vehicle with an assigned driver."""
    users = {
        "admin": await make_user(db_session, UserRole.ADMIN, "Ada"),
        "owner": await make_user(db_session, UserRole.OWNER, "Olivia"),
        "driver": await make_user(db_session, UserRole.DRIVER, "Dana"),
        "other_driver": await make_user(db_session, UserRole.DRIVER, "Diego"),
        "customer": await make_user(db_session, UserRole.CUSTOMER, "Cara"),
        "other_customer": await make_user(db_session, UserRole.CUSTOMER, "Chen"),
    }
    users["vehicle"] = await make_vehicle(
        db_session, users["owner"], driver=users["driver"]
    )
    return users


def auth(user) -> dict[str, str]:
    token = create_access_token(user.id, UserRole(user.role).value)
    return {"Authorization": f"Bearer {token}"}


async def _book(client, people, **extra) -> dict:
    resp = await client.post(
        "/api/v1/bookings",
        json={"vehicle_id": people["vehicle"].id, "source": "Airport", **extra},
        headers=auth(people["customer"]),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Health & auth ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_register_login_me(client: AsyncClient):
    resp = await client.post(
        "/api/v1/auth/register",
        json={
            "name": "New Owner",
            "email": "new.owner@example.com",
            "password": "s3cret-pass",
            "role": "owner",
        },
    )
    assert resp.status_code == 201

    resp = await client.post(
        "/api/v1/auth/login",
        json={"email": "new.owner@example.com", "password": "s3cret-pass"},
    )
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    resp = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "owner"
    assert resp.json()["total_revenue"] == 0.0


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient):
    body = {
        "name": "Twice",
        "email": "twice@example.com",
        "password": "s3cret-pass",
        "role": "customer",
    }
    assert (await client.post("/api/v1/auth/register", json=body)).status_code == 201
    resp = await client.post("/api/v1/auth/register", json=body)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient):
    await client.post(
        "/api/v1/auth/register",
        json={
            "name": "Someone",
            "email": "someone@example.com",
            "password": "right-pass",
            "role": "customer",
        },
    )
    resp = await client.post(
        "/api/v1/auth/login",
        json={"email": "someone@example.com", "password": "wrong-pass"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_validation_errors_are_400(client: AsyncClient):
    resp = await client.post("/api/v1/auth/register", json={"name": "No Email"})
    assert resp.status_code == 400
    assert "detail" in resp.json()


@pytest.mark.asyncio
async def test_missing_token_is_401(client: AsyncClient, people):
    resp = await client.get("/api/v1/bookings/my")
    assert resp.status_code == 401


# ── Vehicles ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_owner_registers_and_lists_vehicle(client: AsyncClient, people):
    resp = await client.post(
        "/api/v1/vehicles",
        json={
            "make": "Honda",
            "model": "City",
            "year": 2020,
            "registration_number": "MH-02-EF-9012",
        },
        headers=auth(people["owner"]),
    )
    assert resp.status_code == 201
    assert resp.json()["owner_id"] == people["owner"].id

    resp = await client.get("/api/v1/vehicles/my", headers=auth(people["owner"]))
    assert {v["registration_number"] for v in resp.json()} == {
        "KA-01-AB-1234",
        "MH-02-EF-9012",
    }


@pytest.mark.asyncio
async def test_customer_cannot_register_vehicle(client: AsyncClient, people):
    resp = await client.post(
        "/api/v1/vehicles",
        json={
            "make": "Honda",
            "model": "City",
            "year": 2020,
            "registration_number": "X-1",
        },
        headers=auth(people["customer"]),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_owner_assigns_driver(client: AsyncClient, people):
    resp = await client.post(
        f"/api/v1/vehicles/{people['vehicle'].id}/assign-driver",
        json={"driver_id": people["other_driver"].id},
        headers=auth(people["owner"]),
    )
    assert resp.status_code == 200
    assert resp.json()["driver_id"] == people["other_driver"].id

    booking = await _book(client, people)
    assert booking["driver_id"] == people["other_driver"].id


@pytest.mark.asyncio
async def test_driver_self_assigns(client: AsyncClient, people):
    resp = await client.post(
        f"/api/v1/vehicles/{people['vehicle'].id}/assign-driver",
        headers=auth(people["other_driver"]),
    )
    assert resp.status_code == 200
    assert resp.json()["driver_id"] == people["other_driver"].id


# ── Bookings ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_booking_lifecycle_credits_owner(client: AsyncClient, people):
    booking = await _book(
        client,
        people,
        fare="250",
        source_coords={"lat": 0, "lng": 0},
        destination_coords={"lat": 0, "lng": 1},
    )
    assert booking["status"] == "pending"
    assert booking["fare"] == 250.0
    assert booking["distance_km"] == 111.19
    assert booking["driver_id"] == people["driver"].id

    for status in ("accepted", "ongoing", "completed"):
        resp = await client.put(
            f"/api/v1/bookings/{booking['id']}/status/{status}",
            headers=auth(people["driver"]),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["message"] == f"Booking {status}"
        assert resp.json()["booking"]["status"] == status

    # Redundant completion is accepted without a second credit.
    resp = await client.put(
        f"/api/v1/bookings/{booking['id']}/status/completed",
        headers=auth(people["driver"]),
    )
    assert resp.status_code == 200

    resp = await client.get("/api/v1/auth/me", headers=auth(people["owner"]))
    assert resp.json()["total_revenue"] == 250.0


@pytest.mark.asyncio
async def test_non_numeric_fare_is_400(client: AsyncClient, people):
    resp = await client.post(
        "/api/v1/bookings",
        json={"vehicle_id": people["vehicle"].id, "fare": True},
        headers=auth(people["customer"]),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_booking_unknown_vehicle_is_400(client: AsyncClient, people):
    resp = await client.post(
        "/api/v1/bookings",
        json={"vehicle_id": 999},
        headers=auth(people["customer"]),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["pending", "flying"])
async def test_unrequestable_status_is_400(client: AsyncClient, people, status):
    booking = await _book(client, people)
    resp = await client.put(
        f"/api/v1/bookings/{booking['id']}/status/{status}",
        headers=auth(people["driver"]),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_customer_cannot_accept(client: AsyncClient, people):
    booking = await _book(client, people)
    resp = await client.put(
        f"/api/v1/bookings/{booking['id']}/status/accepted",
        headers=auth(people["customer"]),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_cancel_completed_is_400(client: AsyncClient, people, db_session):
    completed = await make_booking(
        db_session,
        people["customer"],
        people["vehicle"],
        driver=people["driver"],
        status=BookingStatus.COMPLETED,
    )
    resp = await client.put(
        f"/api/v1/bookings/{completed.id}/status/cancelled",
        headers=auth(people["customer"]),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_foreign_booking_is_404(client: AsyncClient, people):
    booking = await _book(client, people)
    resp = await client.get(
        f"/api/v1/bookings/{booking['id']}", headers=auth(people["other_customer"])
    )
    assert resp.status_code == 404

    resp = await client.put(
        f"/api/v1/bookings/{booking['id']}/status/completed",
        headers=auth(people["other_driver"]),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_my_bookings(client: AsyncClient, people):
    await _book(client, people)
    resp = await client.get("/api/v1/bookings/my", headers=auth(people["customer"]))
    assert resp.status_code == 200
    assert len(resp.json()) == 1

    resp = await client.get(
        "/api/v1/bookings/my", headers=auth(people["other_customer"])
    )
    assert resp.json() == []


@pytest.mark.asyncio
async def test_revenue_endpoint(client: AsyncClient, people, db_session):
    booking = await _book(client, people)
    url = f"/api/v1/bookings/{booking['id']}/revenue"

    resp = await client.put(url, json={"amount": 180}, headers=auth(people["owner"]))
    assert resp.status_code == 200
    assert resp.json()["booking"]["fare"] == 180.0

    rival = await make_user(db_session, UserRole.OWNER, "Rival")
    resp = await client.put(url, json={"amount": 10}, headers=auth(rival))
    assert resp.status_code == 403

    resp = await client.put(url, json={"amount": -1}, headers=auth(people["owner"]))
    assert resp.status_code == 400

    resp = await client.put(
        "/api/v1/bookings/999/revenue",
        json={"amount": 10},
        headers=auth(people["owner"]),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_revenue_amount_must_be_a_number(client: AsyncClient, people):
    booking = await _book(client, people)
    url = f"/api/v1/bookings/{booking['id']}/revenue"

    for amount in ("50", True, None):
        resp = await client.put(
            url, json={"amount": amount}, headers=auth(people["owner"])
        )
        assert resp.status_code == 400, amount
        assert resp.json()["detail"] == "Invalid revenue amount"

    resp = await client.put(url, json={}, headers=auth(people["owner"]))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_revenue_is_frozen_once_settled(client: AsyncClient, people):
    booking = await _book(client, people, fare=50)
    for status in ("accepted", "ongoing", "completed"):
        resp = await client.put(
            f"/api/v1/bookings/{booking['id']}/status/{status}",
            headers=auth(people["driver"]),
        )
        assert resp.status_code == 200, resp.text

    resp = await client.put(
        f"/api/v1/bookings/{booking['id']}/revenue",
        json={"amount": 0},
        headers=auth(people["owner"]),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Revenue already settled for this booking"

    resp = await client.get(
        f"/api/v1/bookings/{booking['id']}", headers=auth(people["owner"])
    )
    assert resp.json()["fare"] == 50.0
    assert resp.json()["revenue_applied"] is True

    resp = await client.get("/api/v1/auth/me", headers=auth(people["owner"]))
    assert resp.json()["total_revenue"] == 50.0


@pytest.mark.asyncio
async def test_customer_edits_and_deletes_pending_booking(client: AsyncClient, people):
    booking = await _book(client, people)
    headers = auth(people["customer"])

    resp = await client.put(
        f"/api/v1/bookings/{booking['id']}",
        json={"destination": "Stadium"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["destination"] == "Stadium"

    resp = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/bookings/{booking['id']}", headers=headers)
    assert resp.status_code == 404


# ── Admin ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_admin_analytics(client: AsyncClient, people, db_session):
    await make_booking(
        db_session,
        people["customer"],
        people["vehicle"],
        status=BookingStatus.COMPLETED,
        fare=70.0,
    )
    await make_booking(
        db_session, people["customer"], people["vehicle"], status=BookingStatus.CANCELLED
    )

    resp = await client.get("/api/v1/admin/analytics", headers=auth(people["admin"]))
    assert resp.status_code == 200
    assert resp.json() == {
        "total_vehicles": 1,
        "total_drivers": 2,
        "total_bookings": 2,
        "cancelled_bookings": 1,
        "revenue_generated": 70.0,
    }


@pytest.mark.asyncio
async def test_admin_routes_need_admin(client: AsyncClient, people):
    resp = await client.get("/api/v1/admin/analytics", headers=auth(people["owner"]))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_paginates_drivers(client: AsyncClient, people):
    resp = await client.get(
        "/api/v1/admin/drivers?page=2&limit=1", headers=auth(people["admin"])
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert body["page"] == 2
    assert [d["id"] for d in body["items"]] == [people["other_driver"].id]


@pytest.mark.asyncio
async def test_admin_vehicle_delete_cascades(client: AsyncClient, people):
    booking = await _book(client, people)
    resp = await client.delete(
        f"/api/v1/admin/vehicles/{people['vehicle'].id}", headers=auth(people["admin"])
    )
    assert resp.status_code == 200

    resp = await client.get(
        f"/api/v1/bookings/{booking['id']}", headers=auth(people["customer"])
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_admin_driver_delete_unassigns(client: AsyncClient, people):
    resp = await client.delete(
        f"/api/v1/admin/drivers/{people['driver'].id}", headers=auth(people["admin"])
    )
    assert resp.status_code == 200

    resp = await client.get("/api/v1/vehicles", headers=auth(people["customer"]))
    assert resp.json()[0]["driver_id"] is None

    # A deleted driver's token no longer authenticates.
    resp = await client.get("/api/v1/bookings/my", headers=auth(people["driver"]))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_admin_reconcile(client: AsyncClient, people, db_session):
    await make_booking(
        db_session,
        people["customer"],
        people["vehicle"],
        driver=people["driver"],
        status=BookingStatus.COMPLETED,
        fare=33.0,
    )
    resp = await client.post("/api/v1/admin/reconcile", headers=auth(people["admin"]))
    assert resp.status_code == 200
    assert resp.json() == {"settled": 1}

    resp = await client.get("/api/v1/auth/me", headers=auth(people["owner"]))
    assert resp.json()["total_revenue"] == 33.0


@pytest.mark.asyncio
async def test_send_email_without_provider(client: AsyncClient, people):
    resp = await client.post(
        "/api/v1/utils/test-email",
        json={"to": "ops@example.com"},
        headers=auth(people["admin"]),
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Email delivery disabled"


@pytest.mark.asyncio
async def test_owner_edits_and_deletes_own_vehicle(client: AsyncClient, people, db_session):
    url = f"/api/v1/vehicles/{people['vehicle'].id}"

    resp = await client.put(url, json={"year": 2023}, headers=auth(people["owner"]))
    assert resp.status_code == 200
    assert resp.json()["year"] == 2023

    rival = await make_user(db_session, UserRole.OWNER, "Rival")
    resp = await client.put(url, json={"year": 1999}, headers=auth(rival))
    assert resp.status_code == 404
    resp = await client.delete(url, headers=auth(rival))
    assert resp.status_code == 404

    resp = await client.delete(url, headers=auth(people["owner"]))
    assert resp.status_code == 200
    resp = await client.get("/api/v1/vehicles/my", headers=auth(people["owner"]))
    assert resp.json() == []


@pytest.mark.asyncio
async def test_admin_patches_and_lists_bookings(client: AsyncClient, people):
    booking = await _book(client, people)
    headers = auth(people["admin"])

    resp = await client.patch(
        f"/api/v1/admin/bookings/{booking['id']}",
        json={"destination": "Harbour"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["destination"] == "Harbour"

    resp = await client.get("/api/v1/admin/bookings", headers=headers)
    assert resp.json()["total"] == 1

    resp = await client.delete(f"/api/v1/admin/bookings/{booking['id']}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get("/api/v1/admin/bookings", headers=headers)
    assert resp.json()["items"] == []
