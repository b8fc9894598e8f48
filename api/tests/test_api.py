"""API tests: health, catalog, availability, bookings, admin, memberships, events."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.database import async_session_factory
from app.models import Event, EventRegistration, OutboxEvent, OutboxStatus, RegistrationStatus
from app.services.booking_engine import venue_now

API = "/api/v1"
ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


def _tomorrow() -> str:
    return (venue_now().date() + timedelta(days=1)).isoformat()


def _booking_body(**overrides) -> dict:
    body = {
        "facility_slug": "padel-tennis",
        "resource_id": 1,
        "date": _tomorrow(),
        "start_time": "10:00",
        "end_time": "11:00",
        "duration_minutes": 60,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Catalog and availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_facilities(client, catalog):
    response = await client.get(f"{API}/facilities")
    assert response.status_code == 200
    slugs = [f["slug"] for f in response.json()]
    assert slugs == ["multipurpose-hall", "padel-tennis"]


@pytest.mark.asyncio
async def test_facility_add_ons(client, catalog):
    response = await client.get(f"{API}/facilities/padel-tennis/addons")
    assert response.status_code == 200
    assert {a["id"]: a["price"] for a in response.json()} == {"padel-balls": 300, "padel-racket": 500}


@pytest.mark.asyncio
async def test_unknown_facility_404(client, catalog):
    response = await client.get(f"{API}/facilities/bowling")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_availability_grid(client, catalog):
    await client.post(f"{API}/bookings", json=_booking_body(start_time="10:00", end_time="11:30", duration_minutes=90))

    response = await client.get(f"{API}/facilities/padel-tennis/availability", params={"date": _tomorrow()})
    assert response.status_code == 200
    data = response.json()
    assert [r["resource_id"] for r in data["resources"]] == [1, 2, 3, 4]

    court_1 = {s["start_time"]: s["is_available"] for s in data["resources"][0]["slots"]}
    assert court_1["10:00"] is False
    assert court_1["11:00"] is False
    assert court_1["12:00"] is True
    court_2 = {s["start_time"]: s["is_available"] for s in data["resources"][1]["slots"]}
    assert court_2["10:00"] is True


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_booking(client, catalog):
    response = await client.post(
        f"{API}/bookings",
        json=_booking_body(
            payer_type="MEMBER",
            payer_membership_number="QD-0001",
            add_ons=[{"id": "padel-racket", "quantity": 2}],
            contact_email="player@example.com",
        ),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["payment_status"] == "PENDING_PAYMENT"
    assert data["base_price"] == 6000
    assert data["discount"] == 1500
    assert data["total_price"] == 5500
    assert data["add_ons"] == [{"label": "Padel Racket Rental", "quantity": 2, "unit_price": 500}]


@pytest.mark.asyncio
async def test_double_booking_409(client, catalog):
    first = await client.post(f"{API}/bookings", json=_booking_body())
    assert first.status_code == 201

    overlap = await client.post(
        f"{API}/bookings", json=_booking_body(start_time="10:30", end_time="11:30")
    )
    assert overlap.status_code == 409
    assert overlap.json()["detail"] == "This time slot is already booked"

    back_to_back = await client.post(f"{API}/bookings", json=_booking_body(start_time="11:00", end_time="12:00"))
    assert back_to_back.status_code == 201


@pytest.mark.asyncio
async def test_validation_error_shape(client, catalog):
    response = await client.post(
        f"{API}/bookings", json=_booking_body(payer_type="MEMBER", payer_membership_number="12345")
    )
    assert response.status_code == 422
    assert response.json()["detail"] == [
        {"rule": "membership_number", "message": "Invalid membership number format. Expected QD-XXXX."}
    ]


@pytest.mark.asyncio
async def test_booking_unknown_facility_404(client, catalog):
    response = await client.post(f"{API}/bookings", json=_booking_body(facility_slug="bowling"))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booked_intervals_exclude_cancelled(client, catalog):
    first = (await client.post(f"{API}/bookings", json=_booking_body())).json()
    await client.post(f"{API}/bookings", json=_booking_body(start_time="12:00", end_time="13:00"))
    await client.patch(f"{API}/bookings/{first['id']}/cancel", json={"reason": "plans changed"})

    response = await client.get(f"{API}/bookings", params={"facility": "padel-tennis", "date": _tomorrow()})
    assert response.status_code == 200
    assert [b["start_time"] for b in response.json()] == ["12:00:00"]


@pytest.mark.asyncio
async def test_cancel_twice_409(client, catalog):
    booking = (await client.post(f"{API}/bookings", json=_booking_body())).json()

    response = await client.patch(f"{API}/bookings/{booking['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    again = await client.patch(f"{API}/bookings/{booking['id']}/cancel")
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_get_missing_booking_404(client, catalog):
    response = await client.get(f"{API}/bookings/9999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_oversized_add_on_quantity_422(client, catalog):
    response = await client.post(
        f"{API}/bookings", json=_booking_body(add_ons=[{"id": "padel-racket", "quantity": 10**19}])
    )
    assert response.status_code == 422
    assert response.json()["detail"][0]["rule"] == "add_ons"


@pytest.mark.asyncio
async def test_overlong_payment_reference_422(client, catalog):
    booking = (await client.post(f"{API}/bookings", json=_booking_body(payment_method="bank_transfer"))).json()
    response = await client.post(f"{API}/bookings/{booking['id']}/payment-proof", json={"reference": "T" * 101})
    assert response.status_code == 422
    assert response.json()["detail"][0]["rule"] == "payment_reference"


@pytest.mark.asyncio
async def test_booking_party_details(client, catalog):
    response = await client.post(f"{API}/bookings", json=_booking_body(is_matchmaking=True, current_players=2))
    assert response.status_code == 201
    data = response.json()
    assert data["is_matchmaking"] is True
    assert data["coach_booked"] is False
    assert (data["current_players"], data["max_players"]) == (2, 4)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_admin_requires_key(client, catalog):
    missing = await client.get(f"{API}/admin/bookings")
    assert missing.status_code == 401
    wrong = await client.get(f"{API}/admin/bookings", headers={"X-Admin-Key": "nope"})
    assert wrong.status_code == 403
    # Header bytes are decoded as latin-1, so non-ASCII keys reach the comparison
    non_ascii = await client.get(f"{API}/admin/bookings", headers={"X-Admin-Key": "caf\xe9".encode("latin-1")})
    assert non_ascii.status_code == 403


@pytest.mark.asyncio
async def test_bank_transfer_verified_by_admin(client, catalog):
    booking = (
        await client.post(
            f"{API}/bookings",
            json=_booking_body(payment_method="bank_transfer", contact_email="player@example.com"),
        )
    ).json()

    proof = await client.post(f"{API}/bookings/{booking['id']}/payment-proof", json={"reference": "TRX-42"})
    assert proof.json()["payment_status"] == "PENDING_VERIFICATION"

    queue = await client.get(
        f"{API}/admin/bookings", params={"payment_status": "PENDING_VERIFICATION"}, headers=ADMIN_HEADERS
    )
    assert [b["id"] for b in queue.json()] == [booking["id"]]

    verified = await client.post(f"{API}/admin/bookings/{booking['id']}/verify-payment", headers=ADMIN_HEADERS)
    assert verified.status_code == 200
    assert verified.json()["status"] == "CONFIRMED"
    assert verified.json()["payment_status"] == "VERIFIED"

    async with async_session_factory() as db:
        result = await db.execute(select(OutboxEvent.event_type).order_by(OutboxEvent.id))
        assert result.scalars().all() == ["booking.created", "payment.verified"]


@pytest.mark.asyncio
async def test_admin_reject_then_resubmit(client, catalog):
    booking = (await client.post(f"{API}/bookings", json=_booking_body(payment_method="bank_transfer"))).json()
    await client.post(f"{API}/bookings/{booking['id']}/payment-proof", json={"reference": "TRX-1"})

    rejected = await client.post(
        f"{API}/admin/bookings/{booking['id']}/reject-payment", json={"reason": "Amount short"}, headers=ADMIN_HEADERS
    )
    assert rejected.status_code == 200
    assert rejected.json()["payment_status"] == "REJECTED"
    assert rejected.json()["status"] == "PENDING"

    resubmitted = await client.post(f"{API}/bookings/{booking['id']}/payment-proof", json={"reference": "TRX-2"})
    assert resubmitted.json()["payment_status"] == "PENDING_VERIFICATION"

    again = await client.post(
        f"{API}/admin/bookings/{booking['id']}/reject-payment", json={"reason": "Wrong account"}, headers=ADMIN_HEADERS
    )
    assert again.status_code == 200

    async with async_session_factory() as db:
        result = await db.execute(
            select(OutboxEvent.payload).where(OutboxEvent.event_type == "payment.rejected").order_by(OutboxEvent.id)
        )
        assert [p["reason"] for p in result.scalars().all()] == ["Amount short", "Wrong account"]


@pytest.mark.asyncio
async def test_admin_cancel_confirmed_booking(client, catalog):
    booking = (await client.post(f"{API}/bookings", json=_booking_body())).json()
    await client.post(f"{API}/admin/bookings/{booking['id']}/verify-payment", headers=ADMIN_HEADERS)

    response = await client.post(
        f"{API}/admin/bookings/{booking['id']}/cancel", json={"reason": "Court maintenance"}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 200
    assert response.json()["cancellation_reason"] == "Court maintenance"


@pytest.mark.asyncio
async def test_admin_requeue_failed_notification(client, catalog):
    async with async_session_factory() as db:
        db.add(
            OutboxEvent(
                event_type="booking.created",
                aggregate_id="1",
                payload={},
                idempotency_key="booking.created:1",
                status=OutboxStatus.FAILED,
                attempt_count=5,
            )
        )
        await db.commit()

    failed = await client.get(f"{API}/admin/outbox/failed", headers=ADMIN_HEADERS)
    event_id = failed.json()[0]["id"]

    response = await client.post(f"{API}/admin/outbox/{event_id}/requeue", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"
    assert response.json()["attempt_count"] == 0

    again = await client.post(f"{API}/admin/outbox/{event_id}/requeue", headers=ADMIN_HEADERS)
    assert again.status_code == 404


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_membership_tiers(client, catalog):
    response = await client.get(f"{API}/memberships/tiers")
    assert response.status_code == 200
    assert [t["tier"] for t in response.json()] == ["FOUNDING", "GOLD", "SILVER", "GUEST"]


@pytest.mark.asyncio
async def test_membership_lookup(client, catalog):
    found = await client.get(f"{API}/memberships/QD-0004")
    assert found.json() == {"membership_number": "QD-0004", "tier": "GOLD", "status": "EXPIRED"}

    assert (await client.get(f"{API}/memberships/QD-9999")).status_code == 404
    assert (await client.get(f"{API}/memberships/garbage")).status_code == 422


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@pytest.fixture
async def social(catalog):
    async with async_session_factory() as db:
        event = Event(
            facility_id=catalog.padel_id,
            title="Padel Social",
            schedule_day=venue_now().date() + timedelta(days=2),
            capacity=1,
        )
        db.add(event)
        await db.commit()
        return event.id


@pytest.mark.asyncio
async def test_event_registration_and_approval(client, social):
    events = await client.get(f"{API}/events")
    assert [e["title"] for e in events.json()] == ["Padel Social"]

    created = await client.post(
        f"{API}/events/{social}/registrations", json={"full_name": "Ayesha", "email": "ayesha@example.com"}
    )
    assert created.status_code == 201
    registration = created.json()
    assert registration["status"] == "PENDING"

    full = await client.post(f"{API}/events/{social}/registrations", json={"full_name": "Bilal"})
    assert full.status_code == 409

    approved = await client.post(
        f"{API}/admin/events/registrations/{registration['id']}/approve", headers=ADMIN_HEADERS
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"

    async with async_session_factory() as db:
        stored = await db.get(EventRegistration, registration["id"])
        assert stored.status == RegistrationStatus.APPROVED


@pytest.mark.asyncio
async def test_register_for_missing_event(client, catalog):
    response = await client.post(f"{API}/events/999/registrations", json={"full_name": "Ayesha"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_overlong_phone_422(client, social):
    response = await client.post(
        f"{API}/events/{social}/registrations", json={"full_name": "Ayesha", "phone": "0" * 51}
    )
    assert response.status_code == 422
