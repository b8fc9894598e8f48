"""Notification outbox: enqueue, delivery, retry, dead-letter, rendering."""

from unittest.mock import AsyncMock, patch

import pytest

from app.core.config import settings
from app.models import OutboxEvent, OutboxStatus
from app.services import outbox
from app.services.email import build_message
from app.services.notifications import (
    BOOKING_CREATED,
    EVENT_REMINDER,
    PAYMENT_REJECTED,
    render,
    send_notification,
)

PAYLOAD = {
    "booking_id": 7,
    "reference": "QD000007",
    "facility": "Padel Tennis",
    "resource_id": 2,
    "date": "2026-10-20",
    "start_time": "10:00",
    "end_time": "11:00",
    "duration_minutes": 60,
    "total_price": 6000,
    "payment_method": "bank_transfer",
    "payment_status": "PENDING_PAYMENT",
    "to": "player@example.com",
}


class TestBackoff:
    def test_schedule(self):
        assert [outbox.next_backoff(n) for n in range(1, 6)] == [30, 120, 600, 1800, 7200]

    def test_clamps_past_the_end(self):
        assert outbox.next_backoff(9) == 7200
        assert outbox.next_backoff(0) == 30


@pytest.mark.asyncio
async def test_enqueue_is_idempotent(db):
    first = await outbox.enqueue(db, BOOKING_CREATED, 7, PAYLOAD)
    second = await outbox.enqueue(db, BOOKING_CREATED, 7, {"other": True})
    assert first.id == second.id
    assert first.idempotency_key == "booking.created:7"
    assert second.payload == PAYLOAD


@pytest.mark.asyncio
async def test_successful_delivery(db):
    event = await outbox.enqueue(db, BOOKING_CREATED, 7, PAYLOAD)
    sender = AsyncMock()

    assert await outbox.deliver(db, event, sender) is True
    sender.assert_awaited_once_with(event)
    assert event.status == OutboxStatus.SENT
    assert event.attempt_count == 1


@pytest.mark.asyncio
async def test_failure_backs_off_then_dead_letters(db):
    event = await outbox.enqueue(db, BOOKING_CREATED, 7, PAYLOAD)
    sender = AsyncMock(side_effect=ConnectionError("smtp down"))

    for attempt in range(1, settings.outbox_max_attempts):
        assert await outbox.deliver(db, event, sender) is False
        assert event.status == OutboxStatus.PENDING
        assert event.attempt_count == attempt
        assert event.last_error == "smtp down"

    assert await outbox.deliver(db, event, sender) is False
    assert event.status == OutboxStatus.FAILED
    assert event.attempt_count == settings.outbox_max_attempts


@pytest.mark.asyncio
async def test_failed_event_is_not_due(db):
    event = await outbox.enqueue(db, BOOKING_CREATED, 7, PAYLOAD)
    await outbox.deliver(db, event, AsyncMock(side_effect=RuntimeError("boom")))
    await db.commit()

    # Rescheduled 30 seconds out
    assert await outbox.fetch_pending(db) == []


@pytest.mark.asyncio
async def test_claim_due_leases_events(db):
    first = await outbox.enqueue(db, BOOKING_CREATED, 1, PAYLOAD)
    second = await outbox.enqueue(db, BOOKING_CREATED, 2, PAYLOAD)
    await db.commit()

    assert await outbox.claim_due(db) == [first.id, second.id]
    await db.commit()
    assert await outbox.claim_due(db) == []


@pytest.mark.asyncio
async def test_deliver_one(db):
    event = await outbox.enqueue(db, BOOKING_CREATED, 7, PAYLOAD)
    await db.commit()
    sender = AsyncMock()

    assert await outbox.deliver_one(db, event.id, sender) is True
    # Already SENT: a duplicate delivery task does nothing
    assert await outbox.deliver_one(db, event.id, sender) is None
    assert await outbox.deliver_one(db, 9999, sender) is None
    sender.assert_awaited_once()


@pytest.mark.asyncio
async def test_requeue_failed(db):
    event = await outbox.enqueue(db, BOOKING_CREATED, 7, PAYLOAD)
    event.status = OutboxStatus.FAILED
    event.attempt_count = 5
    await db.flush()

    requeued = await outbox.requeue_failed(db, event.id)
    assert requeued.status == OutboxStatus.PENDING
    assert requeued.attempt_count == 0
    # Only FAILED events can be requeued
    assert await outbox.requeue_failed(db, event.id) is None


class TestRender:
    def test_booking_created_bank_transfer(self):
        subject, body = render(BOOKING_CREATED, PAYLOAD)
        assert subject.startswith("Booking received - Padel Tennis")
        assert "QD000007" in body
        assert "transfer reference" in body

    def test_booking_created_cash(self):
        _, body = render(BOOKING_CREATED, PAYLOAD | {"payment_method": "cash"})
        assert "front desk" in body

    def test_payment_rejected_reason(self):
        subject, body = render(PAYMENT_REJECTED, PAYLOAD | {"reason": "Amount short"})
        assert "action required" in subject
        assert "Amount short" in body

    def test_reminder_wording(self):
        payload = {"title": "Padel Social", "date": "2026-10-22", "time": "18:00", "name": "Ayesha", "days_before": 1}
        subject, _ = render(EVENT_REMINDER, payload)
        assert subject.startswith("Reminder: Padel Social is tomorrow")
        subject, _ = render(EVENT_REMINDER, payload | {"days_before": 3})
        assert "in 3 days" in subject

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            render("booking.teleported", PAYLOAD)


@pytest.mark.asyncio
async def test_send_notification_emails_recipient():
    event = OutboxEvent(id=1, event_type=BOOKING_CREATED, aggregate_id="7", payload=PAYLOAD)
    with patch("app.services.notifications.send_email", new_callable=AsyncMock) as send_email:
        await send_notification(event)
    to, subject, _ = send_email.await_args.args
    assert to == "player@example.com"
    assert "Booking received" in subject


@pytest.mark.asyncio
async def test_send_notification_without_recipient_is_noop():
    event = OutboxEvent(id=1, event_type=BOOKING_CREATED, aggregate_id="7", payload=PAYLOAD | {"to": None})
    with patch("app.services.notifications.send_email", new_callable=AsyncMock) as send_email:
        await send_notification(event)
    send_email.assert_not_awaited()


def test_build_message_headers():
    message = build_message("player@example.com", "Booking received", "Hello")
    assert message["To"] == "player@example.com"
    assert message["From"] == "The Quarterdeck <bookings@thequarterdeck.pk>"
    assert message["Message-ID"].endswith("@thequarterdeck.pk>")
    assert message.get_content().strip() == "Hello"
