"""Booking and event notifications.

The on_* hooks are what the booking engine and the routes call. They only
write an outbox row (same transaction, no network) and return; the worker
later calls send_notification() for each row.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking
from app.models.event import Event, EventRegistration
from app.models.outbox import OutboxEvent
from app.services import outbox
from app.services.email import send_email

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking.created"
BOOKING_CANCELLED = "booking.cancelled"
PAYMENT_VERIFIED = "payment.verified"
PAYMENT_REJECTED = "payment.rejected"
EVENT_REMINDER = "event.reminder"

BRAND = "The Quarterdeck"


def _booking_snapshot(booking: Booking) -> dict:
    return {
        "booking_id": booking.id,
        "reference": f"QD{booking.id:06d}",
        "facility": booking.facility.name if booking.facility else None,
        "resource_id": booking.resource_id,
        "date": booking.booking_date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "duration_minutes": booking.duration_minutes,
        "total_price": booking.total_price,
        "payment_method": booking.payment_method.value,
        "payment_status": booking.payment_status.value,
        "to": booking.contact_email,
    }


async def on_booking_created(db: AsyncSession, booking: Booking) -> OutboxEvent:
    return await outbox.enqueue(db, BOOKING_CREATED, booking.id, _booking_snapshot(booking))


async def on_booking_cancelled(db: AsyncSession, booking: Booking, reason: str | None = None) -> OutboxEvent:
    payload = _booking_snapshot(booking) | {"reason": reason}
    return await outbox.enqueue(db, BOOKING_CANCELLED, booking.id, payload)


async def on_payment_verified(db: AsyncSession, booking: Booking) -> OutboxEvent:
    return await outbox.enqueue(db, PAYMENT_VERIFIED, booking.id, _booking_snapshot(booking))


async def on_payment_rejected(db: AsyncSession, booking: Booking, reason: str | None = None) -> OutboxEvent:
    # A booking can be rejected more than once (proof resubmitted), key per rejection
    payload = _booking_snapshot(booking) | {"reason": reason}
    key = f"{PAYMENT_REJECTED}:{booking.id}:{uuid.uuid4().hex}"
    return await outbox.enqueue(db, PAYMENT_REJECTED, booking.id, payload, idempotency_key=key)


async def on_event_reminder(
    db: AsyncSession, event: Event, registration: EventRegistration, days_before: int, sent_on: str
) -> OutboxEvent:
    payload = {
        "event_id": event.id,
        "title": event.title,
        "date": event.schedule_day.isoformat() if event.schedule_day else None,
        "time": event.schedule_time.strftime("%H:%M") if event.schedule_time else "TBD",
        "name": registration.full_name,
        "days_before": days_before,
        "to": registration.email,
    }
    return await outbox.enqueue(
        db,
        EVENT_REMINDER,
        registration.id,
        payload,
        idempotency_key=f"{EVENT_REMINDER}:{registration.id}:{days_before}:{sent_on}",
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _booking_lines(p: dict) -> str:
    return (
        f"Reference: {p['reference']}\n"
        f"Facility: {p['facility']} (unit {p['resource_id']})\n"
        f"Date: {p['date']}\n"
        f"Time: {p['start_time']} - {p['end_time']} ({p['duration_minutes']} minutes)\n"
        f"Total: {p['total_price']}\n"
    )


def render(event_type: str, payload: dict) -> tuple[str, str]:
    """Return (subject, body) for an outbox event."""
    if event_type == BOOKING_CREATED:
        if payload["payment_method"] == "bank_transfer":
            how = "Please transfer the total and submit your transfer reference to confirm the booking."
        else:
            how = "Please pay at the front desk on arrival to confirm the booking."
        return (
            f"Booking received - {payload['facility']} | {BRAND}",
            f"Your booking has been received.\n\n{_booking_lines(payload)}\n{how}\n",
        )
    if event_type == PAYMENT_VERIFIED:
        return (
            f"Payment confirmed - your booking is ready | {BRAND}",
            f"We have verified your payment. Your booking is confirmed.\n\n{_booking_lines(payload)}",
        )
    if event_type == PAYMENT_REJECTED:
        reason = payload.get("reason") or "The payment could not be matched."
        return (
            f"Payment verification issue - action required | {BRAND}",
            f"We could not verify your payment: {reason}\n\n{_booking_lines(payload)}\n"
            "Please submit a corrected transfer reference.\n",
        )
    if event_type == BOOKING_CANCELLED:
        reason = payload.get("reason")
        body = f"Your booking has been cancelled.\n\n{_booking_lines(payload)}"
        if reason:
            body += f"\nReason: {reason}\n"
        return f"Booking cancelled - {payload['facility']} | {BRAND}", body
    if event_type == EVENT_REMINDER:
        when = "tomorrow" if payload["days_before"] == 1 else f"in {payload['days_before']} days"
        return (
            f"Reminder: {payload['title']} is {when} | {BRAND}",
            f"Hi {payload['name']},\n\n{payload['title']} is {when}, on {payload['date']} at {payload['time']}.\n",
        )
    raise ValueError(f"Unknown notification type: {event_type}")


async def send_notification(event: OutboxEvent) -> None:
    """Outbox sender: render and email. Events with no recipient are a no-op."""
    to = event.payload.get("to")
    if not to:
        logger.info("Outbox event %s (%s) has no recipient, nothing to send", event.id, event.event_type)
        return
    subject, body = render(event.event_type, event.payload)
    await send_email(to, subject, body)
