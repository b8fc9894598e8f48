"""Transactional outbox for notifications.

enqueue() is called inside the request transaction, so an event exists if and
only if the change that caused it was committed. The worker calls claim_due()
to lease due events, then deliver_one() per event: it hands the event to a
sender and marks it SENT, or reschedules it with backoff, or gives up and
marks it FAILED.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.outbox import OutboxEvent, OutboxStatus

logger = logging.getLogger(__name__)

BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]
DISPATCH_LEASE_SECONDS = 300

Sender = Callable[[OutboxEvent], Awaitable[None]]


def _now() -> datetime:
    return datetime.now(UTC)


def next_backoff(attempt_number: int) -> int:
    """Backoff delay in seconds for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


async def enqueue(
    db: AsyncSession,
    event_type: str,
    aggregate_id: str | int,
    payload: dict | None = None,
    idempotency_key: str | None = None,
) -> OutboxEvent:
    """Add an event to the outbox unless one with the same key already exists."""
    key = idempotency_key or f"{event_type}:{aggregate_id}"

    result = await db.execute(select(OutboxEvent).where(OutboxEvent.idempotency_key == key))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    event = OutboxEvent(
        event_type=event_type,
        aggregate_id=str(aggregate_id),
        payload=payload or {},
        idempotency_key=key,
        status=OutboxStatus.PENDING,
        attempt_count=0,
        next_attempt_at=_now(),
    )
    db.add(event)
    await db.flush()
    return event


async def fetch_pending(db: AsyncSession, limit: int | None = None) -> list[OutboxEvent]:
    """Due PENDING events, oldest first. Rows locked by another worker are skipped."""
    stmt = (
        select(OutboxEvent)
        .where(OutboxEvent.status == OutboxStatus.PENDING, OutboxEvent.next_attempt_at <= _now())
        .order_by(OutboxEvent.next_attempt_at, OutboxEvent.id)
        .limit(limit or settings.outbox_batch_size)
        .with_for_update(skip_locked=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


def mark_sent(event: OutboxEvent, attempt_count: int) -> None:
    event.status = OutboxStatus.SENT
    event.attempt_count = attempt_count
    event.last_error = None


def mark_failed(event: OutboxEvent, attempt_count: int, error: str, terminal: bool) -> None:
    event.attempt_count = attempt_count
    event.last_error = error[:1000]
    if terminal:
        event.status = OutboxStatus.FAILED
    else:
        event.next_attempt_at = _now() + timedelta(seconds=next_backoff(attempt_count))


async def deliver(db: AsyncSession, event: OutboxEvent, sender: Sender) -> bool:
    """Attempt one delivery. Returns True when the event was sent."""
    attempt_number = event.attempt_count + 1
    try:
        await sender(event)
    except Exception as exc:
        terminal = attempt_number >= settings.outbox_max_attempts
        mark_failed(event, attempt_number, str(exc) or exc.__class__.__name__, terminal)
        if terminal:
            logger.error("Outbox event %s (%s) failed permanently after %s attempts", event.id, event.event_type, attempt_number)
        else:
            logger.warning(
                "Outbox event %s (%s) failed on attempt %s, retrying in %ss: %s",
                event.id,
                event.event_type,
                attempt_number,
                next_backoff(attempt_number),
                exc,
            )
        await db.flush()
        return False

    mark_sent(event, attempt_number)
    await db.flush()
    logger.info("Delivered outbox event %s type=%s attempts=%s", event.id, event.event_type, attempt_number)
    return True


async def claim_due(db: AsyncSession, limit: int | None = None) -> list[int]:
    """Lease due events for delivery and return their ids.

    Pushing next_attempt_at forward by the lease keeps the next dispatch pass
    from scheduling the same event while its delivery task is queued.
    """
    events = await fetch_pending(db, limit)
    lease_until = _now() + timedelta(seconds=DISPATCH_LEASE_SECONDS)
    for event in events:
        event.next_attempt_at = lease_until
    await db.flush()
    return [event.id for event in events]


async def deliver_one(db: AsyncSession, event_id: int, sender: Sender) -> bool | None:
    """Deliver a single event by id. None when it is missing or no longer PENDING."""
    event = await db.get(OutboxEvent, event_id, with_for_update=True)
    if event is None:
        logger.warning("Outbox event %s missing; skipping", event_id)
        return None
    if event.status != OutboxStatus.PENDING:
        logger.info("Outbox event %s is %s; skipping", event_id, event.status.value)
        return None
    return await deliver(db, event, sender)


async def requeue_failed(db: AsyncSession, event_id: int) -> OutboxEvent | None:
    """Move a dead-lettered event back to PENDING with a fresh attempt budget."""
    event = await db.get(OutboxEvent, event_id)
    if event is None or event.status != OutboxStatus.FAILED:
        return None
    event.status = OutboxStatus.PENDING
    event.attempt_count = 0
    event.next_attempt_at = _now()
    await db.flush()
    return event
