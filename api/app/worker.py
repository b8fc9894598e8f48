"""Celery worker: notification outbox delivery and the daily event reminder job.

Delivery is two steps. `outbox.dispatch_pending` runs on beat, leases due
events and enqueues one `outbox.deliver_event` task per event.

Tasks are sync entry points around async service code. Each run gets its own
event loop, so the engine pool is disposed at the end of every run; pooled
asyncpg connections cannot cross loops.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from celery import Celery
from celery.schedules import crontab
from celery.utils.log import get_task_logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import async_session_factory, engine
from app.core.logging import configure_logging
from app.services import outbox, reminders
from app.services.booking_engine import venue_now
from app.services.notifications import send_notification

configure_logging()
logger = get_task_logger(__name__)

T = TypeVar("T")

celery_app = Celery(
    "quarterdeck",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.venue_timezone,
    enable_utc=True,
    beat_schedule={
        "dispatch-outbox": {
            "task": "outbox.dispatch_pending",
            "schedule": 30.0,
        },
        "send-event-reminders": {
            "task": "reminders.send_event_reminders",
            "schedule": crontab(hour=9, minute=0),
        },
    },
)


@asynccontextmanager
async def _session_scope() -> AsyncIterator[AsyncSession]:
    """Transactional scope for use in tasks."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _run(job: Callable[[AsyncSession], Awaitable[T]]) -> T:
    async def runner() -> T:
        try:
            async with _session_scope() as session:
                return await job(session)
        finally:
            await engine.dispose()

    return asyncio.run(runner())


@celery_app.task(name="outbox.dispatch_pending", max_retries=0)
def dispatch_pending() -> int:
    """Lease due outbox events and enqueue a delivery task for each.

    Returns the number of events scheduled.
    """
    event_ids = _run(outbox.claim_due)
    for event_id in event_ids:
        deliver_event.delay(event_id)
    if event_ids:
        logger.info("Scheduled %s outbox events for delivery", len(event_ids))
    return len(event_ids)


@celery_app.task(name="outbox.deliver_event", max_retries=0)
def deliver_event(event_id: int) -> bool | None:
    """Deliver a single outbox event. Retries are scheduled on the row, not by Celery."""
    return _run(lambda session: outbox.deliver_one(session, event_id, send_notification))


@celery_app.task(name="reminders.send_event_reminders", max_retries=0)
def send_event_reminders() -> int:
    today = venue_now().date()
    queued = _run(lambda session: reminders.send_event_reminders(session, today))
    logger.info("Queued %s event reminders", queued)
    return queued
