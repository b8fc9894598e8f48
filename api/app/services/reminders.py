"""Event reminder job.

Runs once a day. For every event starting in 1 or 3 days, each approved
registration gets one reminder per window. The reminder_deliveries unique
index is the dedup record, so re-running the job (restart, second worker)
sends nothing twice.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event, EventRegistration, RegistrationStatus, ReminderDelivery
from app.services.notifications import on_event_reminder

logger = logging.getLogger(__name__)

REMINDER_WINDOWS = (1, 3)  # days before the event


async def _claim(db: AsyncSession, event_id: int, registration_id: int, days_before: int, today: date) -> bool:
    """Insert the dedup row. False when this reminder was already claimed."""
    insert = pg_insert if db.bind.dialect.name == "postgresql" else sqlite_insert
    stmt = (
        insert(ReminderDelivery)
        .values(event_id=event_id, registration_id=registration_id, days_before=days_before, sent_on=today)
        .on_conflict_do_nothing(index_elements=["event_id", "registration_id", "days_before", "sent_on"])
        .returning(ReminderDelivery.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def send_event_reminders(db: AsyncSession, today: date) -> int:
    """Queue reminders due today. Returns how many were queued."""
    queued = 0
    for days_before in REMINDER_WINDOWS:
        target_day = today + timedelta(days=days_before)
        events_result = await db.execute(
            select(Event).where(Event.schedule_day == target_day, Event.is_active.is_(True))
        )
        for event in events_result.scalars().all():
            regs_result = await db.execute(
                select(EventRegistration).where(
                    EventRegistration.event_id == event.id,
                    EventRegistration.status == RegistrationStatus.APPROVED,
                )
            )
            for registration in regs_result.scalars().all():
                if not registration.email:
                    continue
                if not await _claim(db, event.id, registration.id, days_before, today):
                    logger.debug("Skipping duplicate reminder event=%s registration=%s", event.id, registration.id)
                    continue
                await on_event_reminder(db, event, registration, days_before, today.isoformat())
                queued += 1

    logger.info("Event reminder job queued %s reminders for %s", queued, today)
    return queued
