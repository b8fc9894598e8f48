"""Event routes: list upcoming events and register for one."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.event import Event, EventRegistration, RegistrationStatus
from app.schemas import EventOut, RegistrationCreate, RegistrationOut
from app.services.booking_engine import venue_now
from app.services.catalog import get_facility_by_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[EventOut])
async def list_events(
    facility: str | None = Query(None, description="Facility slug"),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Event).where(Event.is_active.is_(True))
    if facility is not None:
        fac = await get_facility_by_slug(db, facility)
        if fac is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found")
        stmt = stmt.where(Event.facility_id == fac.id)
    result = await db.execute(stmt.order_by(Event.schedule_day, Event.schedule_time))
    return result.scalars().all()


@router.post("/{event_id}/registrations", response_model=RegistrationOut, status_code=status.HTTP_201_CREATED)
async def register(event_id: int, body: RegistrationCreate, db: AsyncSession = Depends(get_db)):
    event = await db.get(Event, event_id)
    if event is None or not event.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if event.schedule_day is not None and event.schedule_day < venue_now().date():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event has already taken place")

    if event.capacity is not None:
        count_result = await db.execute(
            select(func.count(EventRegistration.id)).where(
                EventRegistration.event_id == event.id,
                EventRegistration.status != RegistrationStatus.CANCELLED,
            )
        )
        if count_result.scalar_one() >= event.capacity:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event is full")

    registration = EventRegistration(
        event_id=event.id,
        full_name=body.full_name,
        email=body.email,
        phone=body.phone,
        status=RegistrationStatus.PENDING,
    )
    db.add(registration)
    await db.flush()
    logger.info("Registration %s created for event %s", registration.id, event.id)
    return registration
