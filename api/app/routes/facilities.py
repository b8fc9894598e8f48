"""Facility catalog routes: browse facilities, add-ons and the availability grid.

Public endpoints, no admin key required.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.booking import Booking, BookingStatus
from app.schemas import AddOnOut, FacilityAvailabilityOut, FacilityOut, ResourceAvailability, SlotOut
from app.services.booking_engine import venue_now
from app.services.catalog import get_add_ons, get_facility_by_slug, list_facilities
from app.services.operating_hours import generate_slots

router = APIRouter(prefix="/facilities", tags=["facilities"])


async def _facility_or_404(db: AsyncSession, slug: str):
    facility = await get_facility_by_slug(db, slug)
    if facility is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found")
    return facility


@router.get("", response_model=list[FacilityOut])
async def get_facilities(db: AsyncSession = Depends(get_db)):
    return await list_facilities(db)


@router.get("/{slug}", response_model=FacilityOut)
async def get_facility(slug: str, db: AsyncSession = Depends(get_db)):
    return await _facility_or_404(db, slug)


@router.get("/{slug}/addons", response_model=list[AddOnOut])
async def get_facility_add_ons(slug: str, db: AsyncSession = Depends(get_db)):
    facility = await _facility_or_404(db, slug)
    return await get_add_ons(db, facility.id)


@router.get("/{slug}/availability", response_model=FacilityAvailabilityOut)
async def get_facility_availability(
    slug: str,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    db: AsyncSession = Depends(get_db),
):
    """Return hourly slots for every resource unit of a facility on a given date.

    Past slots are included with is_available=False so the frontend can
    render a complete day grid.
    """
    facility = await _facility_or_404(db, slug)

    # All live bookings for the facility on this date in one query
    bookings_result = await db.execute(
        select(Booking.resource_id, Booking.start_time, Booking.end_time).where(
            Booking.facility_id == facility.id,
            Booking.booking_date == query_date,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    by_resource: dict[int, list[tuple]] = {r: [] for r in range(1, facility.resource_count + 1)}
    for row in bookings_result.all():
        by_resource.setdefault(row[0], []).append((row[1], row[2]))

    now = venue_now()
    resources = [
        ResourceAvailability(
            resource_id=resource_id,
            slots=[SlotOut(**s) for s in generate_slots(query_date, by_resource[resource_id], now)],
        )
        for resource_id in range(1, facility.resource_count + 1)
    ]

    return FacilityAvailabilityOut(
        facility_id=facility.id,
        facility_slug=facility.slug,
        date=query_date,
        resources=resources,
    )
