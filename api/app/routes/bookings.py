"""Booking routes: create, look up, cancel, submit payment proof.

Booking rules live in app.services.booking_engine; engine errors are turned
into HTTP responses by the handlers registered in app.main.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.booking import Booking, BookingStatus
from app.schemas import BookedInterval, BookingCreate, BookingOut, CancelRequest, PaymentProofRequest
from app.services.booking_engine import (
    AddOnRequest,
    BookingRequest,
    create_booking,
    get_booking,
    submit_payment_proof,
    transition_status,
)
from app.services.catalog import get_facility_by_slug
from app.services.notifications import on_booking_cancelled

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _to_request(body: BookingCreate) -> BookingRequest:
    return BookingRequest(
        facility_slug=body.facility_slug,
        resource_id=body.resource_id,
        date=body.date,
        start_time=body.start_time,
        end_time=body.end_time,
        duration_minutes=body.duration_minutes,
        payment_method=body.payment_method,
        payer_type=body.payer_type,
        payer_membership_number=body.payer_membership_number,
        add_ons=[AddOnRequest(id=a.id, quantity=a.quantity) for a in body.add_ons],
        contact_email=body.contact_email,
        coach_booked=body.coach_booked,
        is_matchmaking=body.is_matchmaking,
        current_players=body.current_players,
        max_players=body.max_players,
    )


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create(body: BookingCreate, db: AsyncSession = Depends(get_db)):
    booking = await create_booking(db, _to_request(body))
    logger.info(
        "Booking %s created: facility=%s resource=%s %s %s-%s total=%s",
        booking.id,
        body.facility_slug,
        booking.resource_id,
        booking.booking_date,
        body.start_time,
        body.end_time,
        booking.total_price,
    )
    return booking


@router.get("", response_model=list[BookedInterval])
async def list_booked_intervals(
    facility: str = Query(..., description="Facility slug"),
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    db: AsyncSession = Depends(get_db),
):
    """Live bookings for a facility on a date, for client-side availability display."""
    fac = await get_facility_by_slug(db, facility)
    if fac is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found")

    result = await db.execute(
        select(Booking)
        .where(
            Booking.facility_id == fac.id,
            Booking.booking_date == query_date,
            Booking.status != BookingStatus.CANCELLED,
        )
        .order_by(Booking.resource_id, Booking.start_time)
    )
    return result.scalars().all()


@router.get("/{booking_id}", response_model=BookingOut)
async def get(booking_id: int, db: AsyncSession = Depends(get_db)):
    return await get_booking(db, booking_id)


@router.patch("/{booking_id}/cancel", response_model=BookingOut)
async def cancel(booking_id: int, body: CancelRequest | None = None, db: AsyncSession = Depends(get_db)):
    reason = body.reason if body else None
    booking = await transition_status(db, booking_id, BookingStatus.CANCELLED, reason=reason)
    await on_booking_cancelled(db, booking, reason)
    logger.info("Booking %s cancelled by customer", booking.id)
    return booking


@router.post("/{booking_id}/payment-proof", response_model=BookingOut)
async def payment_proof(booking_id: int, body: PaymentProofRequest, db: AsyncSession = Depends(get_db)):
    booking = await submit_payment_proof(db, booking_id, body.reference)
    logger.info("Booking %s payment proof submitted", booking.id)
    return booking
