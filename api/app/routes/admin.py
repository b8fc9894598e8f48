"""Front-desk admin routes: booking list, payment verification, cancellation,
event registration approval, dead-lettered notifications. All require the
X-Admin-Key header."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_admin
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.event import EventRegistration, RegistrationStatus
from app.models.outbox import OutboxEvent, OutboxStatus
from app.schemas import BookingOut, CancelRequest, OutboxEventOut, RegistrationOut, RejectPaymentRequest
from app.services.booking_engine import reject_payment, transition_status, verify_payment
from app.services.notifications import on_booking_cancelled, on_payment_rejected, on_payment_verified
from app.services.outbox import requeue_failed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/bookings", response_model=list[BookingOut])
async def list_bookings(
    query_date: date | None = Query(None, alias="date"),
    booking_status: BookingStatus | None = Query(None, alias="status"),
    payment_status: PaymentStatus | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Booking)
    if query_date is not None:
        stmt = stmt.where(Booking.booking_date == query_date)
    if booking_status is not None:
        stmt = stmt.where(Booking.status == booking_status)
    if payment_status is not None:
        stmt = stmt.where(Booking.payment_status == payment_status)
    result = await db.execute(
        stmt.order_by(Booking.booking_date.desc(), Booking.start_time.desc(), Booking.id.desc()).limit(limit)
    )
    return result.scalars().all()


@router.post("/bookings/{booking_id}/verify-payment", response_model=BookingOut)
async def verify(booking_id: int, db: AsyncSession = Depends(get_db)):
    booking = await verify_payment(db, booking_id)
    await on_payment_verified(db, booking)
    logger.info("Booking %s payment verified, booking confirmed", booking.id)
    return booking


@router.post("/bookings/{booking_id}/reject-payment", response_model=BookingOut)
async def reject(booking_id: int, body: RejectPaymentRequest | None = None, db: AsyncSession = Depends(get_db)):
    reason = body.reason if body else None
    booking = await reject_payment(db, booking_id)
    await on_payment_rejected(db, booking, reason)
    logger.info("Booking %s payment rejected: %s", booking.id, reason)
    return booking


@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
async def admin_cancel(booking_id: int, body: CancelRequest | None = None, db: AsyncSession = Depends(get_db)):
    reason = body.reason if body else None
    booking = await transition_status(db, booking_id, BookingStatus.CANCELLED, reason=reason)
    await on_booking_cancelled(db, booking, reason)
    logger.info("Booking %s cancelled by admin: %s", booking.id, reason)
    return booking


@router.post("/events/registrations/{registration_id}/approve", response_model=RegistrationOut)
async def approve_registration(registration_id: int, db: AsyncSession = Depends(get_db)):
    registration = await db.get(EventRegistration, registration_id)
    if registration is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    if registration.status != RegistrationStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Registration is {registration.status.value}",
        )
    registration.status = RegistrationStatus.APPROVED
    await db.flush()
    return registration


@router.get("/outbox/failed", response_model=list[OutboxEventOut])
async def list_failed_notifications(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(OutboxEvent).where(OutboxEvent.status == OutboxStatus.FAILED).order_by(OutboxEvent.id)
    )
    return result.scalars().all()


@router.post("/outbox/{event_id}/requeue", response_model=OutboxEventOut)
async def requeue_notification(event_id: int, db: AsyncSession = Depends(get_db)):
    event = await requeue_failed(db, event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No failed notification with that id")
    logger.info("Outbox event %s requeued by admin", event.id)
    return event
