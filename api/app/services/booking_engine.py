"""Booking engine: slot conflicts, pricing, status and payment lifecycle.

All booking logic lives here, separate from the route handlers. Functions
raise the typed errors in app.services.errors and never log or retry; the
route layer decides what the caller sees.

Concurrency: create_booking locks the facility row (PostgreSQL) for the
check-then-insert, and the partial unique index on bookings turns any
duplicate that still slips through into a ConflictError.
"""

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.booking import Booking, BookingAddOn, BookingStatus, PayerType, PaymentMethod, PaymentStatus
from app.models.facility import Facility, FacilityAddOn
from app.models.membership import MembershipTier, TierRule
from app.services import notifications
from app.services.catalog import get_add_ons, get_facility_by_slug
from app.services.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from app.services.membership import get_membership_by_number, get_tier_rule, is_valid_membership_number
from app.services.pricing import AddOnLine, base_price_for_duration, compute_price, resolve_discount_percent

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")

MAX_ADD_ON_QUANTITY = 100
MAX_PLAYERS = 50
PAYMENT_REFERENCE_MAX_LENGTH = 100

ALLOWED_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}


@dataclass
class AddOnRequest:
    id: str  # FacilityAddOn.slug
    quantity: int = 1


@dataclass
class BookingRequest:
    facility_slug: str
    resource_id: int
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    duration_minutes: int
    payment_method: str = PaymentMethod.CASH.value
    payer_type: str = PayerType.SELF.value
    payer_membership_number: str | None = None
    add_ons: list[AddOnRequest] = field(default_factory=list)
    contact_email: str | None = None
    coach_booked: bool = False
    is_matchmaking: bool = False
    current_players: int = 1
    max_players: int = 4


@dataclass(frozen=True)
class Slot:
    booking_date: date
    start_time: time
    end_time: time


def venue_now() -> datetime:
    return datetime.now(ZoneInfo(settings.venue_timezone))


# ---------------------------------------------------------------------------
# Structural validation (no database access)
# ---------------------------------------------------------------------------


def parse_date(value: str | None) -> date:
    if not value or not _DATE_RE.fullmatch(value):
        raise ValidationError("date", "Date must be in YYYY-MM-DD format.")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("date", f"{value} is not a valid calendar date.") from None


def parse_time(value: str | None, name: str = "time") -> time:
    match = _TIME_RE.fullmatch(value or "")
    if not match:
        raise ValidationError(name, f"{name.replace('_', ' ').capitalize()} must be in HH:MM format.")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(name, f"{value} is not a valid time of day.")
    return time(hour, minute)


def minutes_between(start: time, end: time) -> int:
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def validate_request(request: BookingRequest) -> Slot:
    """Check every field that can be checked without the database.

    Returns the parsed slot. Raises ValidationError on the first problem.
    """
    if not request.facility_slug:
        raise ValidationError("facility", "Facility is required.")

    booking_date = parse_date(request.date)
    start = parse_time(request.start_time, "start_time")
    end = parse_time(request.end_time, "end_time")

    # Same calendar day only, no overnight spans
    if end <= start:
        raise ValidationError("time_range", "End time must be after start time.")
    if request.duration_minutes is None or request.duration_minutes <= 0:
        raise ValidationError("duration", "Duration must be a positive number of minutes.")
    if request.duration_minutes != minutes_between(start, end):
        raise ValidationError(
            "duration",
            f"Duration {request.duration_minutes} minutes does not match {request.start_time}-{request.end_time}.",
        )

    if request.resource_id is None or request.resource_id < 1:
        raise ValidationError("resource", "Resource must be a unit number starting at 1.")

    if request.payment_method not in {m.value for m in PaymentMethod}:
        raise ValidationError("payment_method", "Payment method must be cash or bank_transfer.")

    if request.payer_type not in {p.value for p in PayerType}:
        raise ValidationError("payer_type", "Payer type must be SELF or MEMBER.")
    if request.payer_type == PayerType.MEMBER and not is_valid_membership_number(request.payer_membership_number):
        raise ValidationError(
            "membership_number", "Invalid membership number format. Expected QD-XXXX."
        )

    for item in request.add_ons:
        if item.quantity is None or item.quantity < 0:
            raise ValidationError("add_ons", f"Quantity for add-on {item.id} cannot be negative.")
        if item.quantity > MAX_ADD_ON_QUANTITY:
            raise ValidationError("add_ons", f"Quantity for add-on {item.id} cannot exceed {MAX_ADD_ON_QUANTITY}.")

    if not 1 <= request.max_players <= MAX_PLAYERS:
        raise ValidationError("players", f"Max players must be between 1 and {MAX_PLAYERS}.")
    if not 1 <= request.current_players <= request.max_players:
        raise ValidationError("players", "Current players must be between 1 and max players.")

    return Slot(booking_date, start, end)


def check_resource_in_range(facility: Facility, resource_id: int) -> None:
    if not 1 <= resource_id <= facility.resource_count:
        raise ValidationError(
            "resource",
            f"{facility.name} has {facility.resource_count} unit(s); unit {resource_id} does not exist.",
        )


def check_not_in_past(slot: Slot, now: datetime) -> None:
    """Cannot book a slot that has already started (venue-local wall clock)."""
    if datetime.combine(slot.booking_date, slot.start_time) <= now.replace(tzinfo=None):
        raise ValidationError("past_booking", "Cannot book a slot in the past.")


def check_advance_window(tier_rule: TierRule | None, slot: Slot, now: datetime) -> None:
    """Booking date must fall inside the payer tier's advance booking window."""
    if tier_rule is None:
        return
    max_date = now.date() + timedelta(days=tier_rule.advance_booking_days)
    if slot.booking_date > max_date:
        raise ValidationError(
            "advance_window",
            f"Cannot book more than {tier_rule.advance_booking_days} days in advance.",
        )


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


async def find_overlapping(
    db: AsyncSession,
    facility_id: int,
    resource_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
) -> list[Booking]:
    """Live bookings on the same unit and day whose [start, end) intersects the request."""
    result = await db.execute(
        select(Booking).where(
            Booking.facility_id == facility_id,
            Booking.resource_id == resource_id,
            Booking.booking_date == booking_date,
            Booking.status != BookingStatus.CANCELLED,
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        )
    )
    return list(result.scalars().all())


async def check_availability(
    db: AsyncSession,
    facility_id: int,
    resource_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
) -> bool:
    """True when the requested window CONFLICTS with an existing live booking.

    Half-open intervals: a booking ending at 10:00 and one starting at 10:00
    do not conflict.
    """
    return bool(await find_overlapping(db, facility_id, resource_id, booking_date, start_time, end_time))


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def _resolve_payer_tier(db: AsyncSession, request: BookingRequest) -> TierRule | None:
    """Tier rule that prices this booking. SELF payers pay the guest rate."""
    if request.payer_type != PayerType.MEMBER:
        return await get_tier_rule(db, MembershipTier.GUEST)

    membership = await get_membership_by_number(db, request.payer_membership_number)
    if membership is None:
        raise ValidationError("membership", "Payer membership not found.")
    if not membership.is_active:
        raise ValidationError("membership", "Payer membership is not active.")
    return await get_tier_rule(db, membership.tier)


async def _resolve_add_ons(
    db: AsyncSession, facility: Facility, requested: list[AddOnRequest]
) -> list[tuple[FacilityAddOn, int]]:
    if not requested:
        return []
    catalog = {a.slug: a for a in await get_add_ons(db, facility.id)}
    lines = []
    for item in requested:
        add_on = catalog.get(item.id)
        if add_on is None:
            raise ValidationError("add_ons", f"Add-on {item.id} is not offered for {facility.name}.")
        if item.quantity > 0:
            lines.append((add_on, item.quantity))
    return lines


async def create_booking(db: AsyncSession, request: BookingRequest, now: datetime | None = None) -> Booking:
    """Validate, conflict-check, price and persist a booking.

    The order matters: structural checks, payer membership, availability,
    price, insert. New bookings start PENDING / PENDING_PAYMENT since both
    payment methods are settled offline.
    """
    now = now or venue_now()

    # 1. Structural fields
    slot = validate_request(request)
    check_not_in_past(slot, now)

    facility = await get_facility_by_slug(db, request.facility_slug, for_update=True)
    if facility is None:
        raise NotFoundError("Facility not found")
    if not facility.is_bookable:
        raise ValidationError("facility_status", f"{facility.name} is not open for booking yet.")
    check_resource_in_range(facility, request.resource_id)

    # 2. Payer membership
    tier_rule = await _resolve_payer_tier(db, request)
    check_advance_window(tier_rule, slot, now)

    # 3. Availability (fast path; the unique index is the final word)
    if await check_availability(
        db, facility.id, request.resource_id, slot.booking_date, slot.start_time, slot.end_time
    ):
        raise ConflictError()

    # 4. Price
    add_on_lines = await _resolve_add_ons(db, facility, request.add_ons)
    price = compute_price(
        base_price_for_duration(facility.base_price, request.duration_minutes),
        resolve_discount_percent(tier_rule, slot.start_time),
        [AddOnLine(unit_price=a.price, quantity=qty) for a, qty in add_on_lines],
    )

    # 5. Insert
    booking = Booking(
        facility=facility,
        facility_id=facility.id,
        resource_id=request.resource_id,
        booking_date=slot.booking_date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        duration_minutes=request.duration_minutes,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.PENDING_PAYMENT,
        payment_method=PaymentMethod(request.payment_method),
        payer_type=PayerType(request.payer_type),
        payer_membership_number=request.payer_membership_number if request.payer_type == PayerType.MEMBER else None,
        base_price=price.base_price,
        discount=price.discount,
        add_on_total=price.add_on_total,
        total_price=price.total_price,
        contact_email=request.contact_email,
        coach_booked=request.coach_booked,
        is_matchmaking=request.is_matchmaking,
        current_players=request.current_players,
        max_players=request.max_players,
        add_ons=[
            BookingAddOn(add_on_id=a.id, label=a.label, quantity=qty, unit_price=a.price) for a, qty in add_on_lines
        ],
    )
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError() from exc

    # 6. Notify (outbox row, delivered by the worker)
    await notifications.on_booking_created(db, booking)
    return booking


# ---------------------------------------------------------------------------
# Status and payment lifecycle
# ---------------------------------------------------------------------------


async def get_booking(db: AsyncSession, booking_id: int, for_update: bool = False) -> Booking:
    booking = await db.get(Booking, booking_id, with_for_update=True if for_update else None)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def transition_status(
    db: AsyncSession,
    booking_id: int,
    new_status: BookingStatus | str,
    reason: str | None = None,
) -> Booking:
    """Move a booking along PENDING -> CONFIRMED -> CANCELLED (or PENDING -> CANCELLED).

    Notifications are the caller's job.
    """
    try:
        target = BookingStatus(new_status)
    except ValueError:
        raise ValidationError("status", f"Unknown booking status {new_status}.") from None

    booking = await get_booking(db, booking_id, for_update=True)
    if target not in ALLOWED_TRANSITIONS[booking.status]:
        raise InvalidTransitionError(f"Cannot change booking from {booking.status.value} to {target.value}.")

    booking.status = target
    if target == BookingStatus.CANCELLED:
        booking.cancelled_at = datetime.now(UTC)
        booking.cancellation_reason = reason
    await db.flush()
    return booking


async def submit_payment_proof(db: AsyncSession, booking_id: int, reference: str) -> Booking:
    """Customer reports a bank transfer; the booking waits for an admin to check it."""
    booking = await get_booking(db, booking_id, for_update=True)
    if not reference or not reference.strip():
        raise ValidationError("payment_reference", "A transfer reference is required.")
    if len(reference.strip()) > PAYMENT_REFERENCE_MAX_LENGTH:
        raise ValidationError(
            "payment_reference", f"Transfer reference cannot be longer than {PAYMENT_REFERENCE_MAX_LENGTH} characters."
        )
    if booking.payment_method != PaymentMethod.BANK_TRANSFER:
        raise InvalidTransitionError("Cash bookings are paid at the front desk.")
    if booking.status != BookingStatus.PENDING:
        raise InvalidTransitionError(f"Booking is {booking.status.value}; payment can no longer be submitted.")
    if booking.payment_status not in (PaymentStatus.PENDING_PAYMENT, PaymentStatus.REJECTED):
        raise InvalidTransitionError(f"Payment is already {booking.payment_status.value}.")

    booking.payment_status = PaymentStatus.PENDING_VERIFICATION
    booking.payment_reference = reference.strip()
    await db.flush()
    return booking


async def verify_payment(db: AsyncSession, booking_id: int) -> Booking:
    """Admin confirms the money arrived. Confirms the booking."""
    booking = await get_booking(db, booking_id, for_update=True)
    if booking.payment_status == PaymentStatus.VERIFIED:
        raise InvalidTransitionError("Payment is already verified.")

    booking = await transition_status(db, booking_id, BookingStatus.CONFIRMED)
    booking.payment_status = PaymentStatus.VERIFIED
    await db.flush()
    return booking


async def reject_payment(db: AsyncSession, booking_id: int) -> Booking:
    """Admin could not match the transfer. Booking stays PENDING so the customer can resubmit."""
    booking = await get_booking(db, booking_id, for_update=True)
    if booking.status != BookingStatus.PENDING:
        raise InvalidTransitionError(f"Booking is {booking.status.value}; payment cannot be rejected.")
    if booking.payment_status != PaymentStatus.PENDING_VERIFICATION:
        raise InvalidTransitionError(f"Payment is {booking.payment_status.value}, nothing to reject.")

    booking.payment_status = PaymentStatus.REJECTED
    await db.flush()
    return booking
