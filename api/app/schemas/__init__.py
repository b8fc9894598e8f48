"""Pydantic schemas for API serialisation."""

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# --- Facility catalog ---


class FacilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    description: str | None
    category: str | None
    status: str
    base_price: int
    resource_count: int
    min_players: int
    requires_certification: bool


class AddOnOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias="slug")
    label: str
    price: int
    icon: str | None


class SlotOut(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    is_available: bool


class ResourceAvailability(BaseModel):
    resource_id: int
    slots: list[SlotOut]


class FacilityAvailabilityOut(BaseModel):
    facility_id: int
    facility_slug: str
    date: date
    resources: list[ResourceAvailability]


# --- Booking ---


class AddOnIn(BaseModel):
    id: str
    quantity: int = 1


class BookingCreate(BaseModel):
    """Raw booking request. Field formats are checked by the booking engine so
    every rule failure comes back in the same {"rule", "message"} shape."""

    facility_slug: str
    resource_id: int = 1
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    duration_minutes: int = 60
    payment_method: str = "cash"
    payer_type: str = "SELF"
    payer_membership_number: str | None = None
    add_ons: list[AddOnIn] = []
    contact_email: EmailStr | None = None
    coach_booked: bool = False
    is_matchmaking: bool = False
    current_players: int = 1
    max_players: int = 4


class BookingAddOnOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    quantity: int
    unit_price: int


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    facility_id: int
    resource_id: int
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str
    payment_status: str
    payment_method: str
    payment_reference: str | None
    payer_type: str
    payer_membership_number: str | None
    base_price: int
    discount: int
    add_on_total: int
    total_price: int
    add_ons: list[BookingAddOnOut]
    coach_booked: bool
    is_matchmaking: bool
    current_players: int
    max_players: int
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime


class BookedInterval(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    resource_id: int
    start_time: time
    end_time: time
    status: str


class CancelRequest(BaseModel):
    reason: str | None = None


class PaymentProofRequest(BaseModel):
    reference: str


class RejectPaymentRequest(BaseModel):
    reason: str | None = None


# --- Membership registry ---


class TierRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tier: str
    discount_percent: int
    advance_booking_days: int
    guest_passes_included: int
    off_peak_only: bool


class MembershipLookupOut(BaseModel):
    """Public lookup: enough to tell whether a number can pay for a booking."""

    model_config = ConfigDict(from_attributes=True)

    membership_number: str
    tier: str
    status: str


# --- Events ---


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    facility_id: int
    title: str
    description: str | None
    event_type: str
    schedule_day: date | None
    schedule_time: time | None
    capacity: int | None
    price: int


class RegistrationCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)


class RegistrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    full_name: str
    email: str | None
    status: str


# --- Outbox ---


class OutboxEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type: str
    aggregate_id: str
    status: str
    attempt_count: int
    next_attempt_at: datetime
    last_error: str | None
