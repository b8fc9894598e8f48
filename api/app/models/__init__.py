"""All models imported here so Base.metadata sees every table."""

from app.models.base import Base
from app.models.booking import Booking, BookingAddOn, BookingStatus, PayerType, PaymentMethod, PaymentStatus
from app.models.event import Event, EventRegistration, EventType, RegistrationStatus, ReminderDelivery
from app.models.facility import Facility, FacilityAddOn, FacilityStatus
from app.models.membership import Membership, MembershipStatus, MembershipTier, TierRule
from app.models.outbox import OutboxEvent, OutboxStatus

__all__ = [
    "Base",
    "Facility",
    "FacilityAddOn",
    "FacilityStatus",
    "Membership",
    "MembershipStatus",
    "MembershipTier",
    "TierRule",
    "Booking",
    "BookingAddOn",
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
    "PayerType",
    "Event",
    "EventRegistration",
    "EventType",
    "RegistrationStatus",
    "ReminderDelivery",
    "OutboxEvent",
    "OutboxStatus",
]
