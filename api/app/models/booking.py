"""Booking model.

A booking reserves one resource unit of a facility (court #2 of Padel Tennis)
for one time window on one day. This is the core transactional entity in the
system. Bookings are never deleted; cancellation is a status.
"""

import enum
from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, String, Text, Time, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin
from app.models.facility import Facility


class BookingStatus(enum.StrEnum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PaymentStatus(enum.StrEnum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class PaymentMethod(enum.StrEnum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"


class PayerType(enum.StrEnum):
    SELF = "SELF"  # Pays as a guest
    MEMBER = "MEMBER"  # Charged to a membership, tier discount applies


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    resource_id: Mapped[int] = mapped_column(nullable=False)  # 1..facility.resource_count

    # When (facility-local wall clock)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)

    # Status
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [x.value for x in e]),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Payment (offline only: cash at the desk or bank transfer)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=lambda e: [x.value for x in e]),
        default=PaymentStatus.PENDING_PAYMENT,
        nullable=False,
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method", values_callable=lambda e: [x.value for x in e]),
        default=PaymentMethod.CASH,
        nullable=False,
    )
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    payer_type: Mapped[PayerType] = mapped_column(
        Enum(PayerType, name="payer_type", values_callable=lambda e: [x.value for x in e]),
        default=PayerType.SELF,
        nullable=False,
    )
    payer_membership_number: Mapped[str | None] = mapped_column(String(20))

    # Pricing breakdown (smallest currency unit)
    base_price: Mapped[int] = mapped_column(default=0, nullable=False)
    discount: Mapped[int] = mapped_column(default=0, nullable=False)
    add_on_total: Mapped[int] = mapped_column(default=0, nullable=False)
    total_price: Mapped[int] = mapped_column(default=0, nullable=False)

    # Where notifications go
    contact_email: Mapped[str | None] = mapped_column(String(254))

    # Party details, stored as given
    coach_booked: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_matchmaking: Mapped[bool] = mapped_column(default=False, nullable=False)
    current_players: Mapped[int] = mapped_column(default=1, nullable=False)
    max_players: Mapped[int] = mapped_column(default=4, nullable=False)

    # Relationships
    facility: Mapped["Facility"] = relationship(lazy="selectin")
    add_ons: Mapped[list["BookingAddOn"]] = relationship(back_populates="booking", lazy="selectin")

    __table_args__ = (
        # Prevent double-booking: no two live bookings for the same unit starting
        # at the same date/time. Overlaps with different starts are serialised by
        # the facility row lock in create_booking.
        Index(
            "ix_bookings_no_double",
            "facility_id",
            "resource_id",
            "booking_date",
            "start_time",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        # The day grid for a facility
        Index("ix_bookings_facility_date", "facility_id", "booking_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.booking_date} {self.start_time}-{self.end_time} "
            f"facility={self.facility_id} resource={self.resource_id}>"
        )


class BookingAddOn(TimestampMixin, Base):
    """An add-on line on a booking, priced at the moment of booking."""

    __tablename__ = "booking_add_ons"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    add_on_id: Mapped[int] = mapped_column(ForeignKey("facility_add_ons.id"), nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(default=1, nullable=False)
    unit_price: Mapped[int] = mapped_column(default=0, nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="add_ons")

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity
