"""Events (academies, tournaments, classes, socials) and their registrations.

ReminderDelivery records every reminder that went out. The unique index is
what stops the daily job from emailing the same person twice for the same
window, across restarts and across worker instances.
"""

import enum
from datetime import date, time

from sqlalchemy import Date, Enum, ForeignKey, Index, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin


class EventType(enum.StrEnum):
    ACADEMY = "ACADEMY"
    TOURNAMENT = "TOURNAMENT"
    CLASS = "CLASS"
    SOCIAL = "SOCIAL"


class RegistrationStatus(enum.StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


class Event(TimestampMixin, Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, name="event_type", values_callable=lambda e: [x.value for x in e]),
        default=EventType.SOCIAL,
        nullable=False,
    )
    schedule_day: Mapped[date | None] = mapped_column(Date)
    schedule_time: Mapped[time | None] = mapped_column(Time)
    capacity: Mapped[int | None] = mapped_column()
    price: Mapped[int] = mapped_column(default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    registrations: Mapped[list["EventRegistration"]] = relationship(back_populates="event", lazy="raise")

    def __repr__(self) -> str:
        return f"<Event {self.title} {self.schedule_day}>"


class EventRegistration(TimestampMixin, Base):
    __tablename__ = "event_registrations"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(254))
    phone: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[RegistrationStatus] = mapped_column(
        Enum(RegistrationStatus, name="registration_status", values_callable=lambda e: [x.value for x in e]),
        default=RegistrationStatus.PENDING,
        nullable=False,
    )

    event: Mapped["Event"] = relationship(back_populates="registrations", lazy="raise")

    __table_args__ = (Index("ix_registrations_event", "event_id", "status"),)


class ReminderDelivery(TimestampMixin, Base):
    __tablename__ = "reminder_deliveries"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    registration_id: Mapped[int] = mapped_column(
        ForeignKey("event_registrations.id", ondelete="CASCADE"), nullable=False
    )
    days_before: Mapped[int] = mapped_column(nullable=False)  # reminder window: 1 or 3
    sent_on: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index(
            "ix_reminders_dedup",
            "event_id",
            "registration_id",
            "days_before",
            "sent_on",
            unique=True,
        ),
    )
