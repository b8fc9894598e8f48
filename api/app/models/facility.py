"""Facility catalog models.

Facility = a bookable venue category (e.g. Padel Tennis) with a pool of
interchangeable resource units (courts, lanes, bays) numbered 1..resource_count.
FacilityAddOn = an optional priced extra (racket rental, ball pack, coaching).
"""

import enum

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin


class FacilityStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    OPENING_SOON = "OPENING_SOON"
    PLANNED = "PLANNED"


class Facility(TimestampMixin, Base):
    __tablename__ = "facilities"

    id: Mapped[int] = mapped_column(primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[FacilityStatus] = mapped_column(
        Enum(FacilityStatus, name="facility_status", values_callable=lambda e: [x.value for x in e]),
        default=FacilityStatus.PLANNED,
        nullable=False,
    )

    # Pricing (smallest currency unit, per hour of play)
    base_price: Mapped[int] = mapped_column(default=0, nullable=False)

    # Number of interchangeable units, e.g. 4 padel courts
    resource_count: Mapped[int] = mapped_column(default=1, nullable=False)
    min_players: Mapped[int] = mapped_column(default=1, nullable=False)
    requires_certification: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    add_ons: Mapped[list["FacilityAddOn"]] = relationship(back_populates="facility", lazy="selectin")

    @property
    def is_bookable(self) -> bool:
        return self.status == FacilityStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Facility {self.slug}>"


class FacilityAddOn(TimestampMixin, Base):
    __tablename__ = "facility_add_ons"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)  # the add-on id clients send
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[int] = mapped_column(default=0, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(50))

    facility: Mapped["Facility"] = relationship(back_populates="add_ons")

    __table_args__ = (Index("ix_add_ons_facility_slug", "facility_id", "slug", unique=True),)

    def __repr__(self) -> str:
        return f"<FacilityAddOn {self.slug} @ facility {self.facility_id}>"
