"""Membership registry models.

Membership = a numbered membership (QD-0001) held by a person, with a tier.
TierRule = what a tier is entitled to. Read-only during pricing.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class MembershipTier(enum.StrEnum):
    FOUNDING = "FOUNDING"
    GOLD = "GOLD"
    SILVER = "SILVER"
    GUEST = "GUEST"


class MembershipStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"


tier_enum = Enum(MembershipTier, name="membership_tier", values_callable=lambda e: [x.value for x in e])


class TierRule(TimestampMixin, Base):
    __tablename__ = "tier_rules"

    tier: Mapped[MembershipTier] = mapped_column(tier_enum, primary_key=True)
    discount_percent: Mapped[int] = mapped_column(default=0, nullable=False)
    advance_booking_days: Mapped[int] = mapped_column(default=3, nullable=False)
    guest_passes_included: Mapped[int] = mapped_column(default=0, nullable=False)
    # Silver only gets its discount on off-peak starts
    off_peak_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<TierRule {self.tier} {self.discount_percent}%>"


class Membership(TimestampMixin, Base):
    __tablename__ = "memberships"

    id: Mapped[int] = mapped_column(primary_key=True)
    membership_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    holder_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(254))
    tier: Mapped[MembershipTier] = mapped_column(
        tier_enum,
        default=MembershipTier.GUEST,
        nullable=False,
    )
    status: Mapped[MembershipStatus] = mapped_column(
        Enum(MembershipStatus, name="membership_status", values_callable=lambda e: [x.value for x in e]),
        default=MembershipStatus.ACTIVE,
        nullable=False,
    )
    valid_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    valid_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    guest_passes: Mapped[int] = mapped_column(default=0, nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Membership {self.membership_number} {self.tier}>"
