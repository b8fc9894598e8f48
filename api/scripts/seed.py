"""Seed the database with The Quarterdeck catalog and demo memberships.

Run with: python -m scripts.seed
Creates the facilities with their add-ons, tier rules, and a handful of demo
membership numbers (QD-0001 to QD-0005).
"""

import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy import select

from app.core.database import async_session_factory, engine
from app.models import (
    Base,
    Facility,
    FacilityAddOn,
    FacilityStatus,
    Membership,
    MembershipStatus,
    MembershipTier,
    TierRule,
)

# Prices are PKR per hour; add-on prices are per unit.
FACILITIES = [
    {
        "slug": "padel-tennis",
        "name": "Padel Tennis",
        "category": "racket",
        "status": FacilityStatus.ACTIVE,
        "base_price": 6000,
        "resource_count": 4,
        "min_players": 4,
        "add_ons": [
            {"slug": "padel-racket", "label": "Padel Racket Rental", "price": 500, "icon": "racket"},
            {"slug": "padel-balls", "label": "Ball Pack (3 balls)", "price": 300, "icon": "circle"},
            {"slug": "padel-coaching", "label": "Professional Coaching (1 hour)", "price": 3000, "icon": "user"},
            {"slug": "video-analysis", "label": "Video Analysis Session", "price": 2000, "icon": "video"},
        ],
    },
    {
        "slug": "squash",
        "name": "Squash Courts",
        "category": "racket",
        "status": FacilityStatus.ACTIVE,
        "base_price": 4000,
        "resource_count": 2,
        "min_players": 2,
        "add_ons": [
            {"slug": "squash-racket", "label": "Squash Racket Rental", "price": 400, "icon": "racket"},
            {"slug": "squash-balls", "label": "Squash Balls (Pack of 2)", "price": 200, "icon": "circle"},
            {"slug": "squash-coaching", "label": "Squash Coaching (1 hour)", "price": 2500, "icon": "user"},
        ],
    },
    {
        "slug": "air-rifle-range",
        "name": "Air Rifle Range",
        "category": "precision",
        "status": FacilityStatus.ACTIVE,
        "base_price": 6000,
        "resource_count": 6,
        "min_players": 1,
        "requires_certification": True,
        "add_ons": [
            {"slug": "extra-pellets", "label": "Extra Pellets (100 rounds)", "price": 500, "icon": "target"},
            {"slug": "safety-kit", "label": "Safety Equipment Set", "price": 300, "icon": "shield"},
            {"slug": "range-instruction", "label": "Professional Instruction (1 hour)", "price": 2000, "icon": "user"},
        ],
    },
    {
        "slug": "multipurpose-hall",
        "name": "Multipurpose Hall",
        "category": "events",
        "status": FacilityStatus.OPENING_SOON,
        "base_price": 6000,
        "resource_count": 1,
        "min_players": 10,
        "add_ons": [
            {"slug": "sound-system", "label": "Sound System", "price": 5000, "icon": "speaker"},
            {"slug": "projector", "label": "Projector & Screen", "price": 3000, "icon": "monitor"},
            {"slug": "catering", "label": "Catering Service (per person)", "price": 500, "icon": "utensils"},
            {"slug": "full-meal", "label": "Full Meal Service (per person)", "price": 1500, "icon": "utensils"},
        ],
    },
]

TIER_RULES = [
    {"tier": MembershipTier.FOUNDING, "discount_percent": 25, "advance_booking_days": 14, "guest_passes_included": 10},
    {"tier": MembershipTier.GOLD, "discount_percent": 20, "advance_booking_days": 7, "guest_passes_included": 4},
    {
        "tier": MembershipTier.SILVER,
        "discount_percent": 10,
        "advance_booking_days": 5,
        "guest_passes_included": 2,
        "off_peak_only": True,
    },
    {"tier": MembershipTier.GUEST, "discount_percent": 0, "advance_booking_days": 3, "guest_passes_included": 0},
]

MEMBERSHIPS = [
    ("QD-0001", "Founding Demo", MembershipTier.FOUNDING, MembershipStatus.ACTIVE),
    ("QD-0002", "Gold Demo", MembershipTier.GOLD, MembershipStatus.ACTIVE),
    ("QD-0003", "Silver Demo", MembershipTier.SILVER, MembershipStatus.ACTIVE),
    ("QD-0004", "Expired Demo", MembershipTier.GOLD, MembershipStatus.EXPIRED),
    ("QD-0005", "Suspended Demo", MembershipTier.SILVER, MembershipStatus.SUSPENDED),
]


async def seed():
    # Create tables (in dev; production uses migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(Facility).where(Facility.slug == "padel-tennis"))
        if result.scalar_one_or_none():
            print("Database already seeded, skipping.")
            return

        total_add_ons = 0
        for facility_data in FACILITIES:
            data = dict(facility_data)
            add_ons = data.pop("add_ons")
            facility = Facility(**data)
            facility.add_ons = [FacilityAddOn(**a) for a in add_ons]
            db.add(facility)
            total_add_ons += len(add_ons)

        for rule in TIER_RULES:
            db.add(TierRule(**rule))

        now = datetime.now(UTC)
        rules = {r["tier"]: r for r in TIER_RULES}
        for number, name, tier, status in MEMBERSHIPS:
            db.add(
                Membership(
                    membership_number=number,
                    holder_name=name,
                    email=f"{number.lower()}@example.com",
                    tier=tier,
                    status=status,
                    valid_from=now - timedelta(days=30),
                    valid_to=now + timedelta(days=335),
                    guest_passes=rules[tier]["guest_passes_included"],
                )
            )

        await db.commit()

    print("Seeded: The Quarterdeck")
    print(f"  {len(FACILITIES)} facilities, {total_add_ons} add-ons")
    print(f"  {len(TIER_RULES)} tier rules")
    print(f"  {len(MEMBERSHIPS)} demo memberships: {', '.join(m[0] for m in MEMBERSHIPS)}")


if __name__ == "__main__":
    asyncio.run(seed())
