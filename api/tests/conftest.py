"""Shared test fixtures.

Tests run against a throwaway SQLite file through aiosqlite; the settings
object reads QD_DATABASE_URL at import time, so it is set before any app
module is imported.
"""

import os

os.environ.setdefault("QD_DATABASE_URL", "sqlite+aiosqlite:///./quarterdeck_test.db")
os.environ.setdefault("QD_ADMIN_KEY", "test-admin-key")

from datetime import UTC, datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.database import async_session_factory, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Base,
    Facility,
    FacilityAddOn,
    FacilityStatus,
    Membership,
    MembershipStatus,
    MembershipTier,
    TierRule,
)


@pytest.fixture(autouse=True)
async def _fresh_database():
    """Dispose stale pool connections and rebuild the schema for each test.

    The global engine is created at import time. When pytest-asyncio creates a new
    event loop for tests, any existing pooled connections are bound to the old loop
    and will fail with 'Future attached to a different loop'. Disposing before each
    test forces fresh connections in the current loop.
    """
    await engine.dispose()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db():
    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def catalog():
    """Padel (4 courts, 6000/hour, two add-ons), a hall that is not open yet,
    the tier rules, and memberships QD-0001 (founding), QD-0003 (silver),
    QD-0004 (gold, expired)."""
    async with async_session_factory() as session:
        padel = Facility(
            slug="padel-tennis",
            name="Padel Tennis",
            category="racket",
            status=FacilityStatus.ACTIVE,
            base_price=6000,
            resource_count=4,
            min_players=4,
        )
        padel.add_ons = [
            FacilityAddOn(slug="padel-racket", label="Padel Racket Rental", price=500, icon="racket"),
            FacilityAddOn(slug="padel-balls", label="Ball Pack (3 balls)", price=300, icon="circle"),
        ]
        hall = Facility(
            slug="multipurpose-hall",
            name="Multipurpose Hall",
            status=FacilityStatus.OPENING_SOON,
            base_price=6000,
            resource_count=1,
            min_players=10,
        )
        session.add_all([padel, hall])

        session.add_all(
            [
                TierRule(tier=MembershipTier.FOUNDING, discount_percent=25, advance_booking_days=14, guest_passes_included=10),
                TierRule(tier=MembershipTier.GOLD, discount_percent=20, advance_booking_days=7, guest_passes_included=4),
                TierRule(
                    tier=MembershipTier.SILVER,
                    discount_percent=10,
                    advance_booking_days=5,
                    guest_passes_included=2,
                    off_peak_only=True,
                ),
                TierRule(tier=MembershipTier.GUEST, discount_percent=0, advance_booking_days=3, guest_passes_included=0),
            ]
        )

        now = datetime.now(UTC)
        for number, tier, status in [
            ("QD-0001", MembershipTier.FOUNDING, MembershipStatus.ACTIVE),
            ("QD-0003", MembershipTier.SILVER, MembershipStatus.ACTIVE),
            ("QD-0004", MembershipTier.GOLD, MembershipStatus.EXPIRED),
        ]:
            session.add(
                Membership(
                    membership_number=number,
                    holder_name=f"Member {number}",
                    tier=tier,
                    status=status,
                    valid_from=now - timedelta(days=30),
                    valid_to=now + timedelta(days=30),
                )
            )
        await session.commit()
        return SimpleNamespace(padel_id=padel.id, hall_id=hall.id)
