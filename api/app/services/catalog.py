"""Facility catalog lookups."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.facility import Facility, FacilityAddOn


async def get_facility_by_slug(db: AsyncSession, slug: str, for_update: bool = False) -> Facility | None:
    """Resolve a facility by slug.

    for_update locks the facility row (PostgreSQL; a no-op on SQLite) so that
    concurrent bookings on the same facility run their check-then-insert one
    at a time.
    """
    stmt = select(Facility).where(Facility.slug == slug)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_facilities(db: AsyncSession) -> list[Facility]:
    result = await db.execute(select(Facility).order_by(Facility.name))
    return list(result.scalars().all())


async def get_add_ons(db: AsyncSession, facility_id: int) -> list[FacilityAddOn]:
    result = await db.execute(
        select(FacilityAddOn).where(FacilityAddOn.facility_id == facility_id).order_by(FacilityAddOn.label)
    )
    return list(result.scalars().all())
