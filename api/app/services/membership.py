"""Membership registry lookups."""

import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.membership import Membership, MembershipTier, TierRule

MEMBERSHIP_NUMBER_RE = re.compile(r"QD-[0-9]{4}")


def is_valid_membership_number(number: str | None) -> bool:
    return bool(number) and MEMBERSHIP_NUMBER_RE.fullmatch(number) is not None


async def get_membership_by_number(db: AsyncSession, number: str) -> Membership | None:
    result = await db.execute(select(Membership).where(Membership.membership_number == number))
    return result.scalar_one_or_none()


async def get_tier_rule(db: AsyncSession, tier: MembershipTier) -> TierRule | None:
    return await db.get(TierRule, tier)


async def list_tier_rules(db: AsyncSession) -> list[TierRule]:
    result = await db.execute(select(TierRule).order_by(TierRule.discount_percent.desc()))
    return list(result.scalars().all())
