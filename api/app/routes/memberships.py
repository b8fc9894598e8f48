"""Membership registry routes: tier rules and membership number lookup."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas import MembershipLookupOut, TierRuleOut
from app.services.membership import get_membership_by_number, is_valid_membership_number, list_tier_rules

router = APIRouter(prefix="/memberships", tags=["memberships"])


@router.get("/tiers", response_model=list[TierRuleOut])
async def get_tiers(db: AsyncSession = Depends(get_db)):
    return await list_tier_rules(db)


@router.get("/{membership_number}", response_model=MembershipLookupOut)
async def lookup_membership(membership_number: str, db: AsyncSession = Depends(get_db)):
    """Check a membership number before paying for a booking with it."""
    if not is_valid_membership_number(membership_number):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"rule": "membership_number", "message": "Invalid membership number format. Expected QD-XXXX."}],
        )
    membership = await get_membership_by_number(db, membership_number)
    if membership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")
    return membership
