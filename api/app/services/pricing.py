"""Pricing for bookings.

Two pieces: compute_price() is the pure arithmetic (base, tier discount,
add-ons) and resolve_discount_percent() decides which percent a tier gets for
a given start time. Everything is in the smallest currency unit and uses
floor division so results match across implementations.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import time

from app.core.config import settings
from app.services.errors import ValidationError


@dataclass(frozen=True)
class AddOnLine:
    unit_price: int
    quantity: int


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: int
    discount: int
    add_on_total: int
    total_price: int


def _parse_time(s: str) -> time:
    h, m = map(int, s.split(":"))
    return time(h, m)


def base_price_for_duration(hourly_price: int, duration_minutes: int) -> int:
    """Scale a per-hour facility price to the booked duration (floored)."""
    return hourly_price * duration_minutes // 60


def compute_price(base_price: int, tier_discount_percent: int, add_ons: Iterable[AddOnLine] = ()) -> PriceBreakdown:
    """Price a booking.

    discount = floor(base * pct / 100), taken off the base only (never the
    add-ons). total = max(0, base - discount) + sum(unit * qty).
    """
    if base_price < 0:
        raise ValidationError("base_price", "Base price cannot be negative.")
    if not 0 <= tier_discount_percent <= 100:
        raise ValidationError("discount_percent", "Discount percent must be between 0 and 100.")

    add_on_total = 0
    for line in add_ons:
        if line.unit_price < 0 or line.quantity < 0:
            raise ValidationError("add_ons", "Add-on price and quantity cannot be negative.")
        add_on_total += line.unit_price * line.quantity

    discount = base_price * tier_discount_percent // 100
    total_price = max(0, base_price - discount) + add_on_total

    return PriceBreakdown(
        base_price=base_price,
        discount=discount,
        add_on_total=add_on_total,
        total_price=total_price,
    )


def is_off_peak(start_time: time, window: tuple[str, str] | None = None) -> bool:
    start, end = window or (settings.off_peak_start, settings.off_peak_end)
    return _parse_time(start) <= start_time < _parse_time(end)


def resolve_discount_percent(tier_rule, start_time: time, window: tuple[str, str] | None = None) -> int:
    """Effective discount for a tier rule at a start time.

    No rule (SELF payer, unknown tier) means no discount. Off-peak-only tiers
    get nothing for peak starts.
    """
    if tier_rule is None:
        return 0
    if tier_rule.off_peak_only and not is_off_peak(start_time, window):
        return 0
    return tier_rule.discount_percent
