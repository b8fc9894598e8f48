"""Opening hours and slot generation for the availability grid.

Pure calculation module: no database, no async, no FastAPI dependencies.
"""

from datetime import date, datetime, time, timedelta

from app.core.config import settings

SLOT_MINUTES = 60


def _parse_time(s: str) -> time:
    h, m = map(int, s.split(":"))
    return time(h, m)


def opening_hours() -> tuple[time, time]:
    """Venue (open, close) wall-clock times from settings."""
    return _parse_time(settings.opening_time), _parse_time(settings.closing_time)


def generate_slots(
    query_date: date,
    booked_intervals: list[tuple[time, time]],
    now: datetime,
    open_time: time | None = None,
    close_time: time | None = None,
) -> list[dict]:
    """Generate all 60-minute slots for one resource unit on a given date.

    Returns a list of dicts with keys: start_time, end_time, is_available.
    Past slots and slots overlapping live bookings are marked unavailable.
    Uses half-open interval overlap, same rule as booking_engine.find_overlapping.
    `now` is venue-local.
    """
    default_open, default_close = opening_hours()
    open_time = open_time or default_open
    close_time = close_time or default_close
    now = now.replace(tzinfo=None)

    slots: list[dict] = []
    current = datetime.combine(query_date, open_time)
    end_of_play = datetime.combine(query_date, close_time)

    while current + timedelta(minutes=SLOT_MINUTES) <= end_of_play:
        slot_start = current.time()
        slot_end = (current + timedelta(minutes=SLOT_MINUTES)).time()

        is_past = current <= now
        has_conflict = any(b_start < slot_end and b_end > slot_start for b_start, b_end in booked_intervals)

        slots.append(
            {
                "start_time": slot_start.strftime("%H:%M"),
                "end_time": slot_end.strftime("%H:%M"),
                "is_available": not is_past and not has_conflict,
            }
        )
        current += timedelta(minutes=SLOT_MINUTES)

    return slots
