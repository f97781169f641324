"""Unit conversion and display formatting for dashboard cards."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

SECONDS_PER_HOUR = 3600.0
MISSING = "--"


def seconds_to_hours(seconds: float) -> float:
    return seconds / SECONDS_PER_HOUR


def local_date(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of ts in local time.

    Naive timestamps are already local. Aware ones are converted to tz,
    or to the system zone when tz is None.
    """
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(tz).date()


def start_of_local_day(now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Local midnight of the day containing now.

    Built from the zone rules rather than now's UTC offset, so the result is
    correct on days when the offset changes.
    """
    day = local_date(now, tz)
    if now.tzinfo is None:
        return datetime.combine(day, time())
    if tz is None:
        return datetime.combine(day, time()).astimezone()
    return datetime.combine(day, time(), tzinfo=tz)


def days_before(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


# ------------------------------------------------------------------
# Card values
# ------------------------------------------------------------------

def format_steps(count: int) -> str:
    return f"{count}"


def format_energy(kcal: float) -> str:
    return f"{kcal:.1f} kcal"


def format_sleep(hours: float) -> str:
    return f"{hours:.1f} hours"


def format_heart_rate(bpm: float | None) -> str:
    if bpm is None:
        return MISSING
    return f"{bpm:.0f} BPM"


def format_clock(ts: datetime | None, tz: Optional[tzinfo] = None) -> str:
    if ts is None:
        return MISSING
    if ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.strftime("%H:%M")


def format_date(day: date) -> str:
    return day.strftime("%a %b %d")
