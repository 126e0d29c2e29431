"""Great-circle distance and age arithmetic used by candidate matching."""

from __future__ import annotations

import math
from datetime import date, timedelta

from app.core.constants import EARTH_RADIUS_M


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def age_on(date_of_birth: date, today: date) -> int:
    """Whole years elapsed since *date_of_birth*, truncated."""
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def years_before(day: date, years: int) -> date:
    """Same calendar day *years* earlier; Feb 29 falls back to Feb 28."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def birth_date_bounds(min_age: int, max_age: int, today: date) -> tuple[date, date]:
    """Inclusive ``(earliest, latest)`` birth dates for an age range.

    A birth date ``d`` satisfies ``min_age <= age_on(d, today) <= max_age``
    exactly when ``earliest <= d <= latest``.
    """
    latest = years_before(today, min_age)
    earliest = years_before(today, max_age + 1) + timedelta(days=1)
    return earliest, latest
