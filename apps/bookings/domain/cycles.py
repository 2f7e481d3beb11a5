"""
Billing Cycle Expansion

Turns a start instant, a plan duration and a cycle count into the
ordered list of half-open periods the booking will occupy. Each cycle
starts exactly where the previous one ends.

Month arithmetic is calendar based: adding a month keeps the day of
month and clamps it to the last day of shorter months, so 31 January
plus one month is 29 February in a leap year.
"""

from calendar import monthrange
from datetime import datetime, timedelta
from typing import List

from apps.bookings.exceptions import InvalidInputError
from shared.domain.value_objects import Period

DAYS = 'days'
WEEKS = 'weeks'
MONTHS = 'months'

DURATION_UNITS = (DAYS, WEEKS, MONTHS)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length"""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def cycle_end(start: datetime, duration: int, unit: str) -> datetime:
    """End of one cycle that starts at ``start``"""
    if unit == DAYS:
        return start + timedelta(days=duration)
    if unit == WEEKS:
        return start + timedelta(days=7 * duration)
    if unit == MONTHS:
        return add_months(start, duration)
    raise InvalidInputError(f"Unrecognized duration unit: {unit!r}")


def expand_cycles(start: datetime, duration: int, unit: str, count: int) -> List[Period]:
    """
    Expand a booking into its billing cycles

    Args:
        start: First cycle's start instant (time of day and tzinfo are kept)
        duration: Length of one cycle, in ``unit``
        unit: One of ``days``, ``weeks``, ``months``
        count: Number of consecutive cycles, at least 1

    Returns:
        Non-empty list of chained periods

    Raises:
        InvalidInputError: On a non-positive count or duration, or an unknown unit
    """
    if not isinstance(start, datetime):
        raise InvalidInputError(f"Start must be a datetime, got {type(start).__name__}")
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidInputError(f"Cycle count must be a positive integer, got {count!r}")
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 1:
        raise InvalidInputError(f"Plan duration must be a positive integer, got {duration!r}")
    if unit not in DURATION_UNITS:
        raise InvalidInputError(f"Unrecognized duration unit: {unit!r}")

    periods: List[Period] = []
    current = start
    for _ in range(count):
        end = cycle_end(current, duration, unit)
        periods.append(Period(current, end))
        # Next cycle starts when this one ends
        current = end
    return periods


def span_of(periods: List[Period]) -> Period:
    """Single period covering every cycle"""
    if not periods:
        raise InvalidInputError("At least one period is required")
    return Period(periods[0].start, periods[-1].end)
