"""Tests for billing cycle expansion."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from apps.bookings.domain.cycles import add_months, expand_cycles, span_of
from apps.bookings.exceptions import InvalidInputError

UTC = timezone.utc


def at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 9, 30, tzinfo=UTC)


def test_month_end_is_clamped_in_leap_year() -> None:
    (period,) = expand_cycles(at(2024, 1, 31), 1, "months", 1)
    assert period.start == at(2024, 1, 31)
    assert period.end == at(2024, 2, 29)


def test_month_end_is_clamped_in_common_year() -> None:
    assert add_months(at(2023, 1, 31), 1) == at(2023, 2, 28)


def test_months_roll_over_the_year() -> None:
    assert add_months(at(2024, 11, 15), 3) == at(2025, 2, 15)


def test_weekly_cycles_are_contiguous() -> None:
    periods = expand_cycles(at(2024, 3, 1), 1, "weeks", 3)

    assert [p.start for p in periods] == [at(2024, 3, 1), at(2024, 3, 8), at(2024, 3, 15)]
    assert periods[-1].end == at(2024, 3, 22)
    for previous, current in zip(periods, periods[1:]):
        assert current.start == previous.end


def test_seven_day_cycles_span_twenty_one_days() -> None:
    periods = expand_cycles(at(2024, 3, 1), 7, "days", 3)

    assert len(periods) == 3
    assert span_of(periods).end - span_of(periods).start == timedelta(days=21)


def test_monthly_cycles_chain_from_previous_end() -> None:
    periods = expand_cycles(at(2024, 4, 1), 1, "months", 2)

    assert [(p.start, p.end) for p in periods] == [
        (at(2024, 4, 1), at(2024, 5, 1)),
        (at(2024, 5, 1), at(2024, 6, 1)),
    ]


def test_clamped_day_carries_into_later_cycles() -> None:
    periods = expand_cycles(at(2024, 1, 31), 1, "months", 3)

    assert [p.end for p in periods] == [at(2024, 2, 29), at(2024, 3, 29), at(2024, 4, 29)]


def test_time_of_day_is_kept() -> None:
    start = datetime(2024, 3, 1, 18, 45, tzinfo=UTC)
    (period,) = expand_cycles(start, 2, "days", 1)
    assert period.end == datetime(2024, 3, 3, 18, 45, tzinfo=UTC)


def test_expansion_is_deterministic() -> None:
    assert expand_cycles(at(2024, 1, 31), 2, "months", 4) == expand_cycles(at(2024, 1, 31), 2, "months", 4)


@pytest.mark.parametrize("count", [0, -1, 1.5, True, None])
def test_non_positive_or_non_integer_count_is_rejected(count) -> None:
    with pytest.raises(InvalidInputError):
        expand_cycles(at(2024, 3, 1), 1, "months", count)


@pytest.mark.parametrize("duration", [0, -3])
def test_non_positive_duration_is_rejected(duration) -> None:
    with pytest.raises(InvalidInputError):
        expand_cycles(at(2024, 3, 1), duration, "days", 1)


def test_unknown_unit_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        expand_cycles(at(2024, 3, 1), 1, "fortnights", 1)


def test_start_must_be_a_datetime() -> None:
    with pytest.raises(InvalidInputError):
        expand_cycles("2024-03-01", 1, "months", 1)


def test_span_of_empty_list_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        span_of([])
