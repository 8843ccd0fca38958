"""Evaluate structured weekly opening periods.

Every function returns ``True``/``False`` when the schedule answers the
question and ``None`` when it cannot (no schedule, or the constraint is
missing a time).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from ..candidates.models import OpeningPeriod
from ..extraction.models import OpenAt, OpenBetween

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY


def google_day(moment: datetime) -> int:
    """0=Sunday..6=Saturday, matching the Places API."""
    return (moment.weekday() + 1) % 7


def _parse_hhmm(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _intervals(periods: Sequence[OpeningPeriod]) -> list[tuple[int, int]]:
    # A single period opening Sunday 00:00 with no close means always open.
    if len(periods) == 1 and periods[0].close_day is None and periods[0].open_day == 0 and periods[0].open_minute == 0:
        return [(0, MINUTES_PER_WEEK)]

    intervals = []
    for period in periods:
        if period.close_day is None or period.close_minute is None:
            continue
        start = period.open_day * MINUTES_PER_DAY + period.open_minute
        end = period.close_day * MINUTES_PER_DAY + period.close_minute
        if end <= start:
            end += MINUTES_PER_WEEK
        intervals.append((start, end))
    return intervals


def _covers(intervals: list[tuple[int, int]], start: int, end: int) -> bool:
    for lo, hi in intervals:
        for shift in (0, MINUTES_PER_WEEK):
            if lo <= start + shift and end + shift <= hi:
                return True
    return False


def is_open_during(
    periods: Sequence[OpeningPeriod] | None, day: int, start_minute: int, end_minute: int,
) -> bool | None:
    """True when one opening interval covers the whole window on ``day``."""
    if not periods:
        return None
    intervals = _intervals(periods)
    if not intervals:
        return None
    start = day * MINUTES_PER_DAY + start_minute
    end = day * MINUTES_PER_DAY + end_minute
    if end <= start:
        end += MINUTES_PER_DAY
    return _covers(intervals, start, end)


def evaluate_open_at(periods: Sequence[OpeningPeriod] | None, open_at: OpenAt, now: datetime) -> bool | None:
    if open_at.time is None:
        return None
    day = open_at.day if open_at.day is not None else google_day(now)
    minute = _parse_hhmm(open_at.time)
    return is_open_during(periods, day, minute, minute + 1)


def evaluate_open_between(
    periods: Sequence[OpeningPeriod] | None, open_between: OpenBetween, now: datetime,
) -> bool | None:
    if open_between.start is None or open_between.end is None:
        return None
    day = open_between.day if open_between.day is not None else google_day(now)
    return is_open_during(periods, day, _parse_hhmm(open_between.start), _parse_hhmm(open_between.end))
