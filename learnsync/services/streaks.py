"""Learning streak calculation.

A streak is a run of consecutive UTC calendar days with at least one
completion.  Days are compared as ``datetime.date`` values, never as
timestamp differences, so a completion at 23:59 and one at 00:01 the next
day are one day apart regardless of the hours between them.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass

from learnsync.models.profile import StreakBlock


@dataclass(frozen=True, slots=True)
class Streaks:
    current: int = 0
    longest: int = 0
    last_day: datetime.date | None = None


def to_utc_day(ts: datetime.datetime) -> datetime.date:
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(datetime.UTC).date()


def utc_today(now: datetime.datetime) -> datetime.date:
    return to_utc_day(now)


def calculate_streaks(
    timestamps: Iterable[datetime.datetime], today: datetime.date
) -> Streaks:
    days = sorted({to_utc_day(ts) for ts in timestamps}, reverse=True)
    if not days:
        return Streaks()

    longest = 0
    run = 0
    leading_run: int | None = None
    previous: datetime.date | None = None

    for day in days:
        if previous is not None and (previous - day).days == 1:
            run += 1
        else:
            if previous is not None and leading_run is None:
                leading_run = run
            run = 1
        longest = max(longest, run)
        previous = day

    if leading_run is None:
        leading_run = run

    # The most recent day keeps the streak alive through "yesterday":
    # the student may simply not have studied yet today.
    gap = (today - days[0]).days
    current = leading_run if gap <= 1 else 0

    return Streaks(current=current, longest=longest, last_day=days[0])


def current_as_of(stored: StreakBlock, today: datetime.date) -> int:
    """The stored current streak, or 0 once its last day is before yesterday."""
    if stored.last_streak_day is None or (today - stored.last_streak_day).days > 1:
        return 0
    return stored.current_learning_streak


def merge_with_stored(computed: Streaks, stored: StreakBlock) -> StreakBlock:
    """Fold a recomputation into the stored block.

    The longest streak never shrinks: history pruned by the retention job
    would otherwise lower it.  Current is clamped so it never exceeds
    longest.
    """
    longest = max(computed.longest, stored.longest_learning_streak, computed.current)
    return StreakBlock(
        current_learning_streak=min(computed.current, longest),
        longest_learning_streak=longest,
        last_streak_day=computed.last_day or stored.last_streak_day,
    )
