from __future__ import annotations

import datetime

from learnsync.models.profile import StreakBlock
from learnsync.services.streaks import (
    Streaks,
    calculate_streaks,
    current_as_of,
    merge_with_stored,
    to_utc_day,
)

D = datetime.date(2026, 3, 10)


def _at(day: datetime.date, hour: int = 12, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(day.year, day.month, day.day, hour, minute, tzinfo=datetime.UTC)


def _days_ago(n: int) -> datetime.datetime:
    return _at(D - datetime.timedelta(days=n))


def test_no_completions() -> None:
    assert calculate_streaks([], D) == Streaks(current=0, longest=0, last_day=None)


def test_three_consecutive_days_ending_today() -> None:
    s = calculate_streaks([_days_ago(0), _days_ago(1), _days_ago(2)], D)
    assert s.current == 3
    assert s.longest >= 3


def test_gap_breaks_the_run() -> None:
    # Today and five days ago: the leading run is just today, and a single
    # completion today is a current streak of 1. Current drops to 0 only
    # once the latest day is older than yesterday (next test).
    s = calculate_streaks([_days_ago(0), _days_ago(5)], D)
    assert s.current == 1
    assert s.longest == 1


def test_stale_pair_has_no_current_streak() -> None:
    # Same two days seen three days later.
    today = D + datetime.timedelta(days=3)
    s = calculate_streaks([_days_ago(0), _days_ago(5)], today)
    assert s.current == 0
    assert s.longest == 1


def test_single_completion_yesterday_keeps_streak_alive() -> None:
    assert calculate_streaks([_days_ago(1)], D).current == 1


def test_single_completion_two_days_ago_is_broken() -> None:
    s = calculate_streaks([_days_ago(2)], D)
    assert s.current == 0
    assert s.longest == 1


def test_multiple_completions_on_one_day_count_once() -> None:
    day = D
    s = calculate_streaks([_at(day, 8), _at(day, 12), _at(day, 23, 59)], D)
    assert s == Streaks(current=1, longest=1, last_day=D)


def test_midnight_boundary_counts_calendar_days() -> None:
    # Two minutes apart but on two UTC calendar days.
    late = _at(D - datetime.timedelta(days=1), 23, 59)
    early = _at(D, 0, 1)
    assert calculate_streaks([late, early], D).current == 2


def test_twenty_three_hours_apart_on_same_day_is_one_day() -> None:
    s = calculate_streaks([_at(D, 0, 30), _at(D, 23, 30)], D)
    assert s.longest == 1


def test_longest_run_in_the_past() -> None:
    timestamps = [_days_ago(n) for n in (0, 1, 10, 11, 12, 13, 14, 30)]
    s = calculate_streaks(timestamps, D)
    assert s.current == 2
    assert s.longest == 5
    assert s.last_day == D


def test_input_order_does_not_matter() -> None:
    timestamps = [_days_ago(n) for n in (3, 0, 2, 1)]
    assert calculate_streaks(timestamps, D) == calculate_streaks(sorted(timestamps), D)


def test_non_utc_timestamps_use_their_utc_date() -> None:
    plus_nine = datetime.timezone(datetime.timedelta(hours=9))
    # 2026-03-11 07:00 +09:00 is 2026-03-10 22:00 UTC.
    ts = datetime.datetime(2026, 3, 11, 7, 0, tzinfo=plus_nine)
    assert to_utc_day(ts) == D


def test_naive_timestamps_are_taken_as_utc() -> None:
    assert to_utc_day(datetime.datetime(2026, 3, 10, 23, 0)) == D


# ---- merging into the stored block ----


def test_merge_never_shrinks_longest() -> None:
    stored = StreakBlock(current_learning_streak=2, longest_learning_streak=12)
    merged = merge_with_stored(Streaks(current=3, longest=3, last_day=D), stored)
    assert merged.longest_learning_streak == 12
    assert merged.current_learning_streak == 3
    assert merged.last_streak_day == D


def test_merge_raises_longest_to_current() -> None:
    stored = StreakBlock(current_learning_streak=0, longest_learning_streak=1)
    merged = merge_with_stored(Streaks(current=4, longest=4, last_day=D), stored)
    assert merged.longest_learning_streak == 4


def test_merge_keeps_last_day_when_nothing_computed() -> None:
    stored = StreakBlock(current_learning_streak=1, longest_learning_streak=6, last_streak_day=D)
    merged = merge_with_stored(Streaks(), stored)
    assert merged.current_learning_streak == 0
    assert merged.longest_learning_streak == 6
    assert merged.last_streak_day == D


def test_current_as_of_decays_stale_streak() -> None:
    block = StreakBlock(current_learning_streak=4, longest_learning_streak=4, last_streak_day=D)
    assert current_as_of(block, D) == 4
    assert current_as_of(block, D + datetime.timedelta(days=1)) == 4
    assert current_as_of(block, D + datetime.timedelta(days=2)) == 0
    assert current_as_of(StreakBlock(), D) == 0
