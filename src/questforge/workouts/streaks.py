"""Consecutive-day streak computation over completed workout dates."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone, tzinfo
from itertools import groupby
from zoneinfo import ZoneInfo


def get_calendar_tz(name: str) -> tzinfo:
    """Resolve the configured calendar timezone."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Today's calendar date in the configured timezone."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(get_calendar_tz(tz_name)).date()


def current_streak(completed_dates: Iterable[date], today: date) -> int:
    """Count consecutive completed days walking back from ``today``.

    A day without a completed log, including today, ends the run.
    """
    done = set(completed_dates)
    streak = 0
    day = today
    while day in done:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_run(completed_dates: Iterable[date]) -> int:
    """Length of the longest run of consecutive dates.

    Dates are grouped by ``date - rank``: within a consecutive run the
    difference stays constant, so each group is one maximal run.
    """
    ordered = sorted(set(completed_dates))
    if not ordered:
        return 0

    keyed = ((d.toordinal() - rank, d) for rank, d in enumerate(ordered))
    return max(sum(1 for _ in run) for _, run in groupby(keyed, key=lambda item: item[0]))
