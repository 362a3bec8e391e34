"""Temporal attendance patterns over a person's whole history.

Each detector answers "has this ever happened", so they read all past
sessions rather than a recent window. The pure functions take already
loaded events and attended ids; ``load_session_history`` does the reads.

"Attended" here means an RSVP of yes that was not cancelled late.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Callable, Hashable, Iterable

import redis

from clubawards.engine.history import EventRsvp, get_eligible_rsvps, get_events
from clubawards.models.history import EventRecord

SESSION_KIND = "session"

PERFECT_WEEK_MIN_SESSIONS = 2
UNBROKEN_MONTH_MIN_SESSIONS = 4
SEASON_CENTURION_SESSIONS = 100
SEASON_START_MONTH = 9  # seasons run September to August


def iso_week(dt: datetime) -> tuple[int, int]:
    year, week, _ = dt.isocalendar()
    return year, week


def year_month(dt: datetime) -> tuple[int, int]:
    return dt.year, dt.month


def season_of(dt: datetime) -> int:
    """Season label: the year it started in (Sept 2024 - Aug 2025 is 2024)."""
    return dt.year if dt.month >= SEASON_START_MONTH else dt.year - 1


def _bucket_sessions(
    sessions: Iterable[EventRecord],
    bucket_fn: Callable[[datetime], Hashable],
) -> dict[Hashable, set[str]]:
    buckets: dict[Hashable, set[str]] = defaultdict(set)
    for event in sessions:
        if event.starts_at is None:
            continue
        buckets[bucket_fn(event.starts_at)].add(event.event_id)
    return buckets


def _has_full_bucket(
    sessions: Iterable[EventRecord],
    attended_ids: set[str],
    bucket_fn: Callable[[datetime], Hashable],
    min_sessions: int,
) -> bool:
    for event_ids in _bucket_sessions(sessions, bucket_fn).values():
        if len(event_ids) >= min_sessions and event_ids <= attended_ids:
            return True
    return False


def has_perfect_week(sessions: Iterable[EventRecord], attended_ids: set[str]) -> bool:
    """Attended every session in some ISO week that had at least two."""
    return _has_full_bucket(sessions, attended_ids, iso_week, PERFECT_WEEK_MIN_SESSIONS)


def has_unbroken_month(sessions: Iterable[EventRecord], attended_ids: set[str]) -> bool:
    """Attended every session in some calendar month that had at least four."""
    return _has_full_bucket(sessions, attended_ids, year_month, UNBROKEN_MONTH_MIN_SESSIONS)


def has_streak_saver(sessions: Iterable[EventRecord], attended_ids: set[str]) -> bool:
    """Attended a week, missed the next session week entirely, then came back.

    Weeks are the ISO weeks that had at least one session, in calendar
    order; the comparison is positional over that ordered list.
    """
    buckets = _bucket_sessions(sessions, iso_week)
    attended_any = [bool(buckets[week] & attended_ids) for week in sorted(buckets)]
    for i in range(2, len(attended_any)):
        if attended_any[i - 2] and not attended_any[i - 1] and attended_any[i]:
            return True
    return False


def has_season_centurion(rows: Iterable[EventRsvp]) -> bool:
    """Attended 100 eligible sessions within one September-August season."""
    per_season: dict[int, int] = defaultdict(int)
    for row in rows:
        if not row.attended or row.event.starts_at is None:
            continue
        season = season_of(row.event.starts_at)
        per_season[season] += 1
        if per_season[season] >= SEASON_CENTURION_SESSIONS:
            return True
    return False


def load_session_history(
    person_id: str,
    now: datetime,
    r: redis.Redis,
) -> tuple[list[EventRecord], set[str]]:
    """All past club sessions, and the ids of those the person attended."""
    sessions = get_events(kinds=(SESSION_KIND,), before=now, r=r)
    rows = get_eligible_rsvps(
        person_id, kinds=(SESSION_KIND,), only_past=True, only_yes=True, now=now, r=r,
    )
    attended_ids = {row.event.event_id for row in rows if row.attended}
    return sessions, attended_ids
