"""Current consecutive-attendance streak.

Walks the most recent ``STREAK_WINDOW`` yes-RSVPs to already-started
eligible events, newest first, and counts until the first late
cancellation. Streaks longer than the window are reported as the window
size.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

import redis

from clubawards.config.settings import STREAK_WINDOW
from clubawards.engine.history import EventRsvp, get_eligible_rsvps

# Event kinds that count towards streaks and session totals
ELIGIBLE_KINDS = ("session", "training", "ladies")


def count_streak(rows: Iterable[EventRsvp]) -> int:
    """Count rows (newest first) up to, not including, the first late cancel."""
    streak = 0
    for row in rows:
        if row.rsvp.cancelled_late:
            break
        streak += 1
    return streak


def calculate_streak(
    person_id: str,
    now: datetime | None = None,
    r: redis.Redis | None = None,
) -> int:
    rows = get_eligible_rsvps(
        person_id,
        kinds=ELIGIBLE_KINDS,
        max_rows=STREAK_WINDOW,
        only_past=True,
        only_yes=True,
        now=now,
        r=r,
    )
    return count_streak(rows)
