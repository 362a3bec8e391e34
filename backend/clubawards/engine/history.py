"""Read-only queries over club history stored in Redis.

Every evaluation re-reads current state; nothing is cached between calls.
Queries walk sorted-set indexes newest first and read at most
``HISTORY_MAX_ROWS`` index entries, so one evaluation has bounded cost
however the results are filtered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

import redis

from clubawards.config.settings import REDIS_URL, HISTORY_MAX_ROWS
from clubawards.models.history import (
    EventRecord,
    RsvpRecord,
    AttendanceRecord,
    TeamRecord,
    TeamAssignmentRecord,
    RsvpResponse,
    EVENTS_BY_START_KEY,
    PERSON_RSVPS_PREFIX,
    PERSON_YES_RSVPS_PREFIX,
    EVENT_RSVPS_PREFIX,
    RSVP_ACTIVITY_KEY,
    PERSON_ATTENDANCE_PREFIX,
    PERSON_ASSIGNMENTS_PREFIX,
    EVENT_ASSIGNMENTS_PREFIX,
    GROUP_ROLE_PREFIX,
)


@dataclass
class EventRsvp:
    """An RSVP joined with the event it answers."""
    rsvp: RsvpRecord
    event: EventRecord

    @property
    def attended(self) -> bool:
        """Said yes and did not cancel late."""
        return self.rsvp.response == RsvpResponse.YES and not self.rsvp.cancelled_late


@dataclass
class TeamAssignmentView:
    """A team assignment joined with its team's display name."""
    assignment: TeamAssignmentRecord
    team_name: str = ""


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


# Index entries fetched per ZREVRANGEBYSCORE call
SCAN_PAGE = 100


def _scan_newest(
    r: redis.Redis,
    key: str,
    upper: str = "+inf",
    limit: int = HISTORY_MAX_ROWS,
) -> Iterator[str]:
    """Members of a sorted set, highest score first, at most ``limit`` of them.

    Pages through the index so a caller that stops early never fetches the
    rest of it.
    """
    offset = 0
    while offset < limit:
        page = r.zrevrangebyscore(key, upper, "-inf", start=offset, num=min(SCAN_PAGE, limit - offset))
        if not page:
            return
        yield from page
        offset += len(page)


def get_event(event_id: str, r: redis.Redis | None = None) -> Optional[EventRecord]:
    r = r or _get_redis()
    return EventRecord.from_redis(r, event_id)


def get_eligible_rsvps(
    person_id: str,
    kinds: Iterable[str] | None = None,
    max_rows: int = HISTORY_MAX_ROWS,
    only_past: bool = False,
    only_yes: bool = False,
    now: datetime | None = None,
    scan_limit: int = HISTORY_MAX_ROWS,
    r: redis.Redis | None = None,
) -> list[EventRsvp]:
    """A person's RSVPs joined with their events, newest event start first.

    ``only_past`` keeps events that started strictly before ``now``.
    ``only_yes`` reads the yes-only index. At most ``scan_limit`` index
    entries are examined and at most ``max_rows`` matching rows returned.
    """
    r = r or _get_redis()
    kind_set = set(kinds) if kinds is not None else None
    prefix = PERSON_YES_RSVPS_PREFIX if only_yes else PERSON_RSVPS_PREFIX
    upper = f"({_now(now).timestamp()}" if only_past else "+inf"

    rows: list[EventRsvp] = []
    for event_id in _scan_newest(r, f"{prefix}{person_id}", upper, scan_limit):
        if len(rows) >= max_rows:
            break
        rsvp = RsvpRecord.from_redis(r, event_id, person_id)
        if rsvp is None:
            continue
        if only_yes and rsvp.response != RsvpResponse.YES:
            continue
        event = EventRecord.from_redis(r, event_id)
        if event is None:
            continue
        if kind_set is not None and event.kind not in kind_set:
            continue
        rows.append(EventRsvp(rsvp=rsvp, event=event))
    return rows


def get_event_rsvps(event_id: str, r: redis.Redis | None = None) -> list[RsvpRecord]:
    """Every RSVP recorded against one event."""
    r = r or _get_redis()
    rsvps = []
    for person_id in r.smembers(f"{EVENT_RSVPS_PREFIX}{event_id}"):
        rsvp = RsvpRecord.from_redis(r, event_id, person_id)
        if rsvp:
            rsvps.append(rsvp)
    return rsvps


def get_events(
    kinds: Iterable[str] | None = None,
    before: datetime | None = None,
    max_rows: int = HISTORY_MAX_ROWS,
    scan_limit: int = HISTORY_MAX_ROWS,
    r: redis.Redis | None = None,
) -> list[EventRecord]:
    """Club events (optionally of the given kinds) that started before ``before``.

    Returns the most recent ``max_rows`` matches in chronological order,
    looking at no more than ``scan_limit`` events.
    """
    r = r or _get_redis()
    kind_set = set(kinds) if kinds is not None else None
    upper = f"({before.timestamp()}" if before else "+inf"
    events: list[EventRecord] = []
    for event_id in _scan_newest(r, EVENTS_BY_START_KEY, upper, scan_limit):
        if len(events) >= max_rows:
            break
        event = EventRecord.from_redis(r, event_id)
        if event is None:
            continue
        if kind_set is not None and event.kind not in kind_set:
            continue
        events.append(event)
    events.reverse()
    return events


def get_attendance_by_weekday(
    person_id: str,
    weekday: int,
    max_rows: int = HISTORY_MAX_ROWS,
    r: redis.Redis | None = None,
) -> list[AttendanceRecord]:
    """Present/late attendance at events starting on ``weekday`` (Monday=0, UTC).

    Only the newest ``max_rows`` check-ins are examined.
    """
    r = r or _get_redis()
    matches = []
    for event_id in _scan_newest(r, f"{PERSON_ATTENDANCE_PREFIX}{person_id}", limit=max_rows):
        record = AttendanceRecord.from_redis(r, event_id, person_id)
        if record is None or not record.attended:
            continue
        event = EventRecord.from_redis(r, event_id)
        if event is None or event.starts_at is None:
            continue
        if event.starts_at.weekday() == weekday:
            matches.append(record)
    return matches


def get_team_assignments(
    person_id: str,
    activity: str | None = None,
    max_rows: int = HISTORY_MAX_ROWS,
    r: redis.Redis | None = None,
) -> list[TeamAssignmentView]:
    """A person's newest ``max_rows`` team assignments with team names.

    Newest by ``assigned_at``; the activity filter applies within that window.
    """
    r = r or _get_redis()
    views: list[TeamAssignmentView] = []
    for event_id in _scan_newest(r, f"{PERSON_ASSIGNMENTS_PREFIX}{person_id}", limit=max_rows):
        assignment = TeamAssignmentRecord.from_redis(r, event_id, person_id)
        if assignment is None:
            continue
        if activity is not None and assignment.activity != activity:
            continue
        team_name = ""
        if assignment.team_id:
            team = TeamRecord.from_redis(r, assignment.team_id)
            team_name = team.name if team else ""
        views.append(TeamAssignmentView(assignment=assignment, team_name=team_name))
    return views


def get_event_team_assignments(event_id: str, r: redis.Redis | None = None) -> list[TeamAssignmentRecord]:
    """Assignments for one event in the order they were made."""
    r = r or _get_redis()
    records = []
    for person_id in r.zrange(f"{EVENT_ASSIGNMENTS_PREFIX}{event_id}", 0, -1):
        record = TeamAssignmentRecord.from_redis(r, event_id, person_id)
        if record:
            records.append(record)
    return records


def has_group_role(person_id: str, role: str, r: redis.Redis | None = None) -> bool:
    r = r or _get_redis()
    return bool(r.sismember(f"{GROUP_ROLE_PREFIX}{role}", person_id))


def get_active_person_ids(since: datetime, r: redis.Redis | None = None) -> list[str]:
    """People whose latest RSVP response is strictly after ``since``."""
    r = r or _get_redis()
    return list(r.zrangebyscore(RSVP_ACTIVITY_KEY, f"({since.timestamp()}", "+inf"))
