"""Club history records: events, RSVPs, attendance and team assignments.

These rows belong to the wider club app. The award engine only reads them;
the ``to_redis`` writers exist so the app (and the test suite) can populate
the shared Redis keyspace the engine queries.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from datetime import datetime, timezone
from typing import Optional

import redis

EVENT_PREFIX = "event:"
EVENTS_BY_START_KEY = "events:by_start"
RSVP_PREFIX = "rsvp:"
PERSON_RSVPS_PREFIX = "person_rsvps:"
PERSON_YES_RSVPS_PREFIX = "person_yes_rsvps:"
EVENT_RSVPS_PREFIX = "event_rsvps:"
RSVP_ACTIVITY_KEY = "rsvps:responded"
ATTENDANCE_PREFIX = "attendance:"
PERSON_ATTENDANCE_PREFIX = "person_attendance:"
TEAM_PREFIX = "team:"
ASSIGNMENT_PREFIX = "team_assignment:"
PERSON_ASSIGNMENTS_PREFIX = "person_assignments:"
EVENT_ASSIGNMENTS_PREFIX = "event_assignments:"
GROUP_ROLE_PREFIX = "group_role:"

POSITION_CODES = ("F", "W", "C", "B")


class RsvpResponse:
    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


class AttendanceStatus:
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class Activity:
    PLAY = "play"
    SWIM_SETS = "swim_sets"
    NOT_PLAYING = "not_playing"
    OTHER = "other"


def parse_utc(value: str | datetime | None) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp, treating naive values as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_score(value: str | datetime | None) -> float:
    """Sorted-set score for a timestamp (epoch seconds, 0 when unknown)."""
    dt = parse_utc(value)
    return dt.timestamp() if dt else 0.0


def _decode(data: dict) -> dict:
    return {k.decode() if isinstance(k, bytes) else k:
            v.decode() if isinstance(v, bytes) else v
            for k, v in data.items()}


class _HashRecord:
    """Shared hash (de)serialization for the record dataclasses.

    Redis hashes cannot hold None or bools, so None is stored as "" and
    bools as "1"/"0".
    """

    _bool_fields: tuple[str, ...] = ()
    _optional_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        d = asdict(self)
        for name, value in d.items():
            if value is None:
                d[name] = ""
            elif isinstance(value, bool):
                d[name] = "1" if value else "0"
        return d

    @classmethod
    def from_dict(cls, data: dict):
        data = _decode(dict(data))
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in data.items() if k in known}
        for name in cls._bool_fields:
            if name in data:
                data[name] = data[name] in ("1", "true", "True", True)
        for name in cls._optional_fields:
            if data.get(name) == "":
                data[name] = None
        return cls(**data)


@dataclass
class EventRecord(_HashRecord):
    event_id: str
    title: str = ""
    kind: str = "session"        # session | training | ladies | match | tournament | ...
    starts_at_utc: str = ""      # ISO 8601
    location: Optional[str] = None
    visible_from: Optional[str] = None  # when members could first see the event

    _optional_fields = ("location", "visible_from")

    @property
    def starts_at(self) -> Optional[datetime]:
        return parse_utc(self.starts_at_utc)

    def to_redis(self, r: redis.Redis) -> None:
        """Persist the event and re-score every RSVP index that orders by its start."""
        score = to_score(self.starts_at_utc)
        r.hset(f"{EVENT_PREFIX}{self.event_id}", mapping=self.to_dict())
        r.zadd(EVENTS_BY_START_KEY, {self.event_id: score})
        for person_id in r.smembers(f"{EVENT_RSVPS_PREFIX}{self.event_id}"):
            r.zadd(f"{PERSON_RSVPS_PREFIX}{person_id}", {self.event_id: score}, xx=True)
            r.zadd(f"{PERSON_YES_RSVPS_PREFIX}{person_id}", {self.event_id: score}, xx=True)

    @classmethod
    def from_redis(cls, r: redis.Redis, event_id: str) -> Optional[EventRecord]:
        data = r.hgetall(f"{EVENT_PREFIX}{event_id}")
        if not data:
            return None
        return cls.from_dict(data)


@dataclass
class RsvpRecord(_HashRecord):
    event_id: str
    person_id: str
    response: str = RsvpResponse.YES
    responded_at: str = ""       # ISO 8601
    cancelled_late: bool = False

    _bool_fields = ("cancelled_late",)

    @property
    def responded(self) -> Optional[datetime]:
        return parse_utc(self.responded_at)

    def to_redis(self, r: redis.Redis) -> None:
        """Persist the RSVP and keep the per-person / per-event indexes current.

        The person indexes are scored by event start, so the event must be
        stored first. Only yes answers stay in the yes index.
        """
        r.hset(f"{RSVP_PREFIX}{self.event_id}:{self.person_id}", mapping=self.to_dict())
        score = to_score(r.hget(f"{EVENT_PREFIX}{self.event_id}", "starts_at_utc"))
        r.zadd(f"{PERSON_RSVPS_PREFIX}{self.person_id}", {self.event_id: score})
        if self.response == RsvpResponse.YES:
            r.zadd(f"{PERSON_YES_RSVPS_PREFIX}{self.person_id}", {self.event_id: score})
        else:
            r.zrem(f"{PERSON_YES_RSVPS_PREFIX}{self.person_id}", self.event_id)
        r.sadd(f"{EVENT_RSVPS_PREFIX}{self.event_id}", self.person_id)
        if self.responded_at:
            r.zadd(RSVP_ACTIVITY_KEY, {self.person_id: to_score(self.responded_at)}, gt=True)

    @classmethod
    def from_redis(cls, r: redis.Redis, event_id: str, person_id: str) -> Optional[RsvpRecord]:
        data = r.hgetall(f"{RSVP_PREFIX}{event_id}:{person_id}")
        if not data:
            return None
        return cls.from_dict(data)


@dataclass
class AttendanceRecord(_HashRecord):
    event_id: str
    person_id: str
    status: str = AttendanceStatus.PRESENT
    checked_in_at: str = ""

    @property
    def attended(self) -> bool:
        return self.status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)

    def to_redis(self, r: redis.Redis) -> None:
        r.hset(f"{ATTENDANCE_PREFIX}{self.event_id}:{self.person_id}", mapping=self.to_dict())
        r.zadd(f"{PERSON_ATTENDANCE_PREFIX}{self.person_id}", {self.event_id: to_score(self.checked_in_at)})

    @classmethod
    def from_redis(cls, r: redis.Redis, event_id: str, person_id: str) -> Optional[AttendanceRecord]:
        data = r.hgetall(f"{ATTENDANCE_PREFIX}{event_id}:{person_id}")
        if not data:
            return None
        return cls.from_dict(data)


@dataclass
class TeamRecord(_HashRecord):
    team_id: str
    event_id: str = ""
    name: str = ""

    def to_redis(self, r: redis.Redis) -> None:
        r.hset(f"{TEAM_PREFIX}{self.team_id}", mapping=self.to_dict())

    @classmethod
    def from_redis(cls, r: redis.Redis, team_id: str) -> Optional[TeamRecord]:
        data = r.hgetall(f"{TEAM_PREFIX}{team_id}")
        if not data:
            return None
        return cls.from_dict(data)


@dataclass
class TeamAssignmentRecord(_HashRecord):
    event_id: str
    person_id: str
    team_id: Optional[str] = None
    activity: str = Activity.PLAY
    position_code: Optional[str] = None   # F | W | C | B
    assigned_by_person_id: Optional[str] = None
    assigned_at: str = ""

    _optional_fields = ("team_id", "position_code", "assigned_by_person_id")

    def to_redis(self, r: redis.Redis) -> None:
        r.hset(f"{ASSIGNMENT_PREFIX}{self.event_id}:{self.person_id}", mapping=self.to_dict())
        r.zadd(f"{PERSON_ASSIGNMENTS_PREFIX}{self.person_id}", {self.event_id: to_score(self.assigned_at)})
        r.zadd(
            f"{EVENT_ASSIGNMENTS_PREFIX}{self.event_id}",
            {self.person_id: to_score(self.assigned_at)},
        )

    @classmethod
    def from_redis(cls, r: redis.Redis, event_id: str, person_id: str) -> Optional[TeamAssignmentRecord]:
        data = r.hgetall(f"{ASSIGNMENT_PREFIX}{event_id}:{person_id}")
        if not data:
            return None
        return cls.from_dict(data)


def add_group_role(r: redis.Redis, person_id: str, role: str) -> None:
    """Record that a person holds ``role`` in at least one group."""
    r.sadd(f"{GROUP_ROLE_PREFIX}{role}", person_id)
