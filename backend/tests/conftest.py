"""Shared test fixtures for the award engine test suite."""

import pytest
import fakeredis
from datetime import datetime, timedelta, timezone

from clubawards.models.history import (
    EventRecord,
    RsvpRecord,
    AttendanceRecord,
    TeamRecord,
    TeamAssignmentRecord,
)


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


# ── Time ────────────────────────────────────────────────────────────────

@pytest.fixture
def frozen_now():
    """Fixed 'now' for deterministic rule tests.

    2026-02-15T12:00:00Z is noon UTC on a Sunday (end of ISO week 7).
    """
    return datetime(2026, 2, 15, 12, 0, 0, tzinfo=timezone.utc)


# ── History Factories ───────────────────────────────────────────────────

@pytest.fixture
def add_event(r, frozen_now):
    """Factory fixture that stores an EventRecord.

    Usage:
        event = add_event(kind="match", starts_at=frozen_now - timedelta(days=2))
    """
    _counter = 0

    def _factory(starts_at=None, **overrides):
        nonlocal _counter
        _counter += 1
        starts_at = starts_at or frozen_now - timedelta(days=_counter)
        defaults = {
            "event_id": f"event-{_counter}",
            "title": f"Session {_counter}",
            "kind": "session",
            "starts_at_utc": starts_at.isoformat(),
            "location": "K2 Crawley",
        }
        defaults.update(overrides)
        event = EventRecord(**defaults)
        event.to_redis(r)
        return event

    return _factory


@pytest.fixture
def add_rsvp(r):
    """Factory fixture that stores an RSVP for an already-stored event.

    ``responded_at`` defaults to three days before the event start.
    """

    def _factory(event, person_id="p1", **overrides):
        defaults = {
            "event_id": event.event_id,
            "person_id": person_id,
            "response": "yes",
            "responded_at": (event.starts_at - timedelta(days=3)).isoformat(),
            "cancelled_late": False,
        }
        defaults.update(overrides)
        rsvp = RsvpRecord(**defaults)
        rsvp.to_redis(r)
        return rsvp

    return _factory


@pytest.fixture
def attend(add_event, add_rsvp):
    """Store a past event of ``kind`` with a yes RSVP from ``person_id``."""

    def _factory(person_id="p1", rsvp_overrides=None, **event_overrides):
        event = add_event(**event_overrides)
        add_rsvp(event, person_id=person_id, **(rsvp_overrides or {}))
        return event

    return _factory


@pytest.fixture
def add_attendance(r):
    def _factory(event, person_id="p1", status="present"):
        record = AttendanceRecord(
            event_id=event.event_id,
            person_id=person_id,
            status=status,
            checked_in_at=event.starts_at_utc,
        )
        record.to_redis(r)
        return record

    return _factory


@pytest.fixture
def add_assignment(r, add_event):
    """Store a team (by name) and a team assignment on a fresh event."""

    def _factory(person_id="p1", team_name="White", event=None, **overrides):
        event = event or add_event()
        team_id = f"{event.event_id}-{team_name.lower().replace(' ', '-')}"
        TeamRecord(team_id=team_id, event_id=event.event_id, name=team_name).to_redis(r)
        defaults = {
            "event_id": event.event_id,
            "person_id": person_id,
            "team_id": team_id,
            "activity": "play",
            "position_code": None,
            "assigned_by_person_id": None,
            "assigned_at": event.starts_at_utc,
        }
        defaults.update(overrides)
        assignment = TeamAssignmentRecord(**defaults)
        assignment.to_redis(r)
        return assignment

    return _factory
