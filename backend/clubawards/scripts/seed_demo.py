"""Seed Redis with a small club history and run the award engine over it.

Run: python -m clubawards.scripts.seed_demo (from backend/)
"""

import logging
from datetime import datetime, timedelta, timezone

import redis

from clubawards.config.settings import REDIS_URL, LOG_LEVEL
from clubawards.engine.dispatcher import evaluate
from clubawards.engine.summary import get_awards_summary
from clubawards.models.history import (
    EventRecord,
    RsvpRecord,
    AttendanceRecord,
    TeamRecord,
    TeamAssignmentRecord,
    add_group_role,
)
from clubawards.models.triggers import RsvpTrigger, ProfileLoadTrigger

DEMO_PREFIXES = (
    "event:", "events:by_start", "rsvp:", "person_rsvps:", "person_yes_rsvps:", "event_rsvps:", "rsvps:responded",
    "attendance:", "person_attendance:", "team:", "team_assignment:", "person_assignments:",
    "event_assignments:", "group_role:", "person_awards:",
)


def clear_history(r: redis.Redis) -> None:
    """Remove all club history and grants from Redis."""
    for prefix in DEMO_PREFIXES:
        for key in r.scan_iter(f"{prefix}*"):
            r.delete(key)


def seed(r: redis.Redis | None = None) -> dict:
    """Write twelve weeks of history for one member, evaluate, and return their summary."""
    r = r or redis.Redis.from_url(REDIS_URL, decode_responses=True)
    clear_history(r)

    now = datetime.now(timezone.utc)
    member = "demo-member"
    captain = "demo-captain"
    add_group_role(r, captain, "captain")

    # ── Twelve weeks of Thursday and Sunday sessions ─────────────────────
    for week in range(12):
        for offset, label in ((3, "Thursday"), (6, "Sunday")):
            starts = now - timedelta(weeks=12 - week) + timedelta(days=offset - now.weekday())
            event_id = f"session-{week}-{label.lower()}"
            EventRecord(
                event_id=event_id,
                title=f"{label} training",
                kind="session",
                starts_at_utc=starts.isoformat(),
                location="K2 Crawley",
                visible_from=(starts - timedelta(days=14)).isoformat(),
            ).to_redis(r)
            RsvpRecord(
                event_id=event_id,
                person_id=member,
                responded_at=(starts - timedelta(days=10)).isoformat(),
            ).to_redis(r)
            AttendanceRecord(
                event_id=event_id,
                person_id=member,
                checked_in_at=starts.isoformat(),
            ).to_redis(r)
            TeamRecord(team_id=f"{event_id}-white", event_id=event_id, name="White").to_redis(r)
            TeamAssignmentRecord(
                event_id=event_id,
                person_id=member,
                team_id=f"{event_id}-white",
                position_code="FWCB"[week % 4],
                assigned_by_person_id=captain,
                assigned_at=(starts - timedelta(hours=1)).isoformat(),
            ).to_redis(r)

    # ── An upcoming tournament abroad ────────────────────────────────────
    tournament_start = now + timedelta(days=21)
    EventRecord(
        event_id="euro-tournament",
        title="European Club Championships Final",
        kind="tournament",
        starts_at_utc=tournament_start.isoformat(),
        location="Piscina Municipal, Madrid, Spain",
    ).to_redis(r)
    RsvpRecord(event_id="euro-tournament", person_id=member, responded_at=now.isoformat()).to_redis(r)

    granted = evaluate(member, RsvpTrigger(
        event_id="euro-tournament",
        response="yes",
        event_kind="tournament",
        event_starts_at=tournament_start,
    ), r=r)
    granted += evaluate(member, ProfileLoadTrigger(), r=r)

    summary = get_awards_summary(member, r=r)
    print(f"Granted {len(granted)} awards to {member}; current streak {summary['current_streak']}")
    for award in summary["awards"]:
        print(f"  {award['name']:<22} {award['notes'] or ''}")
    print(f"{len(summary['locked_awards'])} awards still locked")
    return summary


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    seed()
