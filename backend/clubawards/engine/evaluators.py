"""Award rules, grouped by the trigger that evaluates them.

Every evaluator takes ``(person_id, trigger, now, r)`` and returns the award
ids it newly granted. Rules check ``has_grant`` before doing expensive
reads, but it is the ledger's atomic insert that keeps grants unique.
A trigger missing a field a rule needs makes that rule a no-op.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import redis

from clubawards.engine import history
from clubawards.engine.ledger import has_grant, insert_if_absent
from clubawards.engine.patterns import (
    has_perfect_week,
    has_unbroken_month,
    has_streak_saver,
    has_season_centurion,
    load_session_history,
)
from clubawards.engine.streak import ELIGIBLE_KINDS, calculate_streak
from clubawards.models.history import AttendanceStatus, Activity, RsvpResponse, parse_utc
from clubawards.models.triggers import (
    RsvpTrigger,
    AttendanceTrigger,
    TeamAssignedTrigger,
    ProfileLoadTrigger,
    ScheduledTrigger,
)

logger = logging.getLogger(__name__)

# ── Rule constants ───────────────────────────────────────────────────────

# Home pools and the London/M25 area. An event elsewhere is a road trip.
HOME_LOCATIONS = (
    "london", "k2", "crawley", "west wickham", "bromley",
    "crystal palace", "beckenham", "downham", "orpington",
    "south norwood", "camberwell", "achieve lifestyle", "egham", "orbit",
)

# If none of these match, the event is treated as outside the UK.
UK_LOCATIONS = (
    "uk", "u.k.", "united kingdom", "england", "wales", "scotland", "northern ireland",
    "london", "leeds", "sheffield", "bristol", "guildford", "sussex", "st albans",
    "manchester", "birmingham", "liverpool", "newcastle", "cardiff", "edinburgh",
    "glasgow", "belfast", "nottingham", "southampton", "portsmouth", "brighton",
    "oxford", "cambridge", "exeter", "plymouth", "norwich", "coventry", "leicester",
    "crawley", "bromley", "croydon", "kent", "surrey", "essex", "hertfordshire",
    "egham", "achieve lifestyle",
)

CAMP_KEYWORDS = ("camp",)
FINALS_KEYWORDS = ("boa", "final", "national")

# First yes-RSVP to an event of this kind
FIRST_OF_KIND_AWARDS = {
    "match": ("award_first_friendly", "First match RSVP"),
    "tournament": ("award_tournament_debut", "First tournament RSVP"),
}

SQUAD_BUILDER_PRIOR_YES = 12
FULL_BENCH_YES = 24

EARLY_BIRD_LEAD = timedelta(days=7)
LAST_MINUTE_WINDOW = timedelta(hours=2)

STREAK_AWARDS = (
    (2, "award_back_to_back"),
    (3, "award_triple_threat"),
    (8, "award_four_week_flow"),
    (24, "award_twelve_week_habit"),
)

# weekday() -> (award, label); Monday is 0
WEEKDAY_REGULARS = {
    3: ("award_thursday_regular", "Thursday"),
    6: ("award_sunday_specialist", "Sunday"),
}
WEEKDAY_REGULAR_COUNT = 10
NEW_YEAR_LAST_DAY = 7

TEAM_COLOUR_AWARDS = (
    ("white", "award_white_cap"),
    ("black", "award_black_cap"),
)
TEAM_COLOUR_COUNT = 5
CAPTAIN_ROLE = "captain"

POSITION_AWARDS = {
    "F": "award_forward_line",
    "W": "award_wing_runner",
    "C": "award_centre_control",
    "B": "award_backline_anchor",
}
POSITION_COUNT = 10

ANNIVERSARY_AWARDS = (
    (1, "award_anniversary_1y"),
    (5, "award_anniversary_5y"),
    (10, "award_anniversary_10y"),
)
YEAR = timedelta(days=365)

ON_TIME_LEAD = timedelta(days=1)
ON_TIME_COUNT = 20
DEPENDABLE_COUNT = 25
IRONCLAD_COUNT = 50
ALWAYS_READY_WINDOW = timedelta(days=1)
ALWAYS_READY_COUNT = 15

# (award, label, first month, last month)
SEASONAL_WINDOWS = (
    ("award_spring_surge", "spring", 3, 5),
    ("award_summer_series", "summer", 6, 8),
)
SEASONAL_COUNT = 10

MILESTONES = (
    (5, "award_sessions_5"),
    (10, "award_sessions_10"),
    (25, "award_sessions_25"),
    (50, "award_sessions_50"),
    (100, "award_sessions_100"),
    (200, "award_club_200"),
)


# ── Granting ─────────────────────────────────────────────────────────────

def _grant(
    granted: list[str],
    person_id: str,
    award_id: str,
    r: redis.Redis,
    notes: Optional[str] = None,
    event_id: Optional[str] = None,
) -> None:
    """Insert the grant and record it if this call created it.

    A store fault is logged and treated as not granted; the next trigger
    will re-evaluate the rule.
    """
    try:
        if insert_if_absent(person_id, award_id, notes=notes, event_id=event_id, r=r):
            granted.append(award_id)
    except redis.RedisError as exc:
        logger.warning("Failed to grant %s to %s: %s", award_id, person_id, exc)


def _matches_any(text: str, needles: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(needle in lowered for needle in needles)


# ── RSVP ─────────────────────────────────────────────────────────────────

def check_rsvp_awards(
    person_id: str,
    trigger: RsvpTrigger,
    now: datetime,
    r: redis.Redis,
) -> list[str]:
    granted: list[str] = []
    if trigger.response != RsvpResponse.YES:
        return granted

    if not has_grant(person_id, "award_first_dip", r):
        yes_rows = history.get_eligible_rsvps(person_id, only_yes=True, r=r)
        if len(yes_rows) == 1:
            _grant(granted, person_id, "award_first_dip", r, "First RSVP yes", trigger.event_id)

    first_of_kind = FIRST_OF_KIND_AWARDS.get(trigger.event_kind or "")
    if first_of_kind and not has_grant(person_id, first_of_kind[0], r):
        award_id, notes = first_of_kind
        kind_rows = history.get_eligible_rsvps(
            person_id, kinds=(trigger.event_kind,), only_yes=True, r=r,
        )
        if len(kind_rows) == 1:
            _grant(granted, person_id, award_id, r, notes, trigger.event_id)

    if trigger.event_kind == "session":
        granted.extend(_check_session_size(person_id, trigger, r))

    granted.extend(_check_event_details(person_id, trigger, r))
    granted.extend(_check_rsvp_timing(person_id, trigger, now, r))
    return granted


def _check_session_size(person_id: str, trigger: RsvpTrigger, r: redis.Redis) -> list[str]:
    granted: list[str] = []
    need_squad = not has_grant(person_id, "award_squad_builder", r)
    need_bench = not has_grant(person_id, "award_full_bench", r)
    if not (need_squad or need_bench):
        return granted

    confirmed = [
        rsvp for rsvp in history.get_event_rsvps(trigger.event_id, r)
        if rsvp.response == RsvpResponse.YES and not rsvp.cancelled_late
    ]
    others = [rsvp for rsvp in confirmed if rsvp.person_id != person_id]

    if need_squad and len(others) == SQUAD_BUILDER_PRIOR_YES:
        _grant(granted, person_id, "award_squad_builder", r, "The 13th player", trigger.event_id)
    if need_bench and len(confirmed) >= FULL_BENCH_YES:
        _grant(granted, person_id, "award_full_bench", r,
               f"{FULL_BENCH_YES} players at session", trigger.event_id)
    return granted


def _check_event_details(person_id: str, trigger: RsvpTrigger, r: redis.Redis) -> list[str]:
    """Location and title heuristics, read from the stored event."""
    granted: list[str] = []
    pending = [
        award_id for award_id in (
            "award_road_trip", "award_international_waters", "award_camp_week", "award_finals_ready",
        )
        if not has_grant(person_id, award_id, r)
    ]
    if not pending:
        return granted

    event = history.get_event(trigger.event_id, r)
    if event is None:
        logger.debug("RSVP awards: event %s not found", trigger.event_id)
        return granted

    location = event.location or ""
    if location:
        if "award_road_trip" in pending and not _matches_any(location, HOME_LOCATIONS):
            _grant(granted, person_id, "award_road_trip", r, f"Away event: {location}", event.event_id)
        if ("award_international_waters" in pending and location.strip()
                and not _matches_any(location, UK_LOCATIONS)):
            _grant(granted, person_id, "award_international_waters", r,
                   f"International: {location}", event.event_id)

    if event.title:
        if "award_camp_week" in pending and _matches_any(event.title, CAMP_KEYWORDS):
            _grant(granted, person_id, "award_camp_week", r, event.title, event.event_id)
        if "award_finals_ready" in pending and _matches_any(event.title, FINALS_KEYWORDS):
            _grant(granted, person_id, "award_finals_ready", r, event.title, event.event_id)
    return granted


def _check_rsvp_timing(
    person_id: str,
    trigger: RsvpTrigger,
    now: datetime,
    r: redis.Redis,
) -> list[str]:
    granted: list[str] = []
    starts = parse_utc(trigger.event_starts_at)
    if starts is None:
        return granted
    submitted = parse_utc(trigger.responded_at) or now
    lead = starts - submitted

    if lead > EARLY_BIRD_LEAD and not has_grant(person_id, "award_early_bird", r):
        _grant(granted, person_id, "award_early_bird", r,
               f"RSVP'd {lead.days} days early", trigger.event_id)
    if timedelta(0) < lead <= LAST_MINUTE_WINDOW and not has_grant(person_id, "award_last_minute_hero", r):
        _grant(granted, person_id, "award_last_minute_hero", r,
               "Clutch last-minute RSVP", trigger.event_id)
    return granted


# ── Attendance ───────────────────────────────────────────────────────────

def check_attendance_awards(
    person_id: str,
    trigger: AttendanceTrigger,
    now: datetime,
    r: redis.Redis,
) -> list[str]:
    granted: list[str] = []
    if trigger.status not in (AttendanceStatus.PRESENT, AttendanceStatus.LATE):
        return granted

    starts = parse_utc(trigger.event_starts_at)
    if starts is None:
        logger.debug("Attendance awards skipped for %s: no event start", trigger.event_id)
        return granted

    regular = WEEKDAY_REGULARS.get(starts.weekday())
    if regular and not has_grant(person_id, regular[0], r):
        award_id, label = regular
        count = len(history.get_attendance_by_weekday(person_id, starts.weekday(), r=r))
        if count >= WEEKDAY_REGULAR_COUNT:
            _grant(granted, person_id, award_id, r, f"{count} {label} sessions")

    if starts.month == 1 and starts.day <= NEW_YEAR_LAST_DAY:
        if not has_grant(person_id, "award_new_year_splash", r):
            _grant(granted, person_id, "award_new_year_splash", r,
                   f"New Year {starts.year}", trigger.event_id)
    return granted


# ── Team assignment ──────────────────────────────────────────────────────

def check_team_awards(
    person_id: str,
    trigger: TeamAssignedTrigger,
    now: datetime,
    r: redis.Redis,
) -> list[str]:
    granted: list[str] = []
    if not trigger.team_name or trigger.activity != Activity.PLAY:
        return granted

    team_name = trigger.team_name.lower()
    assignments = history.get_team_assignments(person_id, r=r)

    for colour, award_id in TEAM_COLOUR_AWARDS:
        if colour not in team_name or has_grant(person_id, award_id, r):
            continue
        count = sum(
            1 for view in assignments
            if view.assignment.activity == Activity.PLAY and colour in view.team_name.lower()
        )
        if count >= TEAM_COLOUR_COUNT:
            _grant(granted, person_id, award_id, r, f"{count} {colour} team assignments")

    if not any(colour in team_name for colour, _ in TEAM_COLOUR_AWARDS):
        if not has_grant(person_id, "award_third_team", r):
            _grant(granted, person_id, "award_third_team", r, f"Assigned to {trigger.team_name}")

    if not has_grant(person_id, "award_captains_pick", r) and _is_captains_first_pick(person_id, trigger, r):
        _grant(granted, person_id, "award_captains_pick", r, "First pick by captain", trigger.event_id)

    if trigger.position_code:
        award_id = POSITION_AWARDS.get(trigger.position_code)
        count = sum(1 for view in assignments if view.assignment.position_code == trigger.position_code)
        if award_id and count >= POSITION_COUNT and not has_grant(person_id, award_id, r):
            _grant(granted, person_id, award_id, r, f"{count} times at {trigger.position_code}")

        played = {view.assignment.position_code for view in assignments if view.assignment.position_code}
        if played >= set(POSITION_AWARDS) and not has_grant(person_id, "award_utility_player", r):
            _grant(granted, person_id, "award_utility_player", r, "Played all positions")
    return granted


def _is_captains_first_pick(person_id: str, trigger: TeamAssignedTrigger, r: redis.Redis) -> bool:
    """This person holds the event's only team placement, made by a captain."""
    placed = [a for a in history.get_event_team_assignments(trigger.event_id, r) if a.team_id]
    if len(placed) != 1 or placed[0].person_id != person_id:
        return False
    assigner = placed[0].assigned_by_person_id
    return bool(assigner) and history.has_group_role(assigner, CAPTAIN_ROLE, r)


# ── Profile load / scheduled ─────────────────────────────────────────────

def check_profile_awards(
    person_id: str,
    trigger: ProfileLoadTrigger,
    now: datetime,
    r: redis.Redis,
) -> list[str]:
    return check_anniversary_awards(person_id, now, r) + check_reliability_awards(person_id, now, r)


def check_scheduled_awards(
    person_id: str,
    trigger: ScheduledTrigger,
    now: datetime,
    r: redis.Redis,
) -> list[str]:
    return check_anniversary_awards(person_id, now, r) + check_seasonal_awards(person_id, now, r)


def check_anniversary_awards(person_id: str, now: datetime, r: redis.Redis) -> list[str]:
    """1/5/10 years of elapsed time (365-day years) since the first yes RSVP."""
    granted: list[str] = []
    pending = [(years, award_id) for years, award_id in ANNIVERSARY_AWARDS
               if not has_grant(person_id, award_id, r)]
    if not pending:
        return granted

    responded = [
        row.rsvp.responded
        for row in history.get_eligible_rsvps(person_id, only_yes=True, r=r)
        if row.rsvp.responded is not None
    ]
    if not responded:
        return granted
    first = min(responded)
    years_active = (now - first) / YEAR

    for years, award_id in pending:
        if years_active >= years:
            notes = f"Member since {first.year}" if years == 1 else f"{int(years_active)} years"
            _grant(granted, person_id, award_id, r, notes)
    return granted


def check_reliability_awards(person_id: str, now: datetime, r: redis.Redis) -> list[str]:
    granted: list[str] = []
    yes_rows = history.get_eligible_rsvps(person_id, only_yes=True, r=r)

    early = 0
    quick = 0
    for row in yes_rows:
        responded = row.rsvp.responded
        if responded is None:
            continue
        starts = row.event.starts_at
        if starts is not None and starts - responded > ON_TIME_LEAD:
            early += 1
        visible = parse_utc(row.event.visible_from)
        if visible is not None and responded - visible <= ALWAYS_READY_WINDOW:
            quick += 1

    if early >= ON_TIME_COUNT and not has_grant(person_id, "award_on_time", r):
        _grant(granted, person_id, "award_on_time", r, f"{early} early RSVPs")

    past = [row for row in yes_rows if row.event.starts_at is not None and row.event.starts_at < now]
    late_cancels = sum(1 for row in past if row.rsvp.cancelled_late)
    if late_cancels == 0:
        for threshold, award_id in ((DEPENDABLE_COUNT, "award_dependable"), (IRONCLAD_COUNT, "award_ironclad")):
            if len(past) >= threshold and not has_grant(person_id, award_id, r):
                _grant(granted, person_id, award_id, r, f"{len(past)} sessions, 0 late cancels")

    if quick >= ALWAYS_READY_COUNT and not has_grant(person_id, "award_always_ready", r):
        _grant(granted, person_id, "award_always_ready", r, f"{quick} quick RSVPs")
    return granted


def check_seasonal_awards(person_id: str, now: datetime, r: redis.Redis) -> list[str]:
    """Sessions attended inside the current spring/summer window, while it is open."""
    granted: list[str] = []
    for award_id, label, first_month, last_month in SEASONAL_WINDOWS:
        if not first_month <= now.month <= last_month or has_grant(person_id, award_id, r):
            continue
        start = datetime(now.year, first_month, 1, tzinfo=timezone.utc)
        end = datetime(now.year, last_month + 1, 1, tzinfo=timezone.utc)
        rows = history.get_eligible_rsvps(
            person_id, kinds=ELIGIBLE_KINDS, only_past=True, only_yes=True, now=now, r=r,
        )
        count = sum(
            1 for row in rows
            if row.attended and row.event.starts_at is not None and start <= row.event.starts_at < end
        )
        if count >= SEASONAL_COUNT:
            _grant(granted, person_id, award_id, r, f"{count} {label} sessions {now.year}")
    return granted


# ── Cross-cutting checks (every trigger) ─────────────────────────────────

def check_streak_awards(person_id: str, now: datetime, r: redis.Redis) -> list[str]:
    """Streak thresholds plus the perfect-week / unbroken-month / streak-saver patterns."""
    granted: list[str] = []
    pending = [(n, award_id) for n, award_id in STREAK_AWARDS if not has_grant(person_id, award_id, r)]
    if pending:
        streak = calculate_streak(person_id, now=now, r=r)
        for threshold, award_id in pending:
            if streak >= threshold:
                _grant(granted, person_id, award_id, r, f"Streak of {streak}")

    detectors = (
        ("award_perfect_week", has_perfect_week, "Attended all sessions in a week"),
        ("award_unbroken_month", has_unbroken_month, "Attended all sessions in a month"),
        ("award_streak_saver", has_streak_saver, "Missed a week but came back"),
    )
    session_history = None
    for award_id, detector, notes in detectors:
        if has_grant(person_id, award_id, r):
            continue
        if session_history is None:
            session_history = load_session_history(person_id, now, r)
        if detector(*session_history):
            _grant(granted, person_id, award_id, r, notes)
    return granted


def check_milestone_awards(person_id: str, now: datetime, r: redis.Redis) -> list[str]:
    """Lifetime eligible-session ladder plus Season Centurion."""
    granted: list[str] = []
    rows = history.get_eligible_rsvps(
        person_id, kinds=ELIGIBLE_KINDS, only_past=True, only_yes=True, now=now, r=r,
    )
    attended = [row for row in rows if row.attended]
    total = len(attended)

    for threshold, award_id in MILESTONES:
        if total >= threshold and not has_grant(person_id, award_id, r):
            _grant(granted, person_id, award_id, r, f"{total} total sessions")

    if not has_grant(person_id, "award_season_centurion", r) and has_season_centurion(attended):
        _grant(granted, person_id, "award_season_centurion", r, "100 sessions in a season")
    return granted
