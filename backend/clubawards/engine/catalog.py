"""Static award catalog.

Rows carry display metadata only. The predicate that grants each award
lives in ``clubawards.engine.evaluators``.
"""

from __future__ import annotations

from typing import Optional

from clubawards.models.award import AwardDefinition

AWARD_CATALOG: tuple[AwardDefinition, ...] = (
    # Streak & consistency
    AwardDefinition("award_first_dip", "First Dip", "RSVP yes for the first time.", "first_dip_round"),
    AwardDefinition("award_back_to_back", "Back-to-Back", "Two sessions in a row without a late cancellation.", "back_to_back_hex"),
    AwardDefinition("award_triple_threat", "Triple Threat", "Three sessions in a row without a late cancellation.", "triple_threat_shield"),
    AwardDefinition("award_perfect_week", "Perfect Week", "Attend every session in a week with two or more sessions.", "perfect_week_round"),
    AwardDefinition("award_four_week_flow", "Four-Week Flow", "A streak of 8 sessions.", "four_week_flow_hex"),
    AwardDefinition("award_twelve_week_habit", "Twelve-Week Habit", "A streak of 24 sessions.", "twelve_week_habit_shield"),
    AwardDefinition("award_unbroken_month", "Unbroken Month", "Attend every session in a month with four or more sessions.", "unbroken_month_round"),
    AwardDefinition("award_streak_saver", "Streak Saver", "Miss a week of sessions, then come straight back the next.", "streak_saver_hex"),
    # Session milestones
    AwardDefinition("award_sessions_5", "5 Sessions", "Attend 5 sessions.", "sessions_5_round"),
    AwardDefinition("award_sessions_10", "10 Sessions", "Attend 10 sessions.", "sessions_10_hex"),
    AwardDefinition("award_sessions_25", "25 Sessions", "Attend 25 sessions.", "sessions_25_shield"),
    AwardDefinition("award_sessions_50", "50 Sessions", "Attend 50 sessions.", "sessions_50_round"),
    AwardDefinition("award_sessions_100", "100 Sessions", "Attend 100 sessions.", "sessions_100_hex"),
    AwardDefinition("award_club_200", "200 Club", "Attend 200 sessions.", "club_200_shield"),
    AwardDefinition("award_season_centurion", "Season Centurion", "Attend 100 sessions in a single September to August season.", "season_centurion_round"),
    # Reliability
    AwardDefinition("award_on_time", "On Time", "RSVP more than 24 hours ahead for 20 events.", "on_time_hex"),
    AwardDefinition("award_dependable", "Dependable", "25 sessions with no late cancellations.", "dependable_shield"),
    AwardDefinition("award_ironclad", "Ironclad", "50 sessions with no late cancellations.", "ironclad_round"),
    AwardDefinition("award_always_ready", "Always Ready", "RSVP within 24 hours of an event opening, 15 times.", "always_ready_hex"),
    # Day-specific
    AwardDefinition("award_thursday_regular", "Thursday Regular", "Attend 10 Thursday sessions.", "thursday_regular_shield"),
    AwardDefinition("award_sunday_specialist", "Sunday Specialist", "Attend 10 Sunday sessions.", "sunday_specialist_round"),
    # RSVP timing
    AwardDefinition("award_early_bird", "Early Bird", "RSVP yes more than a week before an event.", "early_bird_hex"),
    AwardDefinition("award_last_minute_hero", "Last Minute Hero", "RSVP yes within two hours of an event starting.", "last_minute_hero_shield"),
    # Social / team
    AwardDefinition("award_squad_builder", "Squad Builder", "Be the 13th player to sign up for a session.", "squad_builder_round"),
    AwardDefinition("award_full_bench", "Full Bench", "Be part of a session with 24 players signed up.", "full_bench_hex"),
    AwardDefinition("award_captains_pick", "Captain's Pick", "Be the first player a captain picks for a team.", "captains_pick_shield"),
    # Positions & teams
    AwardDefinition("award_white_cap", "White Cap", "Play for the white team 5 times.", "white_cap_round"),
    AwardDefinition("award_black_cap", "Black Cap", "Play for the black team 5 times.", "black_cap_hex"),
    AwardDefinition("award_forward_line", "Forward Line", "Play forward 10 times.", "forward_line_shield"),
    AwardDefinition("award_wing_runner", "Wing Runner", "Play wing 10 times.", "wing_runner_round"),
    AwardDefinition("award_centre_control", "Centre Control", "Play centre 10 times.", "centre_control_hex"),
    AwardDefinition("award_backline_anchor", "Backline Anchor", "Play back 10 times.", "backline_anchor_shield"),
    AwardDefinition("award_utility_player", "Utility Player", "Play every position at least once.", "utility_player_round"),
    AwardDefinition("award_third_team", "Third Team", "Play for a team that is neither white nor black.", "third_team_hex"),
    # Competition & travel
    AwardDefinition("award_first_friendly", "First Friendly", "RSVP yes to your first match.", "first_friendly_round"),
    AwardDefinition("award_tournament_debut", "Tournament Debut", "RSVP yes to your first tournament.", "tournament_debut_hex"),
    AwardDefinition("award_road_trip", "Road Trip", "RSVP yes to an event away from the home pools.", "road_trip_shield"),
    AwardDefinition("award_international_waters", "International Waters", "RSVP yes to an event outside the UK.", "international_waters_round"),
    AwardDefinition("award_camp_week", "Camp Week", "RSVP yes to a camp.", "camp_week_hex"),
    AwardDefinition("award_finals_ready", "Finals Ready", "RSVP yes to a BOA, finals or nationals event.", "finals_ready_shield"),
    # Anniversary
    AwardDefinition("award_anniversary_1y", "1 Year Anniversary", "One year since your first RSVP.", "anniversary_1y_round"),
    AwardDefinition("award_anniversary_5y", "5 Year Anniversary", "Five years since your first RSVP.", "anniversary_5y_hex"),
    AwardDefinition("award_anniversary_10y", "10 Year Anniversary", "Ten years since your first RSVP.", "anniversary_10y_shield"),
    # Seasonal
    AwardDefinition("award_new_year_splash", "New Year Splash", "Attend a session in the first week of January.", "new_year_splash_round"),
    AwardDefinition("award_spring_surge", "Spring Surge", "Attend 10 sessions between March and May.", "spring_surge_hex"),
    AwardDefinition("award_summer_series", "Summer Series", "Attend 10 sessions between June and August.", "summer_series_shield"),
)

_BY_ID: dict[str, AwardDefinition] = {a.award_id: a for a in AWARD_CATALOG}

AWARD_IDS: frozenset[str] = frozenset(_BY_ID)


def get_award(award_id: str) -> Optional[AwardDefinition]:
    return _BY_ID.get(award_id)


def list_awards() -> list[AwardDefinition]:
    """All catalog rows ordered by display name."""
    return sorted(AWARD_CATALOG, key=lambda a: a.name)
