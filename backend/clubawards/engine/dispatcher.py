"""Trigger dispatcher: the single entry point other subsystems call.

Stateless router. Runs the evaluator for the trigger's kind, then the
streak and milestone checks that apply to every trigger, and returns the
award ids granted during this call. It never raises: a failing evaluator
is logged and the remaining ones still run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import redis
from pydantic import ValidationError

from clubawards.config.settings import REDIS_URL
from clubawards.engine.evaluators import (
    check_rsvp_awards,
    check_attendance_awards,
    check_team_awards,
    check_profile_awards,
    check_scheduled_awards,
    check_streak_awards,
    check_milestone_awards,
)
from clubawards.models.history import parse_utc
from clubawards.models.triggers import (
    RsvpTrigger,
    AttendanceTrigger,
    TeamAssignedTrigger,
    ProfileLoadTrigger,
    ScheduledTrigger,
    parse_trigger,
)

logger = logging.getLogger(__name__)

# One evaluator per member of the TriggerContext union
TRIGGER_EVALUATORS: dict[type, Callable[..., list[str]]] = {
    RsvpTrigger: check_rsvp_awards,
    AttendanceTrigger: check_attendance_awards,
    TeamAssignedTrigger: check_team_awards,
    ProfileLoadTrigger: check_profile_awards,
    ScheduledTrigger: check_scheduled_awards,
}

ALWAYS_RUN: tuple[Callable[[str, datetime, redis.Redis], list[str]], ...] = (
    check_streak_awards,
    check_milestone_awards,
)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def _run(name: str, person_id: str, call: Callable[[], list[str]]) -> list[str]:
    try:
        return call()
    except Exception as exc:
        logger.warning("Award evaluator %s failed for %s: %s", name, person_id, exc)
        return []


def evaluate(
    person_id: str,
    trigger: Optional[Any],
    now: datetime | None = None,
    r: redis.Redis | None = None,
) -> list[str]:
    """Evaluate awards for one person after a trigger.

    ``trigger`` is one of the trigger models; None runs only the checks
    that apply to every trigger.
    """
    try:
        r = r or _get_redis()
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Award evaluation skipped for %s: %s", person_id, exc)
        return []
    now = parse_utc(now) if now else datetime.now(timezone.utc)
    granted: list[str] = []

    if trigger is not None:
        evaluator = TRIGGER_EVALUATORS.get(type(trigger))
        if evaluator is None:
            logger.warning("No award evaluator for trigger type %s", type(trigger).__name__)
        else:
            granted.extend(_run(
                evaluator.__name__, person_id,
                lambda: evaluator(person_id, trigger, now, r),
            ))

    for check in ALWAYS_RUN:
        granted.extend(_run(check.__name__, person_id, lambda: check(person_id, now, r)))

    if granted:
        logger.info("Awards granted to %s: %s", person_id, ", ".join(granted))
    return granted


def evaluate_raw(
    person_id: str,
    trigger_kind: str,
    context: dict[str, Any] | None = None,
    now: datetime | None = None,
    r: redis.Redis | None = None,
) -> list[str]:
    """Evaluate from an untyped ``(kind, context)`` pair.

    A context that does not validate for its kind makes the kind-specific
    rules inapplicable; the cross-cutting checks still run.
    """
    try:
        trigger = parse_trigger({**(context or {}), "kind": trigger_kind})
    except ValidationError as exc:
        logger.debug("Ignoring malformed %s context for %s: %s", trigger_kind, person_id, exc)
        trigger = None
    return evaluate(person_id, trigger, now=now, r=r)
