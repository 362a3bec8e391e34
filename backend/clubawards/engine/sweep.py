"""Bulk sweep: scheduled re-evaluation of every recently active member.

Meant to be called periodically by an external scheduler. Members are
processed one at a time; order does not matter because grants are
idempotent per person.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone

import redis

from clubawards.config.settings import REDIS_URL, ACTIVE_WINDOW_DAYS
from clubawards.engine.dispatcher import evaluate
from clubawards.engine.history import get_active_person_ids
from clubawards.models.triggers import ScheduledTrigger

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    checked: int = 0
    awarded: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def sweep(now: datetime | None = None, r: redis.Redis | None = None) -> SweepResult:
    """Run the scheduled trigger for everyone who RSVP'd in the active window."""
    r = r or _get_redis()
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=ACTIVE_WINDOW_DAYS)

    try:
        person_ids = get_active_person_ids(since, r)
    except redis.RedisError as exc:
        logger.warning("Award sweep could not list active members: %s", exc)
        return SweepResult()

    result = SweepResult(checked=len(person_ids))
    for person_id in person_ids:
        result.awarded += len(evaluate(person_id, ScheduledTrigger(), now=now, r=r))

    logger.info("Award sweep: checked %d members, granted %d awards", result.checked, result.awarded)
    return result
