"""Redis-backed grant ledger: at most one PersonAward per (person, award).

Each person's grants live in one hash keyed ``person_awards:{person_id}``
with the award id as the field. ``HSETNX`` makes insert-if-absent a single
atomic command, so concurrent triggers racing on the same award store one
row and every other caller sees ``False``. Nothing here updates or deletes
a grant once written.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis

from clubawards.config.settings import REDIS_URL
from clubawards.models.award import PersonAward, AwardSource, PERSON_AWARDS_PREFIX

logger = logging.getLogger(__name__)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def _key(person_id: str) -> str:
    return f"{PERSON_AWARDS_PREFIX}{person_id}"


def has_grant(person_id: str, award_id: str, r: redis.Redis | None = None) -> bool:
    r = r or _get_redis()
    return bool(r.hexists(_key(person_id), award_id))


def insert_if_absent(
    person_id: str,
    award_id: str,
    source: str = AwardSource.AUTO,
    event_id: Optional[str] = None,
    notes: Optional[str] = None,
    r: redis.Redis | None = None,
) -> bool:
    """Store a grant unless one already exists.

    Returns True iff this call performed the insert. False means the award
    was already granted and is not an error. Store faults propagate as
    ``redis.RedisError``.
    """
    r = r or _get_redis()
    record = PersonAward(
        person_id=person_id,
        award_id=award_id,
        source=source,
        event_id=event_id,
        notes=notes,
    )
    inserted = bool(r.hsetnx(_key(person_id), award_id, record.to_json()))
    if inserted:
        logger.info("Granted %s to %s (%s)", award_id, person_id, notes or "no notes")
    return inserted


def get_grant(person_id: str, award_id: str, r: redis.Redis | None = None) -> Optional[PersonAward]:
    r = r or _get_redis()
    raw = r.hget(_key(person_id), award_id)
    if raw is None:
        return None
    return PersonAward.from_json(raw)


def list_grants(person_id: str, r: redis.Redis | None = None) -> list[PersonAward]:
    """All grants for a person, newest first."""
    r = r or _get_redis()
    grants = [PersonAward.from_json(raw) for raw in r.hgetall(_key(person_id)).values()]
    grants.sort(key=lambda g: g.awarded_at, reverse=True)
    return grants
