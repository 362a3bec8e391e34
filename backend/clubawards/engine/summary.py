"""Read model for a person's awards page: earned, locked and current streak.

Built straight from the ledger and the streak calculator; it never runs
award rules.
"""

from __future__ import annotations

from datetime import datetime

import redis

from clubawards.engine.catalog import get_award, list_awards
from clubawards.engine.ledger import list_grants
from clubawards.engine.streak import calculate_streak


def get_awards_summary(
    person_id: str,
    now: datetime | None = None,
    r: redis.Redis | None = None,
) -> dict:
    grants = list_grants(person_id, r)
    earned_ids = {g.award_id for g in grants}

    earned = []
    for grant in grants:
        definition = get_award(grant.award_id)
        earned.append({
            "id": grant.id,
            "award_id": grant.award_id,
            "name": definition.name if definition else grant.award_id,
            "description": definition.description if definition else "",
            "icon": definition.icon if definition else None,
            "source": grant.source,
            "event_id": grant.event_id,
            "notes": grant.notes,
            "awarded_at": grant.awarded_at,
        })

    return {
        "awards": earned,
        "locked_awards": [a.to_dict() for a in list_awards() if a.award_id not in earned_ids],
        "current_streak": calculate_streak(person_id, now=now, r=r),
    }
