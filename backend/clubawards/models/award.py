"""Award catalog entries and per-person grant records."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional

PERSON_AWARDS_PREFIX = "person_awards:"


class AwardSource:
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class AwardDefinition:
    """Static catalog row. Which rule checks an award lives in code, not here."""
    award_id: str
    name: str
    description: str
    icon: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PersonAward:
    person_id: str
    award_id: str
    source: str = AwardSource.AUTO
    event_id: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    awarded_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str | bytes) -> PersonAward:
        if isinstance(raw, bytes):
            raw = raw.decode()
        data = json.loads(raw)
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
