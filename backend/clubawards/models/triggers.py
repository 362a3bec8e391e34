"""Typed trigger contexts for award evaluation.

Each trigger kind carries exactly the fields its evaluators read. The
``kind`` literal is the discriminator, so a raw payload validates into the
right model and the dispatcher can route on the model type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class TriggerKind:
    RSVP = "rsvp"
    ATTENDANCE = "attendance"
    TEAM_ASSIGNED = "team_assigned"
    PROFILE_LOAD = "profile_load"
    SCHEDULED = "scheduled"


class RsvpTrigger(BaseModel):
    """A member submitted or changed an RSVP."""
    kind: Literal["rsvp"] = "rsvp"
    event_id: str
    response: Literal["yes", "no", "maybe"]
    event_kind: Optional[str] = None        # session | match | tournament | ...
    event_starts_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None  # defaults to evaluation time


class AttendanceTrigger(BaseModel):
    """Attendance was marked for a member at an event."""
    kind: Literal["attendance"] = "attendance"
    event_id: str
    status: Literal["present", "absent", "late", "excused"]
    event_kind: Optional[str] = None
    event_starts_at: Optional[datetime] = None


class TeamAssignedTrigger(BaseModel):
    """A member was placed on a team for an event."""
    kind: Literal["team_assigned"] = "team_assigned"
    event_id: str
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    position_code: Optional[Literal["F", "W", "C", "B"]] = None
    activity: Literal["play", "swim_sets", "not_playing", "other"] = "play"


class ProfileLoadTrigger(BaseModel):
    """A member opened their profile or awards page."""
    kind: Literal["profile_load"] = "profile_load"


class ScheduledTrigger(BaseModel):
    """Periodic re-evaluation from the external scheduler."""
    kind: Literal["scheduled"] = "scheduled"


TriggerContext = Annotated[
    Union[RsvpTrigger, AttendanceTrigger, TeamAssignedTrigger, ProfileLoadTrigger, ScheduledTrigger],
    Field(discriminator="kind"),
]

_trigger_adapter: TypeAdapter = TypeAdapter(TriggerContext)


def parse_trigger(payload: dict[str, Any]):
    """Validate a raw payload (must include ``kind``) into a trigger model."""
    return _trigger_adapter.validate_python(payload)
