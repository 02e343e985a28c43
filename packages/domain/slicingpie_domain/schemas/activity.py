"""Activity log events for deletions and restorations.

Events are append-only audit records. ``entity_name`` is a snapshot taken at
the time of the event because the entity itself may be hard-deleted later.
"""

from typing import Literal, Optional
from datetime import datetime
from pydantic import Field

from .base import DomainModel, EventId, Slices, new_id, utc_now


ActivityEventType = Literal["deleted", "restored"]
ActivityEntityType = Literal["contributor", "contribution"]


class ActivityEvent(DomainModel):
    """A single deletion or restoration.

    Examples:
        Contributor deleted with 2 of their contributions:
            type="deleted", entity_type="contributor", entity_name="Alice",
            slices_affected=18000, cascade_count=2

        Contribution restored directly:
            type="restored", entity_type="contribution",
            entity_name="cash contribution (Carol)", slices_affected=40000,
            cascade_count=0
    """

    id: EventId = Field(default_factory=new_id)

    type: ActivityEventType = Field(
        description="What happened"
    )

    entity_type: ActivityEntityType = Field(
        description="Kind of record it happened to"
    )

    entity_id: str = Field(
        description="Id of the affected record"
    )

    entity_name: str = Field(
        description="Display name snapshot at event time"
    )

    timestamp: datetime = Field(default_factory=utc_now)

    slices_affected: Slices = Field(
        description="Slices removed from or returned to the pie"
    )

    cascade_count: Optional[int] = Field(
        default=None,
        ge=0,
        description="Contributions swept along by a contributor-level cascade (0 for contribution ops)"
    )
