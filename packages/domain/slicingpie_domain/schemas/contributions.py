"""Contribution models and the soft-deletion state of a contribution.

A Contribution is a single unit of work/cash/equipment/IP/relationship value
put in by one contributor. Its ``multiplier`` and ``slices`` are computed once
when the contribution is recorded and then kept for audit stability.

Deletion state is an explicit tagged union instead of a pair of loosely
related optional fields:

    Active                         -> counts towards the pie
    DeletedDirect(deleted_at)      -> deleted on its own; only a direct restore revives it
    DeletedViaParent(deleted_at,   -> swept up when contributor ``parent_id`` was deleted;
                     parent_id)       restoring that contributor revives it

The flat wire format used by exported files (``deletedAt`` plus an optional
``deletedWithParent``) is folded into this union on validation and produced
again by ``to_record()``.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union
import datetime as dt
from datetime import datetime
from pydantic import Field, model_validator

from .base import (
    DomainModel,
    ContributionId,
    ContributorId,
    MoneyAmount,
    Multiplier,
    Slices,
    new_id,
    utc_now,
)


ContributionType = Literal["time", "cash", "non-cash", "idea", "relationship"]

CONTRIBUTION_TYPES = ("time", "cash", "non-cash", "idea", "relationship")

CONTRIBUTION_TYPE_LABELS: Dict[str, str] = {
    "time": "Time (Unpaid)",
    "cash": "Cash Investment",
    "non-cash": "Non-Cash (Equipment)",
    "idea": "Idea / IP",
    "relationship": "Relationship / Sales",
}

CONTRIBUTION_TYPE_DESCRIPTIONS: Dict[str, str] = {
    "time": "Hours worked at $0 pay (2x hourly rate)",
    "cash": "Money invested, unreimbursed (4x amount)",
    "non-cash": "Equipment, supplies, facilities (2x fair market value)",
    "idea": "Intellectual property contributed (1x negotiated value)",
    "relationship": "Sales commissions, key introductions (1x negotiated value)",
}


# =============================================================================
# Deletion State
# =============================================================================

class Active(DomainModel):
    """Contribution counts towards the pie."""

    state: Literal["active"] = "active"


class DeletedDirect(DomainModel):
    """Contribution was deleted on its own."""

    state: Literal["deleted"] = "deleted"

    deleted_at: datetime = Field(default_factory=utc_now)


class DeletedViaParent(DomainModel):
    """Contribution was swept up by its contributor's deletion."""

    state: Literal["deleted_with_parent"] = "deleted_with_parent"

    deleted_at: datetime = Field(default_factory=utc_now)

    parent_id: ContributorId = Field(
        description="Contributor whose deletion cascaded onto this contribution"
    )


DeletionState = Annotated[
    Union[Active, DeletedDirect, DeletedViaParent],
    Field(discriminator="state"),
]


# =============================================================================
# Contribution
# =============================================================================

class Contribution(DomainModel):
    """A single contribution made by a contributor.

    Examples:
        Time: 10 hours at $100/hr
            type="time", value=10, multiplier=2, slices=2000

        Cash: $1,000 invested
            type="cash", value=1000, multiplier=4, slices=4000

        Idea: IP valued at $2,000
            type="idea", value=2000, multiplier=1, slices=2000
    """

    id: ContributionId = Field(
        default_factory=new_id,
        description="Opaque contribution identifier"
    )

    contributor_id: ContributorId = Field(
        description="Contributor who made this contribution (back reference, may dangle)"
    )

    type: ContributionType = Field(
        description="Contribution type (determines the multiplier)"
    )

    value: MoneyAmount = Field(
        gt=0,
        description="Raw value: hours for time, dollars for everything else"
    )

    description: Optional[str] = Field(
        default=None,
        description="What was contributed"
    )

    date: dt.date = Field(
        description="Date the contribution was made"
    )

    multiplier: Multiplier = Field(
        description="Multiplier applied when the contribution was recorded"
    )

    slices: Slices = Field(
        description="Slices earned, frozen at creation time"
    )

    deletion: DeletionState = Field(
        default_factory=Active,
        description="Soft-deletion state"
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='before')
    @classmethod
    def fold_flat_deletion_fields(cls, data: Any) -> Any:
        """Accept the flat ``deletedAt`` / ``deletedWithParent`` wire fields."""
        if not isinstance(data, dict):
            return data

        flat_keys = ("deletedAt", "deleted_at", "deletedWithParent", "deleted_with_parent")
        if not any(key in data for key in flat_keys):
            return data

        data = dict(data)
        deleted_at = data.pop("deletedAt", None) or data.pop("deleted_at", None)
        parent_id = data.pop("deletedWithParent", None) or data.pop("deleted_with_parent", None)
        for key in flat_keys:
            data.pop(key, None)

        if "deletion" in data:
            return data

        if deleted_at is None:
            data["deletion"] = Active()
        elif parent_id:
            data["deletion"] = DeletedViaParent(deleted_at=deleted_at, parent_id=parent_id)
        else:
            data["deletion"] = DeletedDirect(deleted_at=deleted_at)
        return data

    @property
    def is_deleted(self) -> bool:
        return not isinstance(self.deletion, Active)

    @property
    def deleted_at(self) -> Optional[datetime]:
        if isinstance(self.deletion, Active):
            return None
        return self.deletion.deleted_at

    @property
    def deleted_with_parent(self) -> Optional[str]:
        """Contributor id whose deletion cascaded here, None otherwise."""
        if isinstance(self.deletion, DeletedViaParent):
            return self.deletion.parent_id
        return None

    def touch(self) -> None:
        self.updated_at = utc_now()

    def to_record(self) -> Dict[str, Any]:
        """Flat JSON-ready record in the export file format."""
        record = self.model_dump(mode="json", by_alias=True, exclude={"deletion"})
        if self.deleted_at is not None:
            record["deletedAt"] = self.deleted_at.isoformat()
        if self.deleted_with_parent is not None:
            record["deletedWithParent"] = self.deleted_with_parent
        return record
