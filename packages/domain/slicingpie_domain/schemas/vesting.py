"""Computed vesting models.

These are never persisted: they are derived from a contributor's
VestingConfig, their slice total and an evaluation date.
"""

from typing import Literal, Optional
from datetime import date
from decimal import Decimal
from pydantic import Field

from .base import DomainModel, PercentOf100, Slices


VestingState = Literal["none", "preCliff", "vesting", "fullyVested"]


class VestingStatus(DomainModel):
    """Vested/unvested split for one contributor at one date."""

    state: VestingState = Field(
        description="Where the contributor is in the cliff/vesting timeline"
    )

    percent_vested: PercentOf100 = Field(
        description="Share of the contributor's slices that have vested (0-100)"
    )

    vested_slices: Slices
    unvested_slices: Slices

    cliff_date: Optional[date] = Field(
        default=None,
        description="Date the cliff ends. None = no vesting or zero-month cliff"
    )

    full_vest_date: Optional[date] = Field(
        default=None,
        description="Date everything is vested. None = no vesting"
    )

    months_until_cliff: int = Field(default=0, ge=0)
    months_until_full_vest: int = Field(default=0, ge=0)


class VestingSummary(DomainModel):
    """Vesting aggregated across all active contributors at one date."""

    total_vested_slices: Slices = Decimal("0")
    total_unvested_slices: Slices = Decimal("0")
    total_slices: Slices = Decimal("0")

    overall_percent_vested: PercentOf100 = Field(
        default=Decimal("100"),
        description="Vested share of all slices; 100 when there are no slices"
    )

    next_cliff_date: Optional[date] = None
    next_full_vest_date: Optional[date] = None

    contributors_pre_cliff: int = 0
    contributors_vesting: int = 0
    contributors_fully_vested: int = Field(
        default=0,
        description="Fully vested contributors, including those without vesting"
    )


class VestingProjectionPoint(DomainModel):
    """One point of a vesting projection (for projection charts)."""

    as_of_date: date
    state: VestingState
    percent_vested: PercentOf100
    vested_slices: Slices
    unvested_slices: Slices
