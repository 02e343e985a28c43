"""Company and contributor models.

A Contributor is anyone who puts time, cash, equipment, ideas or relationships
into the venture and earns slices for it. Contributors are top-level records:
they are soft-deleted via ``deleted_at`` and never cascade-deleted themselves.
"""

from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import Field, model_validator

from .base import DomainModel, ContributorId, HourlyRate, new_id, utc_now


# =============================================================================
# Company
# =============================================================================

class Company(DomainModel):
    """Company the pie is being sliced for."""

    name: str = Field(
        default="My Startup",
        description="Company name shown on reports and exports"
    )

    description: str = Field(
        default="",
        description="Optional free-text description"
    )


# =============================================================================
# Vesting Configuration
# =============================================================================

class VestingConfig(DomainModel):
    """Cliff + straight-line vesting schedule owned by a contributor.

    Absence of a VestingConfig on a contributor means "no vesting": the
    contributor is always 100% vested.

    Example:
        Standard 4-year vesting with 1-year cliff:
            start_date=2024-01-01
            cliff_months=12
            vesting_months=48

        Month 6:  preCliff, 0% vested
        Month 18: vesting, (18 - 12) / (48 - 12) = 16.67% vested
        Month 48: fullyVested, 100% vested
    """

    start_date: date = Field(
        description="Date vesting starts (usually the contributor's start date)"
    )

    cliff_months: int = Field(
        default=12,
        ge=0,
        description="Months before anything vests (0-24 typical)"
    )

    vesting_months: int = Field(
        default=48,
        gt=0,
        description="Total vesting period in months, including the cliff (12-60 typical)"
    )

    @model_validator(mode='after')
    def validate_cliff_within_period(self):
        """Cliff must end strictly before the vesting period does."""
        if self.vesting_months <= self.cliff_months:
            raise ValueError(
                f"vesting_months ({self.vesting_months}) must be greater than "
                f"cliff_months ({self.cliff_months})"
            )
        return self


# =============================================================================
# Contributor
# =============================================================================

class Contributor(DomainModel):
    """A person contributing to the startup.

    ``hourly_rate`` is the contributor's fair market salary expressed per hour
    and is only used to value ``time`` contributions. Changing it later does
    not touch slices already recorded on existing contributions.
    """

    id: ContributorId = Field(
        default_factory=new_id,
        description="Opaque contributor identifier"
    )

    name: str = Field(
        min_length=1,
        description="Display name"
    )

    email: Optional[str] = Field(
        default=None,
        description="Contact email (optional)"
    )

    hourly_rate: HourlyRate = Field(
        default=Decimal("0"),
        description="Fair market hourly rate used for time contributions"
    )

    active: bool = Field(
        default=True,
        description="Whether the contributor is still contributing (display flag, not deletion)"
    )

    vesting: Optional[VestingConfig] = Field(
        default=None,
        description="Vesting schedule. None = always 100% vested"
    )

    deleted_at: Optional[datetime] = Field(
        default=None,
        description="Soft-deletion timestamp. None = active record"
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def touch(self) -> None:
        self.updated_at = utc_now()
