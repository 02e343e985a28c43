"""Base classes and type system for Slicing Pie domain models.

This module provides the foundational types, validators, and base classes
used throughout the schema system.
"""

import uuid
from decimal import Decimal
from datetime import datetime, timezone
from typing import Annotated
from pydantic import BaseModel, Field, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all domain models.

    Provides common configuration for all Pydantic models in the domain layer:
    - Validation on assignment for runtime safety
    - Support for Decimal and date types
    - Enum value serialization
    - camelCase aliases for the JSON import/export file format
    """

    model_config = ConfigDict(
        frozen=False,  # Allow mutation for soft delete / restore
        validate_assignment=True,  # Validate on field assignment
        use_enum_values=True,  # Use enum values in JSON
        arbitrary_types_allowed=True,  # Allow Decimal, date, etc.
        alias_generator=to_camel,  # hourly_rate <-> hourlyRate on the wire
        populate_by_name=True,  # Python code keeps using snake_case names
    )


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

# Decimals are emitted as JSON numbers so exported files stay readable by
# spreadsheet tools and other JSON consumers.
_as_json_number = PlainSerializer(float, return_type=float, when_used="json")

Slices = Annotated[
    Decimal,
    Field(ge=0, description="Slice count (non-negative)"),
    _as_json_number,
]

MoneyAmount = Annotated[
    Decimal,
    Field(ge=0, description="Currency amount in dollars (non-negative)"),
    _as_json_number,
]

HourlyRate = Annotated[
    Decimal,
    Field(ge=0, description="Fair market hourly rate in dollars (non-negative)"),
    _as_json_number,
]

Multiplier = Annotated[
    Decimal,
    Field(ge=0, description="Slicing Pie multiplier (e.g., cash = 4)"),
    _as_json_number,
]

PercentOf100 = Annotated[
    Decimal,
    Field(ge=0, le=100, description="Percentage on a 0-100 scale"),
    _as_json_number,
]


# =============================================================================
# ID Conventions
# =============================================================================

ContributorId = Annotated[
    str,
    Field(
        min_length=1,
        description="Opaque contributor identifier (UUID or user-defined, e.g. 'sample-alice')"
    )
]

ContributionId = Annotated[
    str,
    Field(
        min_length=1,
        description="Opaque contribution identifier (UUID or user-defined)"
    )
]

EventId = Annotated[
    str,
    Field(
        description="Unique activity event identifier"
    )
]


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current timestamp (timezone-aware UTC)."""
    return datetime.now(timezone.utc)


# =============================================================================
# ID Examples and Conventions
# =============================================================================
#
# Contributor IDs:
#   - "sample-alice" - Sample data contributor
#   - "550e8400-e29b-41d4-a716-446655440000" - Generated by new_id()
#
# Contribution IDs:
#   - "contrib-1" - Sample data contribution
#   - Generated UUIDs for everything added through PieStore
#
# Timestamps are timezone-aware UTC datetimes; dates (contribution date,
# vesting start) are plain calendar dates.
#
# =============================================================================
