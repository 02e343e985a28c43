"""Slicing Pie domain schemas.

This package contains all Pydantic models for the domain layer:
- Base types and conventions
- Company, contributors and vesting configuration
- Contributions and their soft-deletion state
- Activity log events
- Computed vesting status
- Valuation configuration, history and results
- AI contribution suggestions
- Import/export portfolio document
- Workbook configuration

Usage:
    from slicingpie_domain.schemas import (
        Contributor, Contribution, VestingConfig,
        BusinessMetrics, PortfolioDocument, EquityWorkbookCFG
    )
"""

# Base types
from .base import (
    DomainModel,
    Slices,
    MoneyAmount,
    HourlyRate,
    Multiplier,
    PercentOf100,
    ContributorId,
    ContributionId,
    EventId,
    new_id,
    utc_now,
)

# Company and contributors
from .contributors import (
    Company,
    Contributor,
    VestingConfig,
)

# Contributions
from .contributions import (
    Contribution,
    ContributionType,
    CONTRIBUTION_TYPES,
    CONTRIBUTION_TYPE_LABELS,
    CONTRIBUTION_TYPE_DESCRIPTIONS,
    Active,
    DeletedDirect,
    DeletedViaParent,
    DeletionState,
)

# Activity
from .activity import (
    ActivityEvent,
    ActivityEventType,
    ActivityEntityType,
)

# Vesting
from .vesting import (
    VestingState,
    VestingStatus,
    VestingSummary,
    VestingProjectionPoint,
)

# Valuation
from .valuation import (
    ValuationMode,
    ConfidenceLevel,
    ProfitYear,
    BusinessMetrics,
    ValuationConfig,
    ValuationHistoryEntry,
    ValuationBreakdown,
    ValuationResult,
    EquityValueRow,
    BASE_MULTIPLE,
    MAX_HISTORY_ENTRIES,
)

# Suggestions
from .suggestions import ContributionSuggestion

# Import/export
from .portfolio import (
    PortfolioDocument,
    PORTFOLIO_FORMAT_VERSION,
)

# Workbook
from .workbook import EquityWorkbookCFG

__all__ = [
    # Base types
    "DomainModel",
    "Slices",
    "MoneyAmount",
    "HourlyRate",
    "Multiplier",
    "PercentOf100",
    "ContributorId",
    "ContributionId",
    "EventId",
    "new_id",
    "utc_now",
    # Company and contributors
    "Company",
    "Contributor",
    "VestingConfig",
    # Contributions
    "Contribution",
    "ContributionType",
    "CONTRIBUTION_TYPES",
    "CONTRIBUTION_TYPE_LABELS",
    "CONTRIBUTION_TYPE_DESCRIPTIONS",
    "Active",
    "DeletedDirect",
    "DeletedViaParent",
    "DeletionState",
    # Activity
    "ActivityEvent",
    "ActivityEventType",
    "ActivityEntityType",
    # Vesting
    "VestingState",
    "VestingStatus",
    "VestingSummary",
    "VestingProjectionPoint",
    # Valuation
    "ValuationMode",
    "ConfidenceLevel",
    "ProfitYear",
    "BusinessMetrics",
    "ValuationConfig",
    "ValuationHistoryEntry",
    "ValuationBreakdown",
    "ValuationResult",
    "EquityValueRow",
    "BASE_MULTIPLE",
    "MAX_HISTORY_ENTRIES",
    # Suggestions
    "ContributionSuggestion",
    # Import/export
    "PortfolioDocument",
    "PORTFOLIO_FORMAT_VERSION",
    # Workbook
    "EquityWorkbookCFG",
]
