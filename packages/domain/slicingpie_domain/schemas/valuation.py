"""Company valuation models.

The valuation estimator is a rough, disclaimed heuristic (seller's
discretionary earnings multiple with growth and retention adjustments). It is
not financial or legal advice, and every estimate carries a confidence level.

Example:
    BusinessMetrics(
        current_year=2024,
        current_year_profit=100_000,
        profit_history=[
            ProfitYear(year=2023, profit=80_000),
            ProfitYear(year=2022, profit=60_000),
        ],
        churn_rate=10,
    )
    -> average profit 80,000, base 240,000, growth x1.17, retention x0.97,
       valuation ~271,600, confidence "high"
"""

from typing import List, Literal, Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import Field, field_validator, model_validator

from .base import DomainModel, MoneyAmount, PercentOf100, Slices, new_id, utc_now


ValuationMode = Literal["manual", "auto"]
ConfidenceLevel = Literal["high", "medium", "low"]

# Seller's discretionary earnings multiple commonly used for small businesses
BASE_MULTIPLE = Decimal("3.0")

MAX_HISTORY_ENTRIES = 20

MAX_PRIOR_YEARS = 4


# =============================================================================
# Business Metrics
# =============================================================================

class ProfitYear(DomainModel):
    """Profit for one prior year."""

    year: int = Field(ge=1900, le=9999)

    profit: MoneyAmount = Field(
        description="Profit for the year in dollars"
    )


class BusinessMetrics(DomainModel):
    """Inputs for the automatic valuation estimate."""

    current_year: int = Field(
        default_factory=lambda: date.today().year,
        ge=1900,
        le=9999,
        description="Calendar year of current_year_profit"
    )

    current_year_profit: MoneyAmount = Field(
        description="Profit for the current year in dollars (required)"
    )

    profit_history: List[ProfitYear] = Field(
        default_factory=list,
        max_length=MAX_PRIOR_YEARS,
        description="Up to 4 prior years, sorted by year descending"
    )

    churn_rate: Optional[PercentOf100] = Field(
        default=None,
        description="Annual customer churn in percent (0-100). None = not provided"
    )

    @field_validator('profit_history')
    @classmethod
    def sort_history_descending(cls, v: List[ProfitYear]) -> List[ProfitYear]:
        """Keep history newest-first and reject duplicate years."""
        years = [p.year for p in v]
        if len(years) != len(set(years)):
            raise ValueError(f"profit_history has duplicate years: {sorted(years)}")
        return sorted(v, key=lambda p: p.year, reverse=True)

    @model_validator(mode='after')
    def validate_history_before_current_year(self):
        for entry in self.profit_history:
            if entry.year >= self.current_year:
                raise ValueError(
                    f"profit_history year {entry.year} must be before current_year {self.current_year}"
                )
        return self

    @property
    def years_of_data(self) -> int:
        """Number of yearly profit figures, including the current year."""
        return len(self.profit_history) + 1


# =============================================================================
# Valuation Configuration and History
# =============================================================================

class ValuationConfig(DomainModel):
    """Valuation feature state: mode, manual value and auto-mode metrics."""

    enabled: bool = Field(
        default=False,
        description="Whether the valuation feature is switched on"
    )

    disclaimer_acknowledged: bool = Field(
        default=False,
        description="User has accepted that estimates are not financial advice"
    )

    mode: ValuationMode = "manual"

    manual_value: Optional[MoneyAmount] = Field(
        default=None,
        description="User-entered valuation in dollars"
    )

    business_metrics: Optional[BusinessMetrics] = None

    last_updated: datetime = Field(default_factory=utc_now)


class ValuationHistoryEntry(DomainModel):
    """Snapshot of a saved valuation."""

    id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(default_factory=utc_now)
    mode: ValuationMode
    value: MoneyAmount

    # Inputs at save time, so the entry can be restored
    manual_value: Optional[MoneyAmount] = None
    business_metrics: Optional[BusinessMetrics] = None


# =============================================================================
# Results
# =============================================================================

class ValuationBreakdown(DomainModel):
    average_profit: MoneyAmount
    base_multiple: Decimal
    growth_multiplier: Decimal = Field(ge=Decimal("0.5"), le=Decimal("2.0"))
    retention_multiplier: Decimal = Field(ge=Decimal("0.5"), le=Decimal("1.0"))


class ValuationResult(DomainModel):
    """Estimated valuation. Never shown without its confidence level."""

    value: MoneyAmount = Field(
        description="Estimated valuation in whole dollars (floored at 0)"
    )

    confidence: ConfidenceLevel = Field(
        description="How complete the inputs were"
    )

    breakdown: ValuationBreakdown


class EquityValueRow(DomainModel):
    """Dollar value of one contributor's equity at a given valuation."""

    contributor_id: str
    contributor_name: str
    slices: Slices
    percentage: PercentOf100
    total_value: MoneyAmount

    # Only present when vesting is evaluated
    vested_slices: Optional[Slices] = None
    vested_percentage: Optional[PercentOf100] = None
    vested_value: Optional[MoneyAmount] = None
