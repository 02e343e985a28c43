"""Company valuation estimate and valuation state.

Estimate (seller's discretionary earnings multiple):

    average_profit       = mean(current year + prior years)
    base                 = average_profit x 3.0
    growth_rate          = (latest - earliest) / |earliest| / years_between
    growth_multiplier    = clamp(1 + growth_rate x 0.5, 0.5, 2.0)    (1.0 without 2+ years)
    retention_multiplier = clamp(1 - churn/100 x 0.3, 0.5, 1.0)     (1.0 without churn)
    valuation            = max(0, round(base x growth x retention))

Confidence reflects how much data went in:

    high    3+ years of profit and a churn rate
    low     current year only, no churn rate
    medium  anything in between

This is a rough heuristic for splitting a pie, not a financial or legal
valuation, and results are never presented without their confidence level.
"""

import logging
import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from datetime import date
from typing import List, Optional, Sequence

from .schemas import (
    BusinessMetrics,
    ConfidenceLevel,
    EquityValueRow,
    ValuationBreakdown,
    ValuationConfig,
    ValuationHistoryEntry,
    ValuationMode,
    ValuationResult,
    BASE_MULTIPLE,
    utc_now,
)
from .settings import EngineSettings
from .slicing import ContributorEquity
from .vesting import calculate_vesting_status

log = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")

GROWTH_WEIGHT = Decimal("0.5")
GROWTH_MIN, GROWTH_MAX = Decimal("0.5"), Decimal("2.0")
CHURN_WEIGHT = Decimal("0.3")
RETENTION_MIN, RETENTION_MAX = Decimal("0.5"), Decimal("1.0")


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


# =============================================================================
# Estimator
# =============================================================================

def calculate_growth_multiplier(metrics: BusinessMetrics) -> Decimal:
    """Growth adjustment from the earliest to the latest yearly profit (0.5-2.0)."""
    profits = sorted(
        [(metrics.current_year, metrics.current_year_profit)]
        + [(p.year, p.profit) for p in metrics.profit_history]
    )

    if len(profits) < 2:
        return ONE

    earliest_year, earliest_profit = profits[0]
    latest_year, latest_profit = profits[-1]
    years = latest_year - earliest_year

    if years == 0 or earliest_profit == 0:
        return ONE

    growth_rate = (latest_profit - earliest_profit) / abs(earliest_profit) / years
    return _clamp(ONE + growth_rate * GROWTH_WEIGHT, GROWTH_MIN, GROWTH_MAX)


def calculate_retention_multiplier(churn_rate: Optional[Decimal]) -> Decimal:
    """Retention adjustment from annual churn (0.5-1.0). No churn data -> 1.0."""
    if churn_rate is None:
        return ONE
    multiplier = ONE - (Decimal(churn_rate) / Decimal("100")) * CHURN_WEIGHT
    return _clamp(multiplier, RETENTION_MIN, RETENTION_MAX)


def get_confidence_level(metrics: BusinessMetrics) -> ConfidenceLevel:
    """Confidence from data completeness."""
    has_churn = metrics.churn_rate is not None

    if metrics.years_of_data >= 3 and has_churn:
        return "high"
    if metrics.years_of_data >= 2 or has_churn:
        return "medium"
    return "low"


def calculate_valuation(
    metrics: BusinessMetrics,
    base_multiple: Decimal = BASE_MULTIPLE,
) -> ValuationResult:
    """Estimate company valuation from business metrics.

    Args:
        metrics: Validated business metrics
        base_multiple: Profit multiple (default 3.0)

    Returns:
        ValuationResult with value, confidence and breakdown

    Example:
        Profits 2024: 100K, 2023: 80K, 2022: 60K, churn 10%:
            average 80K -> base 240K
            growth (100K - 60K) / 60K / 2 = 0.333 -> x1.167
            retention 1 - 0.1 x 0.3 -> x0.97
            valuation 271,600, confidence "high"
    """
    profits = [metrics.current_year_profit] + [p.profit for p in metrics.profit_history]
    average_profit = sum(profits, ZERO) / len(profits)

    growth_multiplier = calculate_growth_multiplier(metrics)
    retention_multiplier = calculate_retention_multiplier(metrics.churn_rate)

    base_valuation = average_profit * base_multiple
    adjusted = base_valuation * growth_multiplier * retention_multiplier
    value = max(ZERO, adjusted.quantize(ONE, rounding=ROUND_HALF_UP))

    return ValuationResult(
        value=value,
        confidence=get_confidence_level(metrics),
        breakdown=ValuationBreakdown(
            average_profit=average_profit.quantize(ONE, rounding=ROUND_HALF_UP),
            base_multiple=base_multiple,
            growth_multiplier=growth_multiplier.quantize(CENT, rounding=ROUND_HALF_UP),
            retention_multiplier=retention_multiplier.quantize(CENT, rounding=ROUND_HALF_UP),
        ),
    )


def get_current_valuation(
    mode: ValuationMode,
    manual_value: Optional[Decimal],
    business_metrics: Optional[BusinessMetrics],
    base_multiple: Decimal = BASE_MULTIPLE,
) -> Optional[Decimal]:
    """Valuation for the selected mode, or None when that mode has no input."""
    if mode == "manual":
        return manual_value
    if mode == "auto" and business_metrics is not None:
        return calculate_valuation(business_metrics, base_multiple).value
    return None


def calculate_equity_value(
    contributor_slices: Decimal,
    total_slices: Decimal,
    valuation: Optional[Decimal],
) -> Decimal:
    """Dollar value of a slice count at a valuation, rounded to cents.

    Zero slices, zero total or a missing/zero valuation all give 0.
    """
    if not total_slices or not valuation:
        return ZERO
    return (Decimal(contributor_slices) / Decimal(total_slices) * Decimal(valuation)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def calculate_equity_values(
    equity: Sequence[ContributorEquity],
    valuation: Optional[Decimal],
    as_of_date: Optional[date] = None,
    include_vesting: bool = True,
    total_slices: Optional[Decimal] = None,
) -> List[EquityValueRow]:
    """Dollar value of every contributor's equity at a valuation.

    Args:
        equity: Output of ``calculate_all_equity`` (active data only)
        valuation: Company valuation in dollars (None/0 -> all values 0)
        as_of_date: Date vesting is evaluated at (default: today)
        include_vesting: Add vested slices/percentage/value per row
        total_slices: Total active slices of the pie, including contributions
            whose contributor is unknown. Defaults to the sum over ``equity``.

    Returns:
        One EquityValueRow per contributor, in input order
    """
    if total_slices is None:
        total_slices = sum((e.total_slices for e in equity), ZERO)
    rows = []
    for entry in equity:
        row = EquityValueRow(
            contributor_id=entry.id,
            contributor_name=entry.name,
            slices=entry.total_slices,
            percentage=entry.equity_percentage,
            total_value=calculate_equity_value(entry.total_slices, total_slices, valuation),
        )
        if include_vesting:
            status = calculate_vesting_status(entry.contributor.vesting, entry.total_slices, as_of_date)
            row.vested_slices = status.vested_slices
            row.vested_percentage = status.percent_vested
            row.vested_value = calculate_equity_value(status.vested_slices, total_slices, valuation)
        rows.append(row)
    return rows


# =============================================================================
# Input Helpers
# =============================================================================

_SUFFIXES = {"K": Decimal("1000"), "M": Decimal("1000000"), "B": Decimal("1000000000")}
_SUFFIX_PATTERN = re.compile(r"^([\d.]+)\s*([KMBkmb])$")


def parse_currency_input(text: Optional[str]) -> Optional[Decimal]:
    """Parse "$1,234", "1234.56" or "$1.2M" into dollars (cents precision).

    Returns None for empty or unparseable input.
    """
    if text is None or not text.strip():
        return None

    cleaned = text.replace("$", "").replace(",", "").strip()

    match = _SUFFIX_PATTERN.match(cleaned)
    try:
        if match:
            amount = Decimal(match.group(1)) * _SUFFIXES[match.group(2).upper()]
        else:
            amount = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not amount.is_finite():
        return None
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_manual_valuation(value: Decimal) -> Optional[str]:
    """Error message for a manual valuation, None when valid."""
    if value <= 0:
        return "Valuation must be a positive amount"
    return None


def validate_churn_rate(rate: Decimal) -> Optional[str]:
    """Error message for a churn rate, None when valid."""
    if rate < 0:
        return "Churn rate cannot be negative"
    if rate > 100:
        return "Churn rate cannot exceed 100%"
    return None


def validate_profit_year(year: int, today: Optional[date] = None) -> Optional[str]:
    """Error message for a prior profit year, None when valid."""
    current_year = (today or date.today()).year
    if year > current_year:
        return "Year cannot be in the future"
    if year < current_year - 10:
        return "Year is too far in the past"
    return None


CONFIDENCE_LABELS = {
    "high": "High Confidence",
    "medium": "Medium Confidence",
    "low": "Low Confidence",
}

CONFIDENCE_DESCRIPTIONS = {
    "high": "3+ years of profit data with churn rate provides a reliable estimate",
    "medium": "Limited historical data - estimate may be less accurate",
    "low": "Only current year data - consider adding historical data for better accuracy",
}

DISCLAIMER = (
    "Valuations produced here are rough estimates for discussion only. "
    "They are not financial, tax or legal advice."
)


# =============================================================================
# Valuation Book
# =============================================================================

class ValuationBook:
    """Valuation configuration plus the history of saved valuations.

    The history is newest-first and keeps the most recent
    ``settings.valuation_history_limit`` entries (20 by default).

    Example:
        book = ValuationBook()
        book.set_mode("auto")
        book.set_business_metrics(BusinessMetrics(current_year_profit=100_000))
        book.save()
        book.calculation_result().confidence  # "low"
    """

    def __init__(
        self,
        config: Optional[ValuationConfig] = None,
        history: Optional[List[ValuationHistoryEntry]] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or EngineSettings()
        self.config = config or ValuationConfig()
        self.history: List[ValuationHistoryEntry] = list(history or [])[: self.settings.valuation_history_limit]

    def _touch(self) -> None:
        self.config.last_updated = utc_now()

    def set_enabled(self, enabled: bool) -> None:
        self.config.enabled = enabled
        self._touch()

    def set_mode(self, mode: ValuationMode) -> None:
        self.config.mode = mode
        self._touch()

    def set_manual_value(self, value: Optional[Decimal]) -> None:
        self.config.manual_value = value
        self._touch()

    def set_business_metrics(self, metrics: Optional[BusinessMetrics]) -> None:
        self.config.business_metrics = metrics
        self._touch()

    def acknowledge_disclaimer(self, acknowledged: bool = True) -> None:
        self.config.disclaimer_acknowledged = acknowledged
        self._touch()

    def current_valuation(self) -> Optional[Decimal]:
        return get_current_valuation(
            self.config.mode,
            self.config.manual_value,
            self.config.business_metrics,
            self.settings.base_multiple,
        )

    def calculation_result(self) -> Optional[ValuationResult]:
        """Full estimate with confidence, only in auto mode with metrics."""
        if self.config.mode == "auto" and self.config.business_metrics is not None:
            return calculate_valuation(self.config.business_metrics, self.settings.base_multiple)
        return None

    def is_valuation_set(self) -> bool:
        value = self.current_valuation()
        return value is not None and value > 0

    def save(self) -> bool:
        """Snapshot the current valuation into history.

        Returns:
            False when the current mode has nothing to save
        """
        value = self.current_valuation()
        if value is None:
            log.debug("Valuation save skipped: no value for mode %s", self.config.mode)
            return False

        entry = ValuationHistoryEntry(
            mode=self.config.mode,
            value=value,
            manual_value=self.config.manual_value,
            business_metrics=(
                self.config.business_metrics.model_copy(deep=True)
                if self.config.business_metrics is not None
                else None
            ),
        )
        self.history.insert(0, entry)
        del self.history[self.settings.valuation_history_limit:]
        self._touch()

        log.info("Saved %s valuation of %s", entry.mode, entry.value)
        return True

    def restore_from_history(self, entry_id: str) -> bool:
        """Load a saved entry's inputs back into the config."""
        entry = next((e for e in self.history if e.id == entry_id), None)
        if entry is None:
            return False

        self.config.mode = entry.mode
        self.config.manual_value = entry.manual_value
        self.config.business_metrics = (
            entry.business_metrics.model_copy(deep=True)
            if entry.business_metrics is not None
            else None
        )
        self._touch()
        return True

    def clear_history(self) -> None:
        self.history.clear()
