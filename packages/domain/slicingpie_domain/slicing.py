"""Slice calculation and equity aggregation.

Implements the Slicing Pie fixed-multiplier model:

    time:          hours x hourly_rate x 2
    cash:          dollars x 4
    non-cash:      fair market value x 2
    idea:          negotiated value x 1
    relationship:  negotiated value x 1

Equity is each contributor's share of the active slices:

    equity_percentage = contributor_slices / total_slices x 100   (0 if total is 0)

Every function here is pure and expects inputs that already passed schema
validation. Callers pass the *active* collections (see ``PieStore``).
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from .schemas import Contribution, ContributionType, Contributor


MULTIPLIERS: Dict[str, Decimal] = {
    "time": Decimal("2"),
    "cash": Decimal("4"),
    "non-cash": Decimal("2"),
    "idea": Decimal("1"),
    "relationship": Decimal("1"),
}

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Decimal from int/float/str/Decimal; floats go through str to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


# =============================================================================
# Slice Calculator
# =============================================================================

def get_multiplier(contribution_type: ContributionType) -> Decimal:
    """Multiplier for a contribution type."""
    return MULTIPLIERS[contribution_type]


def calculate_slices(
    contribution_type: ContributionType,
    value: Decimal,
    hourly_rate: Optional[Decimal] = None,
) -> Decimal:
    """Calculate slices for a contribution.

    Args:
        contribution_type: Contribution type
        value: Raw value (hours for time, dollars otherwise)
        hourly_rate: Contributor's hourly rate, only used for time. None counts as 0.

    Returns:
        Slices earned

    Example:
        calculate_slices("time", Decimal("10"), Decimal("100"))  -> 2000
        calculate_slices("cash", Decimal("1000"))                -> 4000
    """
    multiplier = get_multiplier(contribution_type)
    value = to_decimal(value)

    if contribution_type == "time":
        rate = to_decimal(hourly_rate) if hourly_rate is not None else ZERO
        return value * rate * multiplier

    return value * multiplier


def preview_slices(
    contribution_type: ContributionType,
    value: Decimal,
    contributor: Optional[Contributor] = None,
) -> Tuple[Decimal, Decimal]:
    """Slices and multiplier for a draft contribution, before it is saved.

    Returns:
        (slices, multiplier). A missing contributor values time at $0/hr.
    """
    rate = contributor.hourly_rate if contributor is not None else None
    return calculate_slices(contribution_type, value, rate), get_multiplier(contribution_type)


# =============================================================================
# Equity Aggregator
# =============================================================================

@dataclass
class ContributorEquity:
    """A contributor with their computed share of the pie."""

    contributor: Contributor
    total_slices: Decimal
    equity_percentage: Decimal

    @property
    def id(self) -> str:
        return self.contributor.id

    @property
    def name(self) -> str:
        return self.contributor.name


def get_total_slices(contributions: Iterable[Contribution]) -> Decimal:
    """Total slices across all given contributions."""
    return sum((c.slices for c in contributions), ZERO)


def get_contributor_total_slices(
    contributor_id: str,
    contributions: Iterable[Contribution],
) -> Decimal:
    """Slices earned by one contributor."""
    return sum(
        (c.slices for c in contributions if c.contributor_id == contributor_id),
        ZERO,
    )


def calculate_equity_percentage(contributor_slices: Decimal, total_slices: Decimal) -> Decimal:
    """Equity percentage (0-100). Zero when there are no slices at all."""
    if total_slices == 0:
        return ZERO
    return contributor_slices / total_slices * HUNDRED


def slices_by_contributor(contributions: Iterable[Contribution]) -> Dict[str, Decimal]:
    """Map contributor id -> slices, including ids with no matching contributor."""
    totals: Dict[str, Decimal] = {}
    for contribution in contributions:
        totals[contribution.contributor_id] = (
            totals.get(contribution.contributor_id, ZERO) + contribution.slices
        )
    return totals


def calculate_all_equity(
    contributors: Sequence[Contributor],
    contributions: Sequence[Contribution],
) -> List[ContributorEquity]:
    """Compute equity for every contributor.

    Contributions pointing at a contributor that is not in ``contributors``
    still count towards the total (unknown contributor) but are attributed to
    nobody, so the listed percentages then sum to less than 100.

    Args:
        contributors: Active contributors
        contributions: Active contributions

    Returns:
        One ContributorEquity per contributor, in input order
    """
    total_slices = get_total_slices(contributions)
    totals = slices_by_contributor(contributions)

    return [
        ContributorEquity(
            contributor=contributor,
            total_slices=totals.get(contributor.id, ZERO),
            equity_percentage=calculate_equity_percentage(
                totals.get(contributor.id, ZERO), total_slices
            ),
        )
        for contributor in contributors
    ]


# =============================================================================
# Filtering and Sorting
# =============================================================================

SortField = Literal["date", "slices", "value", "type", "contributor_id"]


def filter_contributions(
    contributions: Iterable[Contribution],
    contributor_id: Optional[str] = None,
    contribution_type: Optional[ContributionType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[Contribution]:
    """Filter contributions. Date bounds are inclusive."""
    result = []
    for c in contributions:
        if contributor_id and c.contributor_id != contributor_id:
            continue
        if contribution_type and c.type != contribution_type:
            continue
        if date_from and c.date < date_from:
            continue
        if date_to and c.date > date_to:
            continue
        result.append(c)
    return result


def sort_contributions(
    contributions: Iterable[Contribution],
    field: SortField = "date",
    ascending: bool = False,
) -> List[Contribution]:
    """Sort contributions by a field (newest/largest first by default)."""
    return sorted(
        contributions,
        key=lambda c: getattr(c, field),
        reverse=not ascending,
    )


def get_most_recent_contribution(contributions: Iterable[Contribution]) -> Optional[Contribution]:
    """Most recently recorded contribution (by created_at)."""
    contributions = list(contributions)
    if not contributions:
        return None
    return max(contributions, key=lambda c: c.created_at)


# =============================================================================
# Formatting
# =============================================================================

def format_slices(slices: Decimal) -> str:
    """12000 -> '12,000'"""
    return f"{to_decimal(slices):,.0f}"


def format_equity_percentage(percentage: Decimal) -> str:
    """33.333 -> '33.3%'"""
    return f"{to_decimal(percentage):,.1f}%"


def format_currency(amount: Decimal) -> str:
    """1234.56 -> '$1,235'"""
    amount = to_decimal(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"


def format_contribution_value(contribution_type: ContributionType, value: Decimal) -> str:
    """Hours for time contributions, dollars otherwise."""
    if contribution_type == "time":
        value = to_decimal(value)
        unit = "hr" if value == 1 else "hrs"
        return f"{value.normalize():f} {unit}"
    return format_currency(value)
