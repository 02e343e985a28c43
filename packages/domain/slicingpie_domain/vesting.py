"""Cliff + straight-line vesting.

A contributor's vesting state at a date is a pure function of
``(VestingConfig, total_slices, as_of_date)``:

    none         no VestingConfig; always 100% vested
    preCliff     as_of_date < start_date + cliff_months; nothing vested
    vesting      cliff passed, as_of_date < start_date + vesting_months
    fullyVested  as_of_date >= start_date + vesting_months

During ``vesting`` the vested share grows linearly with whole elapsed months,
from 0 at the cliff to 1 at the end of the period:

    percent_vested = (months_elapsed - cliff_months) / (vesting_months - cliff_months)
    vested_slices  = round(total_slices x percent_vested)

Nothing is locked in per contribution: when a contributor earns more slices,
the same percentage applies to the new total. ``as_of_date`` can be any date,
which is how projections into the future are computed.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Sequence

from dateutil.relativedelta import relativedelta

from .schemas import (
    Contributor,
    VestingConfig,
    VestingProjectionPoint,
    VestingState,
    VestingStatus,
    VestingSummary,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# Date Helpers
# =============================================================================

def calculate_months_difference(start_date: date, end_date: date) -> int:
    """Whole calendar months from start_date to end_date.

    A month only counts once its day-of-month is reached: Jan 15 -> Feb 14 is
    0 months, Jan 15 -> Feb 15 is 1. Negative when end_date is before
    start_date (rounded towards the past).
    """
    delta = relativedelta(end_date, start_date)
    months = delta.years * 12 + delta.months
    if end_date < start_date and delta.days:
        months -= 1
    return months


def get_cliff_date(vesting: VestingConfig) -> Optional[date]:
    """Date the cliff ends, or None for a zero-month cliff."""
    if vesting.cliff_months == 0:
        return None
    return vesting.start_date + relativedelta(months=vesting.cliff_months)


def get_full_vest_date(vesting: VestingConfig) -> date:
    """Date everything is vested."""
    return vesting.start_date + relativedelta(months=vesting.vesting_months)


def _round_slices(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


# =============================================================================
# Vesting Status
# =============================================================================

def calculate_vesting_status(
    vesting: Optional[VestingConfig],
    total_slices: Decimal,
    as_of_date: Optional[date] = None,
) -> VestingStatus:
    """Vested/unvested split at a date.

    Args:
        vesting: Contributor's vesting schedule (None = no vesting)
        total_slices: Contributor's current slice total
        as_of_date: Evaluation date (default: today)

    Returns:
        VestingStatus for that date
    """
    current = as_of_date or date.today()
    total_slices = Decimal(total_slices)

    if vesting is None:
        return VestingStatus(
            state="none",
            percent_vested=HUNDRED,
            vested_slices=total_slices,
            unvested_slices=ZERO,
        )

    cliff_date = get_cliff_date(vesting)
    full_vest_date = get_full_vest_date(vesting)
    cliff_boundary = cliff_date or vesting.start_date
    months_elapsed = calculate_months_difference(vesting.start_date, current)

    if current < vesting.start_date or current < cliff_boundary:
        return VestingStatus(
            state="preCliff",
            percent_vested=ZERO,
            vested_slices=ZERO,
            unvested_slices=total_slices,
            cliff_date=cliff_date,
            full_vest_date=full_vest_date,
            months_until_cliff=max(0, vesting.cliff_months - months_elapsed),
            months_until_full_vest=max(0, vesting.vesting_months - months_elapsed),
        )

    if current >= full_vest_date:
        return VestingStatus(
            state="fullyVested",
            percent_vested=HUNDRED,
            vested_slices=total_slices,
            unvested_slices=ZERO,
            cliff_date=cliff_date,
            full_vest_date=full_vest_date,
        )

    vesting_span = vesting.vesting_months - vesting.cliff_months
    fraction = Decimal(months_elapsed - vesting.cliff_months) / Decimal(vesting_span)
    # Month-end start dates can land a day either side of the boundary
    fraction = min(max(fraction, ZERO), Decimal("1"))

    vested_slices = min(_round_slices(total_slices * fraction), total_slices)

    return VestingStatus(
        state="vesting",
        percent_vested=fraction * HUNDRED,
        vested_slices=vested_slices,
        unvested_slices=total_slices - vested_slices,
        cliff_date=cliff_date,
        full_vest_date=full_vest_date,
        months_until_cliff=0,
        months_until_full_vest=max(0, vesting.vesting_months - months_elapsed),
    )


def calculate_projected_vesting(
    vesting: Optional[VestingConfig],
    total_slices: Decimal,
    target_date: date,
) -> VestingStatus:
    """Vesting status at a future (or past) date, assuming the slice total holds."""
    return calculate_vesting_status(vesting, total_slices, target_date)


def vesting_projection(
    vesting: Optional[VestingConfig],
    total_slices: Decimal,
    from_date: date,
    to_date: date,
    step_months: int = 1,
) -> List[VestingProjectionPoint]:
    """Vesting status sampled every ``step_months`` between two dates (inclusive).

    Used for projection charts. Raises ValueError for a non-positive step.
    """
    if step_months <= 0:
        raise ValueError(f"step_months must be positive, got {step_months}")

    points: List[VestingProjectionPoint] = []
    step = 0
    current = from_date
    while current <= to_date:
        status = calculate_vesting_status(vesting, total_slices, current)
        points.append(
            VestingProjectionPoint(
                as_of_date=current,
                state=status.state,
                percent_vested=status.percent_vested,
                vested_slices=status.vested_slices,
                unvested_slices=status.unvested_slices,
            )
        )
        step += step_months
        current = from_date + relativedelta(months=step)
    return points


# =============================================================================
# Across Contributors
# =============================================================================

@dataclass
class VestedEquity:
    """Vested/unvested breakdown for one contributor (chart-ready)."""

    contributor_id: str
    contributor_name: str
    vested_slices: Decimal
    unvested_slices: Decimal
    total_slices: Decimal
    percent_vested: Decimal
    vesting_state: VestingState


def get_vested_equity_data(
    contributors: Sequence[Contributor],
    contributor_slices: Mapping[str, Decimal],
    as_of_date: Optional[date] = None,
) -> List[VestedEquity]:
    """Vesting breakdown for each contributor at a date."""
    rows = []
    for contributor in contributors:
        total = contributor_slices.get(contributor.id, ZERO)
        status = calculate_vesting_status(contributor.vesting, total, as_of_date)
        rows.append(
            VestedEquity(
                contributor_id=contributor.id,
                contributor_name=contributor.name,
                vested_slices=status.vested_slices,
                unvested_slices=status.unvested_slices,
                total_slices=total,
                percent_vested=status.percent_vested,
                vesting_state=status.state,
            )
        )
    return rows


def get_vesting_summary(
    contributors: Sequence[Contributor],
    contributor_slices: Mapping[str, Decimal],
    as_of_date: Optional[date] = None,
) -> VestingSummary:
    """Aggregate vesting across contributors at a date.

    ``next_cliff_date`` only considers contributors still before their cliff;
    ``next_full_vest_date`` considers everyone with a future full-vest date.
    Contributors without vesting count as fully vested.
    """
    current = as_of_date or date.today()

    total_vested = ZERO
    total_unvested = ZERO
    next_cliff: Optional[date] = None
    next_full_vest: Optional[date] = None
    counts: Dict[str, int] = {"preCliff": 0, "vesting": 0, "fullyVested": 0}

    for contributor in contributors:
        total = contributor_slices.get(contributor.id, ZERO)
        status = calculate_vesting_status(contributor.vesting, total, current)

        total_vested += status.vested_slices
        total_unvested += status.unvested_slices

        if status.state == "preCliff":
            counts["preCliff"] += 1
            if status.cliff_date and status.cliff_date > current:
                if next_cliff is None or status.cliff_date < next_cliff:
                    next_cliff = status.cliff_date
        elif status.state == "vesting":
            counts["vesting"] += 1
        else:
            counts["fullyVested"] += 1

        if status.full_vest_date and status.full_vest_date > current:
            if next_full_vest is None or status.full_vest_date < next_full_vest:
                next_full_vest = status.full_vest_date

    total_slices = total_vested + total_unvested
    overall = (
        (total_vested / total_slices * HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if total_slices > 0
        else HUNDRED
    )

    return VestingSummary(
        total_vested_slices=total_vested,
        total_unvested_slices=total_unvested,
        total_slices=total_slices,
        overall_percent_vested=overall,
        next_cliff_date=next_cliff,
        next_full_vest_date=next_full_vest,
        contributors_pre_cliff=counts["preCliff"],
        contributors_vesting=counts["vesting"],
        contributors_fully_vested=counts["fullyVested"],
    )
