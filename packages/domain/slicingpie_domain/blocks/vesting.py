"""Vesting computation block.

Evaluates every active contributor's vesting schedule at one date.
"""

from datetime import date
from decimal import Decimal
from typing import List

import pandas as pd

from .base import Block, BlockContext
from ..schemas import PortfolioDocument
from ..slicing import slices_by_contributor
from ..vesting import calculate_vesting_status, get_vesting_summary

VESTING_COLUMNS = [
    "contributor_id",
    "name",
    "state",
    "slices",
    "percent_vested",
    "vested_slices",
    "unvested_slices",
    "start_date",
    "cliff_date",
    "full_vest_date",
    "months_until_cliff",
    "months_until_full_vest",
]


class VestingBlock(Block):
    """Vesting status per contributor at ``as_of_date``.

    Inputs (from context):
        - portfolio: PortfolioDocument
        - as_of_date: date to evaluate at

    Outputs (to context):
        - vesting_table: DataFrame with one row per active contributor:
            * contributor_id, name
            * state: "none", "preCliff", "vesting" or "fullyVested"
            * slices, percent_vested, vested_slices, unvested_slices
            * start_date, cliff_date, full_vest_date (None without vesting)
            * months_until_cliff, months_until_full_vest (0 once passed or without vesting)

        - vesting_summary: DataFrame with single row of VestingSummary fields
    """

    def __init__(self, portfolio_key: str = "portfolio", as_of_key: str = "as_of_date"):
        self.portfolio_key = portfolio_key
        self.as_of_key = as_of_key

    def inputs(self) -> List[str]:
        return [self.portfolio_key, self.as_of_key]

    def outputs(self) -> List[str]:
        return ["vesting_table", "vesting_summary"]

    def execute(self, context: BlockContext) -> None:
        portfolio: PortfolioDocument = context.get(self.portfolio_key)
        as_of_date: date = context.get(self.as_of_key)

        contributors = [c for c in portfolio.contributors if not c.is_deleted]
        totals = slices_by_contributor(c for c in portfolio.contributions if not c.is_deleted)

        rows = []
        for contributor in contributors:
            slices = totals.get(contributor.id, Decimal("0"))
            status = calculate_vesting_status(contributor.vesting, slices, as_of_date)
            rows.append({
                "contributor_id": contributor.id,
                "name": contributor.name,
                "state": status.state,
                "slices": float(slices),
                "percent_vested": float(status.percent_vested),
                "vested_slices": float(status.vested_slices),
                "unvested_slices": float(status.unvested_slices),
                "start_date": contributor.vesting.start_date if contributor.vesting else None,
                "cliff_date": status.cliff_date,
                "full_vest_date": status.full_vest_date,
                "months_until_cliff": status.months_until_cliff,
                "months_until_full_vest": status.months_until_full_vest,
            })
        context.set("vesting_table", pd.DataFrame(rows, columns=VESTING_COLUMNS))

        summary = get_vesting_summary(contributors, totals, as_of_date)
        context.set("vesting_summary", pd.DataFrame([{
            "as_of_date": as_of_date,
            "total_slices": float(summary.total_slices),
            "total_vested_slices": float(summary.total_vested_slices),
            "total_unvested_slices": float(summary.total_unvested_slices),
            "overall_percent_vested": float(summary.overall_percent_vested),
            "next_cliff_date": summary.next_cliff_date,
            "next_full_vest_date": summary.next_full_vest_date,
            "contributors_pre_cliff": summary.contributors_pre_cliff,
            "contributors_vesting": summary.contributors_vesting,
            "contributors_fully_vested": summary.contributors_fully_vested,
        }]))
