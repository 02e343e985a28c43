"""Equity computation block.

Turns a PortfolioDocument into the tables behind dashboards and exports.

Output DataFrames:
- equity_table: one row per active contributor with slices and percentage
- contributions_table: one row per contribution (active only by default)
- slices_by_type: slices per contribution type
- equity_summary: single row of headline numbers
"""

from typing import List

import pandas as pd

from .base import Block, BlockContext
from ..schemas import CONTRIBUTION_TYPE_LABELS, CONTRIBUTION_TYPES, PortfolioDocument
from ..slicing import calculate_all_equity, calculate_equity_percentage, get_total_slices

EQUITY_COLUMNS = ["contributor_id", "name", "email", "hourly_rate", "slices", "percentage"]

CONTRIBUTION_COLUMNS = [
    "id",
    "contributor_id",
    "contributor_name",
    "date",
    "type",
    "type_label",
    "value",
    "multiplier",
    "slices",
    "description",
    "status",
]

UNKNOWN_CONTRIBUTOR = "Unknown"


class EquityBlock(Block):
    """Computes slices and equity percentages from a portfolio.

    Inputs (from context):
        - portfolio: PortfolioDocument (deleted records included)

    Outputs (to context):
        - equity_table: DataFrame with columns:
            * contributor_id, name, email, hourly_rate
            * slices: Active slices earned
            * percentage: Share of all active slices (0-100)
          Sorted by slices descending.

        - contributions_table: DataFrame with columns:
            * id, contributor_id, contributor_name ("Unknown" if missing)
            * date, type, type_label, value, multiplier, slices, description
            * status: "active", "deleted" or "deleted_with_parent"
          Sorted by date descending.

        - slices_by_type: DataFrame with type, label, count, slices, percentage
          (one row per contribution type, in canonical order)

        - equity_summary: DataFrame with single row:
            * company_name, total_slices
            * contributors, contributions (active counts)
            * deleted_contributors, deleted_contributions

    Example:
        context = BlockContext()
        context.set("portfolio", sample_portfolio())
        EquityBlock().execute(context)
        context.get("equity_summary")["total_slices"].iloc[0]  # 48500.0
    """

    def __init__(self, portfolio_key: str = "portfolio", include_deleted: bool = False):
        """Initialize EquityBlock.

        Args:
            portfolio_key: Context key for the PortfolioDocument input
            include_deleted: Also list soft-deleted contributions in contributions_table
        """
        self.portfolio_key = portfolio_key
        self.include_deleted = include_deleted

    def inputs(self) -> List[str]:
        return [self.portfolio_key]

    def outputs(self) -> List[str]:
        return ["equity_table", "contributions_table", "slices_by_type", "equity_summary"]

    def execute(self, context: BlockContext) -> None:
        portfolio: PortfolioDocument = context.get(self.portfolio_key)

        contributors = [c for c in portfolio.contributors if not c.is_deleted]
        contributions = [c for c in portfolio.contributions if not c.is_deleted]

        context.set("equity_table", self._compute_equity(contributors, contributions))
        context.set("contributions_table", self._compute_contributions(portfolio))
        context.set("slices_by_type", self._compute_by_type(contributions))
        context.set("equity_summary", self._compute_summary(portfolio, contributors, contributions))

    def _compute_equity(self, contributors, contributions) -> pd.DataFrame:
        rows = [
            {
                "contributor_id": entry.id,
                "name": entry.name,
                "email": entry.contributor.email,
                "hourly_rate": float(entry.contributor.hourly_rate),
                "slices": float(entry.total_slices),
                "percentage": float(entry.equity_percentage),
            }
            for entry in calculate_all_equity(contributors, contributions)
        ]

        df = pd.DataFrame(rows, columns=EQUITY_COLUMNS)
        if not df.empty:
            df = df.sort_values("slices", ascending=False, kind="stable").reset_index(drop=True)
        return df

    def _compute_contributions(self, portfolio: PortfolioDocument) -> pd.DataFrame:
        names = {c.id: c.name for c in portfolio.contributors}

        rows = []
        for contribution in portfolio.contributions:
            if contribution.is_deleted and not self.include_deleted:
                continue
            rows.append({
                "id": contribution.id,
                "contributor_id": contribution.contributor_id,
                "contributor_name": names.get(contribution.contributor_id, UNKNOWN_CONTRIBUTOR),
                "date": contribution.date,
                "type": contribution.type,
                "type_label": CONTRIBUTION_TYPE_LABELS[contribution.type],
                "value": float(contribution.value),
                "multiplier": float(contribution.multiplier),
                "slices": float(contribution.slices),
                "description": contribution.description or "",
                "status": contribution.deletion.state,
            })

        df = pd.DataFrame(rows, columns=CONTRIBUTION_COLUMNS)
        if not df.empty:
            df = df.sort_values("date", ascending=False, kind="stable").reset_index(drop=True)
        return df

    def _compute_by_type(self, contributions) -> pd.DataFrame:
        total = get_total_slices(contributions)

        rows = []
        for contribution_type in CONTRIBUTION_TYPES:
            of_type = [c for c in contributions if c.type == contribution_type]
            slices = get_total_slices(of_type)
            rows.append({
                "type": contribution_type,
                "label": CONTRIBUTION_TYPE_LABELS[contribution_type],
                "count": len(of_type),
                "slices": float(slices),
                "percentage": float(calculate_equity_percentage(slices, total)),
            })
        return pd.DataFrame(rows)

    def _compute_summary(self, portfolio: PortfolioDocument, contributors, contributions) -> pd.DataFrame:
        return pd.DataFrame([{
            "company_name": portfolio.company.name,
            "total_slices": float(get_total_slices(contributions)),
            "contributors": len(contributors),
            "contributions": len(contributions),
            "deleted_contributors": len(portfolio.contributors) - len(contributors),
            "deleted_contributions": len(portfolio.contributions) - len(contributions),
        }])
