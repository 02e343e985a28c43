"""Equity value block: what each contributor's slices are worth at a valuation.

Records follow the rendering shape shared with the export layer:

    {name, slices, percentage, dollar_value, vested_slices?, unvested_slices?, vested_value?}
"""

from decimal import Decimal
from typing import List, Optional

import pandas as pd

from .base import Block, BlockContext
from ..valuation import calculate_equity_value


class EquityValueBlock(Block):
    """Dollar values from equity_table (and vesting_table) at a valuation.

    Inputs (from context):
        - equity_table, equity_summary: outputs of EquityBlock
        - valuation: Decimal company valuation, or None
        - vesting_table: output of VestingBlock (only with include_vesting=True)

    Outputs (to context):
        - equity_values: DataFrame with columns:
            * contributor_id, name, slices, percentage
            * dollar_value: slices / equity_summary.total_slices x valuation, in cents
            * vested_slices, unvested_slices, vested_value (with include_vesting)
          All dollar values are 0 when valuation is None or 0.
    """

    def __init__(self, valuation_key: str = "valuation", include_vesting: bool = True):
        self.valuation_key = valuation_key
        self.include_vesting = include_vesting

    def inputs(self) -> List[str]:
        keys = ["equity_table", "equity_summary", self.valuation_key]
        if self.include_vesting:
            keys.append("vesting_table")
        return keys

    def outputs(self) -> List[str]:
        return ["equity_values"]

    def execute(self, context: BlockContext) -> None:
        equity: pd.DataFrame = context.get("equity_table")
        valuation: Optional[Decimal] = context.get(self.valuation_key)

        columns = ["contributor_id", "name", "slices", "percentage", "dollar_value"]
        if self.include_vesting:
            columns += ["vested_slices", "unvested_slices", "vested_value"]

        if equity.empty:
            context.set("equity_values", pd.DataFrame(columns=columns))
            return

        total = Decimal(str(context.get("equity_summary")["total_slices"].iloc[0]))
        df = equity[["contributor_id", "name", "slices", "percentage"]].copy()
        df["dollar_value"] = [
            float(calculate_equity_value(Decimal(str(s)), total, valuation)) for s in df["slices"]
        ]

        if self.include_vesting:
            vesting = context.get("vesting_table")[["contributor_id", "vested_slices", "unvested_slices"]]
            df = df.merge(vesting, on="contributor_id", how="left")
            df["vested_slices"] = df["vested_slices"].fillna(df["slices"])
            df["unvested_slices"] = df["unvested_slices"].fillna(0.0)
            df["vested_value"] = [
                float(calculate_equity_value(Decimal(str(s)), total, valuation))
                for s in df["vested_slices"]
            ]

        context.set("equity_values", df[columns].reset_index(drop=True))
