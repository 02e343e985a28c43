"""Computation blocks for equity reporting.

Blocks turn domain models into pandas DataFrames for export or charting:

    PortfolioDocument (schemas) -> Blocks (computation) -> DataFrames (output)

Available blocks:
- EquityBlock: slices, percentages, contribution list, per-type totals
- VestingBlock: vesting status per contributor at a date
- EquityValueBlock: dollar value of each contributor's slices at a valuation

Usage:
    from slicingpie_domain.blocks import (
        BlockContext, BlockExecutor, EquityBlock, VestingBlock, EquityValueBlock
    )

    context = BlockContext()
    context.set("portfolio", store.export_portfolio())
    context.set("as_of_date", date.today())
    context.set("valuation", Decimal("500000"))

    BlockExecutor([EquityBlock(), VestingBlock(), EquityValueBlock()]).execute(context)
    values_df = context.get("equity_values")
"""

from .base import Block, BlockContext, BlockExecutor, CircularDependencyError, topological_sort
from .equity import EquityBlock
from .vesting import VestingBlock
from .equity_values import EquityValueBlock

__all__ = [
    "Block",
    "BlockContext",
    "BlockExecutor",
    "CircularDependencyError",
    "topological_sort",
    "EquityBlock",
    "VestingBlock",
    "EquityValueBlock",
]
