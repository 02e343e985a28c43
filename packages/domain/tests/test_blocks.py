"""Tests for blocks architecture.

Tests cover:
- BlockContext get/set/has operations
- Block abstract base class
- Topological sort and dependency resolution
- BlockExecutor validation and execution
- EquityBlock, VestingBlock, EquityValueBlock on the sample pie
"""

import pytest
from decimal import Decimal
from datetime import date

from slicingpie_domain.blocks import (
    Block,
    BlockContext,
    BlockExecutor,
    EquityBlock,
    EquityValueBlock,
    VestingBlock,
)
from slicingpie_domain.blocks.base import topological_sort, CircularDependencyError
from slicingpie_domain.sample_data import sample_portfolio
from slicingpie_domain.schemas import PortfolioDocument, VestingConfig
from slicingpie_domain.store import PieStore


# =============================================================================
# BlockContext Tests
# =============================================================================

def test_block_context_get_set():
    """Test basic get/set operations."""
    context = BlockContext()
    context.set("key1", "value1")
    assert context.get("key1") == "value1"


def test_block_context_has():
    """Test has() method."""
    context = BlockContext()
    assert not context.has("key1")
    context.set("key1", "value1")
    assert context.has("key1")


def test_block_context_keys():
    context = BlockContext()
    context.set("key1", "value1")
    context.set("key2", "value2")
    assert set(context.keys()) == {"key1", "key2"}


def test_block_context_get_missing_key():
    """Missing keys raise KeyError naming what is available."""
    context = BlockContext()
    context.set("portfolio", None)
    with pytest.raises(KeyError, match="'missing' is not in the block context"):
        context.get("missing")


def test_block_context_get_optional():
    context = BlockContext()
    assert context.get_optional("valuation") is None
    assert context.get_optional("valuation", Decimal("1")) == Decimal("1")


# =============================================================================
# Topological Sort Tests
# =============================================================================

class SimpleBlock(Block):
    """Simple block for testing."""

    def __init__(self, name, inputs, outputs):
        self.name = name
        self._inputs = inputs
        self._outputs = outputs

    def inputs(self):
        return self._inputs

    def outputs(self):
        return self._outputs

    def execute(self, context):
        for output in self._outputs:
            context.set(output, f"{self.name}_output")

    def __repr__(self):
        return f"SimpleBlock({self.name})"


def test_topological_sort_linear_chain():
    """A -> B -> C given in scrambled order."""
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    sorted_blocks = topological_sort([block_c, block_a, block_b])

    assert sorted_blocks == [block_a, block_b, block_c]


def test_topological_sort_parallel_blocks():
    """Test sorting parallel blocks with shared dependency."""
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_a"], ["data_c"])

    sorted_blocks = topological_sort([block_c, block_b, block_a])

    assert sorted_blocks[0] == block_a
    assert set(sorted_blocks[1:]) == {block_b, block_c}


def test_topological_sort_circular_dependency():
    block_a = SimpleBlock("A", ["data_c"], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    with pytest.raises(CircularDependencyError, match="Circular dependency among blocks"):
        topological_sort([block_a, block_b, block_c])


def test_topological_sort_duplicate_output():
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", [], ["data_a"])

    with pytest.raises(ValueError, match="'data_a' is written by both"):
        topological_sort([block_a, block_b])


def test_topological_sort_external_inputs():
    """Inputs nobody produces are expected from the initial context."""
    block_a = SimpleBlock("A", ["external_data"], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])

    sorted_blocks = topological_sort([block_b, block_a])
    assert sorted_blocks == [block_a, block_b]


# =============================================================================
# BlockExecutor Tests
# =============================================================================

def test_block_executor_simple_chain():
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])

    context = BlockContext()
    BlockExecutor([block_a, block_b]).execute(context)

    assert context.get("data_a") == "A_output"
    assert context.get("data_b") == "B_output"


def test_block_executor_missing_input():
    block = SimpleBlock("A", ["missing_input"], ["output"])

    with pytest.raises(KeyError, match="is missing inputs"):
        BlockExecutor([block]).execute(BlockContext())


def test_block_executor_missing_output():

    class BadBlock(Block):
        def inputs(self):
            return []

        def outputs(self):
            return ["output"]

        def execute(self, context):
            pass

    with pytest.raises(ValueError, match="did not write declared outputs"):
        BlockExecutor([BadBlock()]).execute(BlockContext())


def test_block_executor_orders_domain_blocks():
    executor = BlockExecutor([EquityValueBlock(), VestingBlock(), EquityBlock()])
    names = [type(block).__name__ for block in executor.order]
    assert names[-1] == "EquityValueBlock"
    assert set(names[:2]) == {"EquityBlock", "VestingBlock"}


# =============================================================================
# EquityBlock Tests
# =============================================================================

@pytest.fixture
def context():
    context = BlockContext()
    context.set("portfolio", sample_portfolio())
    context.set("as_of_date", date(2025, 7, 1))
    context.set("valuation", Decimal("970000"))
    return context


def test_equity_block_tables(context):
    EquityBlock().execute(context)

    equity = context.get("equity_table")
    assert list(equity["contributor_id"]) == ["sample-alice", "sample-carol", "sample-bob"]
    assert list(equity["slices"]) == [20000.0, 20000.0, 8500.0]
    assert equity["percentage"].sum() == pytest.approx(100.0)
    assert equity.iloc[0]["hourly_rate"] == 150.0

    summary = context.get("equity_summary").iloc[0]
    assert summary["company_name"] == "Acme Startup"
    assert summary["total_slices"] == 48500.0
    assert summary["contributors"] == 3
    assert summary["contributions"] == 6


def test_equity_block_contributions_newest_first(context):
    EquityBlock().execute(context)

    contributions = context.get("contributions_table")
    assert len(contributions) == 6
    assert list(contributions["date"])[0] == date(2024, 2, 1)
    assert list(contributions["date"])[-1] == date(2024, 1, 1)
    assert set(contributions["status"]) == {"active"}

    row = contributions[contributions["id"] == "contrib-4"].iloc[0]
    assert row["contributor_name"] == "Bob Designer"
    assert row["type_label"] == "Non-Cash (Equipment)"
    assert row["slices"] == 1000.0


def test_equity_block_slices_by_type(context):
    EquityBlock().execute(context)

    by_type = context.get("slices_by_type").set_index("type")
    assert list(by_type.index) == ["time", "cash", "non-cash", "idea", "relationship"]
    assert by_type.loc["time", "slices"] == 25500.0
    assert by_type.loc["time", "count"] == 3
    assert by_type.loc["cash", "slices"] == 20000.0
    assert by_type.loc["relationship", "slices"] == 0.0


def test_equity_block_excludes_deleted_records():
    store = PieStore()
    store.load_sample_data()
    store.soft_delete_contributor("sample-bob")

    context = BlockContext()
    context.set("portfolio", store.export_portfolio())
    EquityBlock().execute(context)

    summary = context.get("equity_summary").iloc[0]
    assert summary["total_slices"] == 40000.0
    assert summary["deleted_contributors"] == 1
    assert summary["deleted_contributions"] == 2
    assert "sample-bob" not in set(context.get("equity_table")["contributor_id"])
    assert len(context.get("contributions_table")) == 4

    context = BlockContext()
    context.set("portfolio", store.export_portfolio())
    EquityBlock(include_deleted=True).execute(context)
    statuses = context.get("contributions_table")["status"].value_counts()
    assert statuses["deleted_with_parent"] == 2
    assert statuses["active"] == 4


def test_equity_block_unknown_contributor():
    portfolio = sample_portfolio()
    portfolio.contributions[0].contributor_id = "ghost"

    context = BlockContext()
    context.set("portfolio", portfolio)
    EquityBlock().execute(context)

    row = context.get("contributions_table").set_index("id").loc["contrib-1"]
    assert row["contributor_name"] == "Unknown"


# =============================================================================
# VestingBlock Tests
# =============================================================================

def test_vesting_block(context):
    portfolio = context.get("portfolio")
    portfolio.contributors[0].vesting = VestingConfig(
        start_date=date(2024, 1, 1), cliff_months=12, vesting_months=48
    )

    VestingBlock().execute(context)

    table = context.get("vesting_table").set_index("contributor_id")
    alice = table.loc["sample-alice"]
    assert alice["state"] == "vesting"
    assert alice["vested_slices"] == 3333.0  # 20,000 / 6, rounded
    assert alice["unvested_slices"] == 16667.0
    assert alice["cliff_date"] == date(2025, 1, 1)
    assert table.loc["sample-bob", "state"] == "none"

    summary = context.get("vesting_summary").iloc[0]
    assert summary["as_of_date"] == date(2025, 7, 1)
    assert summary["total_vested_slices"] == 31833.0
    assert summary["contributors_vesting"] == 1
    assert summary["next_full_vest_date"] == date(2028, 1, 1)


# =============================================================================
# EquityValueBlock Tests
# =============================================================================

def test_full_pipeline_values(context):
    context.get("portfolio").contributors[0].vesting = VestingConfig(
        start_date=date(2024, 1, 1), cliff_months=12, vesting_months=48
    )

    BlockExecutor([EquityValueBlock(), VestingBlock(), EquityBlock()]).execute(context)

    values = context.get("equity_values").set_index("contributor_id")
    assert values.loc["sample-alice", "dollar_value"] == 400000.0
    assert values.loc["sample-bob", "dollar_value"] == 170000.0
    assert values["dollar_value"].sum() == pytest.approx(970000.0)

    assert values.loc["sample-alice", "vested_value"] == 66660.0  # 3,333 slices x $20
    assert values.loc["sample-carol", "vested_value"] == 400000.0


def test_equity_values_without_valuation(context):
    context.set("valuation", None)
    EquityBlock().execute(context)
    EquityValueBlock(include_vesting=False).execute(context)

    values = context.get("equity_values")
    assert list(values.columns) == ["contributor_id", "name", "slices", "percentage", "dollar_value"]
    assert values["dollar_value"].sum() == 0.0


def test_equity_values_empty_pie():
    context = BlockContext()
    context.set("portfolio", PortfolioDocument())
    context.set("as_of_date", date(2025, 1, 1))
    context.set("valuation", Decimal("1000"))

    BlockExecutor([EquityBlock(), VestingBlock(), EquityValueBlock()]).execute(context)

    values = context.get("equity_values")
    assert values.empty
    assert "vested_value" in values.columns
    assert context.get("equity_summary").iloc[0]["total_slices"] == 0.0


def test_equity_values_use_pie_total_with_unknown_contributor(context):
    portfolio = context.get("portfolio")
    portfolio.contributions[0].contributor_id = "ghost"
    orphaned = float(portfolio.contributions[0].slices)

    BlockExecutor([EquityBlock(), EquityValueBlock(include_vesting=False)]).execute(context)

    values = context.get("equity_values")
    for record in values.to_dict("records"):
        assert record["dollar_value"] == pytest.approx(record["percentage"] / 100 * 970000, abs=0.01)
    assert values["dollar_value"].sum() == pytest.approx((48500 - orphaned) / 48500 * 970000, abs=0.05)
