"""Block framework: small computation steps wired together by context keys.

- Block: declares the context keys it reads and writes, computes in execute()
- BlockContext: key -> value bag shared by the blocks of one run
- topological_sort: orders blocks so producers run before consumers
- BlockExecutor: sorts once, then runs blocks and checks their contracts
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Shared inputs and outputs for one block run.

    Example:
        context = BlockContext()
        context.set("portfolio", store.export_portfolio())
        EquityBlock().execute(context)
        context.get("equity_table")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Value stored under ``key``.

        Raises:
            KeyError: key was never set (message lists what is available)
        """
        try:
            return self._data[key]
        except KeyError:
            raise KeyError(f"'{key}' is not in the block context (have: {sorted(self._data)})") from None

    def get_optional(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data)


# =============================================================================
# Block Base Class
# =============================================================================

class Block(ABC):
    """One computation step.

    Subclasses list their input and output context keys so an executor can
    order them, then read inputs and write outputs in ``execute``. Outputs
    are pandas DataFrames unless stated otherwise.

    Subclass example:
        class TotalSlicesBlock(Block):
            def inputs(self) -> List[str]:
                return ["equity_table"]

            def outputs(self) -> List[str]:
                return ["total_slices"]

            def execute(self, context: BlockContext) -> None:
                table = context.get("equity_table")
                context.set("total_slices", float(table["slices"].sum()))
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from ``context`` and write every declared output."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Blocks depend on each other's outputs in a cycle."""
    pass


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Order blocks so every block runs after the blocks producing its inputs.

    Inputs nobody produces are expected in the initial context. Blocks with
    no ordering constraint between them keep their relative input order.

    Raises:
        ValueError: two blocks write the same key
        CircularDependencyError: the dependency graph has a cycle

    Example:
        topological_sort([EquityValueBlock(), VestingBlock(), EquityBlock()])
        -> [EquityBlock, VestingBlock, EquityValueBlock]
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for key in block.outputs():
            if key in producers:
                raise ValueError(f"'{key}' is written by both {producers[key]} and {block}")
            producers[key] = block

    waiting_on: Dict[Block, int] = {block: 0 for block in blocks}
    consumers: Dict[Block, List[Block]] = {block: [] for block in blocks}
    for block in blocks:
        for key in block.inputs():
            producer = producers.get(key)
            if producer is not None:
                consumers[producer].append(block)
                waiting_on[block] += 1

    ready: Deque[Block] = deque(block for block in blocks if waiting_on[block] == 0)
    ordered: List[Block] = []
    while ready:
        block = ready.popleft()
        ordered.append(block)
        for consumer in consumers[block]:
            waiting_on[consumer] -= 1
            if waiting_on[consumer] == 0:
                ready.append(consumer)

    if len(ordered) != len(blocks):
        stuck = [block for block in blocks if waiting_on[block] > 0]
        raise CircularDependencyError(f"Circular dependency among blocks: {stuck}")

    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Runs a set of blocks in dependency order.

    Example:
        executor = BlockExecutor([EquityValueBlock(), VestingBlock(), EquityBlock()])
        context = BlockContext()
        context.set("portfolio", portfolio)
        context.set("as_of_date", date(2025, 6, 1))
        context.set("valuation", Decimal("500000"))
        executor.execute(context)
        context.get("equity_values")
    """

    def __init__(self, blocks: List[Block]):
        self.blocks = blocks
        self._order: Optional[List[Block]] = None

    @property
    def order(self) -> List[Block]:
        if self._order is None:
            self._order = topological_sort(self.blocks)
        return self._order

    def execute(self, context: BlockContext) -> BlockContext:
        """Run every block and return the same context.

        Raises:
            KeyError: a block's input is missing when it is about to run
            ValueError: a block did not write one of its declared outputs
            CircularDependencyError: blocks cannot be ordered
        """
        for block in self.order:
            missing = [key for key in block.inputs() if not context.has(key)]
            if missing:
                raise KeyError(f"{block} is missing inputs {missing} (have: {context.keys()})")

            block.execute(context)

            unwritten = [key for key in block.outputs() if not context.has(key)]
            if unwritten:
                raise ValueError(f"{block} did not write declared outputs {unwritten}")

        return context
