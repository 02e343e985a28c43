"""Tests for slice calculation and equity aggregation.

Tests cover:
- Multipliers and slice formulas per contribution type
- Equity percentages (sum to 100, zero total, unknown contributors)
- Filtering, sorting and formatting helpers
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from slicingpie_domain.schemas import Contribution, Contributor
from slicingpie_domain.slicing import (
    MULTIPLIERS,
    calculate_all_equity,
    calculate_equity_percentage,
    calculate_slices,
    filter_contributions,
    format_contribution_value,
    format_currency,
    format_equity_percentage,
    format_slices,
    get_contributor_total_slices,
    get_most_recent_contribution,
    get_multiplier,
    get_total_slices,
    preview_slices,
    sort_contributions,
)


def make_contribution(contributor_id, contribution_type, slices, on=date(2024, 1, 1), **kwargs):
    return Contribution(
        contributor_id=contributor_id,
        type=contribution_type,
        value=kwargs.pop("value", Decimal("1")),
        date=on,
        multiplier=MULTIPLIERS[contribution_type],
        slices=Decimal(slices),
        **kwargs,
    )


# =============================================================================
# Slice Calculator
# =============================================================================

class TestSliceCalculator:
    """Fixed multipliers: time 2x rate, cash 4x, non-cash 2x, idea/relationship 1x."""

    def test_multipliers(self):
        assert get_multiplier("time") == Decimal("2")
        assert get_multiplier("cash") == Decimal("4")
        assert get_multiplier("non-cash") == Decimal("2")
        assert get_multiplier("idea") == Decimal("1")
        assert get_multiplier("relationship") == Decimal("1")

    def test_time_uses_hourly_rate(self):
        # 10 hours at $100/hr -> 2,000 slices
        assert calculate_slices("time", Decimal("10"), Decimal("100")) == Decimal("2000")

    def test_cash(self):
        assert calculate_slices("cash", Decimal("1000")) == Decimal("4000")

    def test_idea(self):
        assert calculate_slices("idea", Decimal("2000")) == Decimal("2000")

    def test_non_cash_and_relationship(self):
        assert calculate_slices("non-cash", Decimal("500")) == Decimal("1000")
        assert calculate_slices("relationship", Decimal("750")) == Decimal("750")

    def test_time_without_rate_is_zero(self):
        assert calculate_slices("time", Decimal("10")) == Decimal("0")
        assert calculate_slices("time", Decimal("10"), Decimal("0")) == Decimal("0")

    def test_hourly_rate_ignored_for_other_types(self):
        assert calculate_slices("cash", Decimal("100"), Decimal("250")) == Decimal("400")

    def test_float_input_has_no_binary_noise(self):
        assert calculate_slices("cash", 0.1) == Decimal("0.4")

    def test_preview_slices(self):
        alice = Contributor(name="Alice", hourly_rate=Decimal("150"))
        slices, multiplier = preview_slices("time", Decimal("40"), alice)
        assert slices == Decimal("12000")
        assert multiplier == Decimal("2")

    def test_preview_without_contributor(self):
        assert preview_slices("time", Decimal("40")) == (Decimal("0"), Decimal("2"))


# =============================================================================
# Equity Aggregator
# =============================================================================

class TestEquityAggregator:

    def test_percentages_sum_to_100(self):
        people = [Contributor(id=f"p{i}", name=f"P{i}") for i in range(3)]
        contributions = [
            make_contribution("p0", "cash", "1000"),
            make_contribution("p1", "time", "333"),
            make_contribution("p2", "idea", "7"),
            make_contribution("p2", "relationship", "1"),
        ]
        equity = calculate_all_equity(people, contributions)
        total = sum(e.equity_percentage for e in equity)
        assert abs(total - Decimal("100")) < Decimal("1e-6")

    def test_zero_total_gives_zero_everywhere(self):
        people = [Contributor(id="a", name="A"), Contributor(id="b", name="B")]
        equity = calculate_all_equity(people, [])
        assert [e.equity_percentage for e in equity] == [Decimal("0"), Decimal("0")]
        assert [e.total_slices for e in equity] == [Decimal("0"), Decimal("0")]

    def test_contributor_without_contributions(self):
        people = [Contributor(id="a", name="A"), Contributor(id="b", name="B")]
        equity = calculate_all_equity(people, [make_contribution("a", "cash", "400")])
        assert equity[0].equity_percentage == Decimal("100")
        assert equity[1].equity_percentage == Decimal("0")

    def test_unknown_contributor_counts_towards_total(self):
        people = [Contributor(id="a", name="A")]
        contributions = [
            make_contribution("a", "cash", "300"),
            make_contribution("ghost", "cash", "100"),
        ]
        equity = calculate_all_equity(people, contributions)
        assert get_total_slices(contributions) == Decimal("400")
        assert equity[0].equity_percentage == Decimal("75")

    def test_contributor_total_slices(self):
        contributions = [
            make_contribution("a", "cash", "300"),
            make_contribution("a", "idea", "50"),
            make_contribution("b", "cash", "100"),
        ]
        assert get_contributor_total_slices("a", contributions) == Decimal("350")

    def test_equity_percentage(self):
        assert calculate_equity_percentage(Decimal("1"), Decimal("4")) == Decimal("25")
        assert calculate_equity_percentage(Decimal("5"), Decimal("0")) == Decimal("0")

    def test_equity_entry_exposes_contributor(self):
        alice = Contributor(id="a", name="Alice")
        entry = calculate_all_equity([alice], [])[0]
        assert entry.id == "a"
        assert entry.name == "Alice"


# =============================================================================
# Filtering and Sorting
# =============================================================================

class TestFilteringAndSorting:

    @pytest.fixture
    def contributions(self):
        return [
            make_contribution("a", "cash", "400", on=date(2024, 1, 10)),
            make_contribution("a", "time", "2000", on=date(2024, 2, 10)),
            make_contribution("b", "cash", "100", on=date(2024, 3, 10)),
        ]

    def test_filter_by_contributor(self, contributions):
        assert len(filter_contributions(contributions, contributor_id="a")) == 2

    def test_filter_by_type(self, contributions):
        result = filter_contributions(contributions, contribution_type="cash")
        assert {c.contributor_id for c in result} == {"a", "b"}

    def test_filter_by_inclusive_date_range(self, contributions):
        result = filter_contributions(
            contributions, date_from=date(2024, 2, 10), date_to=date(2024, 3, 10)
        )
        assert [c.slices for c in result] == [Decimal("2000"), Decimal("100")]

    def test_sort_newest_first_by_default(self, contributions):
        result = sort_contributions(contributions)
        assert [c.date for c in result] == [date(2024, 3, 10), date(2024, 2, 10), date(2024, 1, 10)]

    def test_sort_by_slices_ascending(self, contributions):
        result = sort_contributions(contributions, field="slices", ascending=True)
        assert [c.slices for c in result] == [Decimal("100"), Decimal("400"), Decimal("2000")]

    def test_most_recent_contribution(self):
        older = make_contribution("a", "cash", "1", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc))
        newer = make_contribution("a", "cash", "1", created_at=datetime(2024, 6, 1, tzinfo=timezone.utc))
        assert get_most_recent_contribution([newer, older]) is newer
        assert get_most_recent_contribution([]) is None


# =============================================================================
# Formatting
# =============================================================================

def test_format_slices():
    assert format_slices(Decimal("12000")) == "12,000"


def test_format_equity_percentage():
    assert format_equity_percentage(Decimal("41.2371")) == "41.2%"


def test_format_currency():
    assert format_currency(Decimal("1234.56")) == "$1,235"
    assert format_currency(Decimal("-50")) == "-$50"


def test_format_contribution_value():
    assert format_contribution_value("time", Decimal("10")) == "10 hrs"
    assert format_contribution_value("time", Decimal("1")) == "1 hr"
    assert format_contribution_value("cash", Decimal("5000")) == "$5,000"
