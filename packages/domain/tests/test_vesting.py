"""Tests for cliff + linear vesting.

Tests cover:
- State transitions (none, preCliff, vesting, fullyVested)
- Whole-month interpolation after the cliff
- Monotonic growth of the vested share
- Projections and the cross-contributor summary
"""

import pytest
from decimal import Decimal
from datetime import date

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from slicingpie_domain.schemas import Contributor, VestingConfig
from slicingpie_domain.vesting import (
    calculate_months_difference,
    calculate_projected_vesting,
    calculate_vesting_status,
    get_cliff_date,
    get_full_vest_date,
    get_vested_equity_data,
    get_vesting_summary,
    vesting_projection,
)

STANDARD = VestingConfig(start_date=date(2024, 1, 1), cliff_months=12, vesting_months=48)
TOTAL = Decimal("12000")


# =============================================================================
# Date Helpers
# =============================================================================

class TestDateHelpers:

    def test_month_counts_once_day_is_reached(self):
        assert calculate_months_difference(date(2024, 1, 15), date(2024, 2, 14)) == 0
        assert calculate_months_difference(date(2024, 1, 15), date(2024, 2, 15)) == 1

    def test_months_across_years(self):
        assert calculate_months_difference(date(2024, 1, 1), date(2025, 6, 1)) == 17
        assert calculate_months_difference(date(2024, 1, 1), date(2025, 7, 1)) == 18

    def test_negative_difference_rounds_to_the_past(self):
        assert calculate_months_difference(date(2024, 2, 1), date(2024, 1, 1)) == -1
        assert calculate_months_difference(date(2024, 2, 15), date(2024, 1, 1)) == -2

    def test_cliff_and_full_vest_dates(self):
        assert get_cliff_date(STANDARD) == date(2025, 1, 1)
        assert get_full_vest_date(STANDARD) == date(2028, 1, 1)

    def test_zero_cliff_has_no_cliff_date(self):
        config = VestingConfig(start_date=date(2024, 1, 1), cliff_months=0, vesting_months=12)
        assert get_cliff_date(config) is None


# =============================================================================
# Vesting Status
# =============================================================================

class TestVestingStatus:

    def test_no_vesting_is_fully_vested(self):
        status = calculate_vesting_status(None, TOTAL, date(2024, 6, 1))
        assert status.state == "none"
        assert status.percent_vested == Decimal("100")
        assert status.vested_slices == TOTAL
        assert status.unvested_slices == Decimal("0")

    def test_pre_cliff(self):
        status = calculate_vesting_status(STANDARD, TOTAL, date(2024, 6, 1))
        assert status.state == "preCliff"
        assert status.vested_slices == Decimal("0")
        assert status.unvested_slices == TOTAL
        assert status.months_until_cliff == 7
        assert status.cliff_date == date(2025, 1, 1)

    def test_before_start_is_pre_cliff(self):
        status = calculate_vesting_status(STANDARD, TOTAL, date(2023, 6, 1))
        assert status.state == "preCliff"
        assert status.percent_vested == Decimal("0")

    def test_cliff_day_starts_vesting_at_zero(self):
        status = calculate_vesting_status(STANDARD, TOTAL, date(2025, 1, 1))
        assert status.state == "vesting"
        assert status.vested_slices == Decimal("0")

    def test_eighteen_months_in(self):
        # (18 - 12) / (48 - 12) = 1/6
        status = calculate_vesting_status(STANDARD, TOTAL, date(2025, 7, 1))
        assert status.state == "vesting"
        assert status.vested_slices == Decimal("2000")
        assert status.unvested_slices == Decimal("10000")
        assert status.percent_vested.quantize(Decimal("0.01")) == Decimal("16.67")
        assert status.months_until_full_vest == 30

    def test_partial_month_rounds_down_and_slices_round_half_up(self):
        # 2025-06-01 is 17 whole months in: 5/36 of 12,000 = 1,666.67
        status = calculate_vesting_status(STANDARD, TOTAL, date(2025, 6, 1))
        assert status.state == "vesting"
        assert status.vested_slices == Decimal("1667")
        assert status.vested_slices + status.unvested_slices == TOTAL

    def test_fully_vested(self):
        status = calculate_vesting_status(STANDARD, TOTAL, date(2028, 1, 1))
        assert status.state == "fullyVested"
        assert status.percent_vested == Decimal("100")
        assert status.vested_slices == TOTAL

    def test_zero_cliff_vests_from_start(self):
        config = VestingConfig(start_date=date(2024, 1, 1), cliff_months=0, vesting_months=12)
        assert calculate_vesting_status(config, TOTAL, date(2024, 1, 1)).state == "vesting"
        status = calculate_vesting_status(config, TOTAL, date(2024, 4, 1))
        assert status.percent_vested == Decimal("25")
        assert status.vested_slices == Decimal("3000")

    def test_zero_slices(self):
        status = calculate_vesting_status(STANDARD, Decimal("0"), date(2026, 1, 1))
        assert status.state == "vesting"
        assert status.vested_slices == Decimal("0")

    def test_percent_vested_is_non_decreasing(self):
        previous = Decimal("-1")
        for months in range(-6, 60):
            as_of = date(2024, 1, 1) + relativedelta(months=months, days=months % 5)
            status = calculate_vesting_status(STANDARD, TOTAL, as_of)
            assert status.percent_vested >= previous
            if status.state == "preCliff":
                assert status.vested_slices == Decimal("0")
            if status.state == "fullyVested":
                assert status.percent_vested == Decimal("100")
            previous = status.percent_vested

    def test_projection_is_a_future_status(self):
        target = date(2026, 1, 1)
        assert calculate_projected_vesting(STANDARD, TOTAL, target) == \
            calculate_vesting_status(STANDARD, TOTAL, target)


class TestVestingConfigValidation:

    def test_vesting_must_outlast_cliff(self):
        with pytest.raises(ValidationError, match="must be greater than"):
            VestingConfig(start_date=date(2024, 1, 1), cliff_months=12, vesting_months=12)

    def test_negative_cliff_rejected(self):
        with pytest.raises(ValidationError):
            VestingConfig(start_date=date(2024, 1, 1), cliff_months=-1)


# =============================================================================
# Projections and Summary
# =============================================================================

class TestProjection:

    def test_monthly_points_are_inclusive(self):
        points = vesting_projection(STANDARD, TOTAL, date(2025, 1, 1), date(2025, 3, 1))
        assert [p.as_of_date for p in points] == [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1)]
        assert [p.state for p in points] == ["vesting"] * 3

    def test_step_months(self):
        points = vesting_projection(STANDARD, TOTAL, date(2024, 1, 1), date(2028, 1, 1), step_months=12)
        assert len(points) == 5
        assert points[-1].state == "fullyVested"

    def test_step_must_be_positive(self):
        with pytest.raises(ValueError, match="step_months must be positive"):
            vesting_projection(STANDARD, TOTAL, date(2024, 1, 1), date(2025, 1, 1), step_months=0)


class TestVestingSummary:

    @pytest.fixture
    def contributors(self):
        return [
            Contributor(id="a", name="Alice", vesting=STANDARD),
            Contributor(
                id="b",
                name="Bob",
                vesting=VestingConfig(start_date=date(2025, 1, 1), cliff_months=12, vesting_months=48),
            ),
            Contributor(id="c", name="Carol"),
        ]

    def test_summary_totals_and_counts(self, contributors):
        slices = {"a": Decimal("12000"), "b": Decimal("6000"), "c": Decimal("2000")}
        summary = get_vesting_summary(contributors, slices, date(2025, 7, 1))

        assert summary.total_slices == Decimal("20000")
        assert summary.total_vested_slices == Decimal("4000")  # 2,000 (Alice) + 2,000 (Carol)
        assert summary.overall_percent_vested == Decimal("20.00")
        assert summary.contributors_vesting == 1
        assert summary.contributors_pre_cliff == 1
        assert summary.contributors_fully_vested == 1
        assert summary.next_cliff_date == date(2026, 1, 1)
        assert summary.next_full_vest_date == date(2028, 1, 1)

    def test_summary_without_slices_is_fully_vested(self, contributors):
        summary = get_vesting_summary(contributors, {}, date(2025, 7, 1))
        assert summary.overall_percent_vested == Decimal("100")

    def test_vested_equity_rows(self, contributors):
        rows = get_vested_equity_data(contributors, {"a": Decimal("12000")}, date(2025, 7, 1))
        assert [r.contributor_name for r in rows] == ["Alice", "Bob", "Carol"]
        assert rows[0].vested_slices == Decimal("2000")
        assert rows[1].total_slices == Decimal("0")
        assert rows[2].vesting_state == "none"
