"""Unit tests for lagged long/short return aggregation."""

from __future__ import annotations

import unittest

import pandas as pd

from bablab.core.backtest.engine import aggregate_long_short_returns
from bablab.core.research.ranking import GroupAssignment
from bablab.core.utils.errors import PipelineError
from bablab.tests.helpers import month_ends, monthly_series

DATES = month_ends(3)


def _assignment(date: pd.Timestamp, low: set[str], high: set[str]) -> GroupAssignment:
    return GroupAssignment(date=date, groups=(frozenset(low), frozenset(high)))


class TestLongShortAggregation(unittest.TestCase):
    """Validate membership lag, missing members and ordering checks."""

    def setUp(self) -> None:
        self.returns = {
            "A": monthly_series([0.00, 0.02, 0.05]),
            "B": monthly_series([0.00, 0.07, -0.01]),
        }

    def test_returns_use_previous_membership(self) -> None:
        assignments = [
            _assignment(DATES[0], {"A"}, {"B"}),
            _assignment(DATES[1], {"B"}, {"A"}),
            _assignment(DATES[2], {"A"}, {"B"}),
        ]
        result = aggregate_long_short_returns(self.returns, assignments)

        self.assertEqual(list(result.returns.index), list(DATES[1:]))
        self.assertAlmostEqual(float(result.returns.iloc[0]), 0.02 - 0.07, places=12)
        self.assertAlmostEqual(float(result.returns.iloc[1]), -0.01 - 0.05, places=12)
        self.assertEqual(result.returns.name, "strategy")
        self.assertEqual(result.undefined_periods, 0)

    def test_changing_final_membership_does_not_change_history(self) -> None:
        base = [
            _assignment(DATES[0], {"A"}, {"B"}),
            _assignment(DATES[1], {"B"}, {"A"}),
            _assignment(DATES[2], {"A"}, {"B"}),
        ]
        altered = [*base[:-1], _assignment(DATES[2], {"B"}, {"A"})]

        pd.testing.assert_series_equal(
            aggregate_long_short_returns(self.returns, base).returns,
            aggregate_long_short_returns(self.returns, altered).returns,
        )

    def test_missing_member_is_excluded_from_mean(self) -> None:
        returns = {**self.returns, "C": monthly_series([0.01, None, 0.03])}
        assignments = [
            _assignment(DATES[0], {"A", "C"}, {"B"}),
            _assignment(DATES[1], {"A", "C"}, {"B"}),
        ]
        result = aggregate_long_short_returns(returns, assignments)

        self.assertAlmostEqual(float(result.returns.iloc[0]), 0.02 - 0.07, places=12)
        self.assertEqual(result.missing_member_observations, 1)

    def test_unknown_entity_counts_as_missing(self) -> None:
        assignments = [
            _assignment(DATES[0], {"A", "GHOST"}, {"B"}),
            _assignment(DATES[1], {"A"}, {"B"}),
        ]
        result = aggregate_long_short_returns(self.returns, assignments)

        self.assertAlmostEqual(float(result.returns.iloc[0]), 0.02 - 0.07, places=12)
        self.assertEqual(result.missing_member_observations, 1)

    def test_empty_side_makes_period_undefined(self) -> None:
        returns = {**self.returns, "C": monthly_series([0.01, None, 0.03])}
        assignments = [
            _assignment(DATES[0], {"A"}, {"C"}),
            _assignment(DATES[1], {"A"}, {"C"}),
            _assignment(DATES[2], {"A"}, {"C"}),
        ]
        result = aggregate_long_short_returns(returns, assignments)

        self.assertTrue(pd.isna(result.returns.iloc[0]))
        self.assertAlmostEqual(float(result.returns.iloc[1]), 0.05 - 0.03, places=12)
        self.assertEqual(result.undefined_periods, 1)
        self.assertEqual(result.defined_periods, 1)

    def test_leverage_scales_spread(self) -> None:
        assignments = [_assignment(DATES[0], {"A"}, {"B"}), _assignment(DATES[1], {"A"}, {"B"})]
        result = aggregate_long_short_returns(self.returns, assignments, leverage=2.0)
        self.assertAlmostEqual(float(result.returns.iloc[0]), 2.0 * (0.02 - 0.07), places=12)

    def test_single_assignment_yields_no_periods(self) -> None:
        result = aggregate_long_short_returns(self.returns, [_assignment(DATES[0], {"A"}, {"B"})])
        self.assertTrue(result.returns.empty)

    def test_non_increasing_dates_raise(self) -> None:
        assignments = [_assignment(DATES[1], {"A"}, {"B"}), _assignment(DATES[1], {"B"}, {"A"})]
        with self.assertRaises(PipelineError):
            aggregate_long_short_returns(self.returns, assignments)

    def test_undated_assignment_raises(self) -> None:
        assignments = [GroupAssignment(date=None, groups=(frozenset({"A"}), frozenset({"B"})))]
        with self.assertRaises(PipelineError):
            aggregate_long_short_returns(self.returns, assignments)

    def test_non_positive_leverage_raises(self) -> None:
        with self.assertRaises(PipelineError):
            aggregate_long_short_returns(self.returns, [], leverage=0.0)


if __name__ == "__main__":
    unittest.main()
