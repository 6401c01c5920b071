"""Unit tests for date-indexed series helpers."""

from __future__ import annotations

import math
import unittest

import numpy as np
import pandas as pd

from bablab.core.timeseries import (
    align,
    cumulative_wealth,
    drop_undefined,
    series_from_values,
    to_excess_returns,
    to_float_series,
)
from bablab.tests.helpers import month_ends, monthly_series


class TestTimeSeries(unittest.TestCase):
    """Validate normalization, alignment and return transforms."""

    def test_non_finite_values_become_undefined(self) -> None:
        raw = pd.Series([0.01, np.inf, np.nan, -np.inf], index=month_ends(4))
        normalized = to_float_series(raw)

        self.assertEqual(str(normalized.dtype), "Float64")
        self.assertEqual(normalized.iloc[0], 0.01)
        self.assertEqual(int(normalized.isna().sum()), 3)

    def test_duplicates_keep_last_and_dates_are_sorted(self) -> None:
        index = pd.DatetimeIndex(["2020-02-29", "2020-01-31", "2020-02-29"])
        normalized = to_float_series(pd.Series([1.0, 2.0, 3.0], index=index))

        self.assertEqual(list(normalized.index), list(pd.DatetimeIndex(["2020-01-31", "2020-02-29"])))
        self.assertEqual(normalized.tolist(), [2.0, 3.0])

    def test_align_is_inner_join(self) -> None:
        left = monthly_series([0.1, 0.2, 0.3, 0.4])
        right = monthly_series([1.0, 2.0, 3.0], start="2018-02-28")
        aligned = align(left, right)

        self.assertEqual(len(aligned), 3)
        self.assertEqual(aligned.index[0], pd.Timestamp("2018-02-28"))
        self.assertEqual(aligned["left"].tolist(), [0.2, 0.3, 0.4])
        self.assertEqual(aligned["right"].tolist(), [1.0, 2.0, 3.0])

    def test_drop_undefined_keeps_zeros(self) -> None:
        series = series_from_values([0.0, None, 0.5], month_ends(3))
        self.assertEqual(drop_undefined(series).tolist(), [0.0, 0.5])

    def test_excess_returns_use_compounded_period_rate(self) -> None:
        returns = monthly_series([0.01, None])
        excess = to_excess_returns(returns, annual_rate=0.12, periods_per_year=12)
        period_rate = 1.12 ** (1.0 / 12.0) - 1.0

        self.assertAlmostEqual(float(excess.iloc[0]), 0.01 - period_rate, places=12)
        self.assertTrue(pd.isna(excess.iloc[1]))

    def test_cumulative_wealth_round_trip(self) -> None:
        returns = monthly_series([0.10, -0.20, 0.05, 0.0])
        wealth = cumulative_wealth(returns)
        previous = wealth.shift(1).fillna(1.0)
        recovered = wealth / previous - 1.0

        for expected, actual in zip(returns.tolist(), recovered.tolist()):
            self.assertTrue(math.isclose(expected, actual, abs_tol=1e-12))
        self.assertAlmostEqual(float(wealth.iloc[-1]), 1.1 * 0.8 * 1.05, places=12)


if __name__ == "__main__":
    unittest.main()
