"""Unit tests for monthly return conversion and universe acquisition."""

from __future__ import annotations

import math
import unittest

import pandas as pd

from bablab.core.data.base import DataProvider, monthly_log_returns
from bablab.core.data.universe import load_universe
from bablab.core.utils.errors import AcquisitionError, DataFetchError, DataValidationError
from bablab.tests.helpers import make_price_frame


class _ScriptedProvider(DataProvider):
    """Provider returning fixed frames or raising scripted errors per symbol."""

    def __init__(self, outcomes: dict[str, object]) -> None:
        self._outcomes = outcomes
        self.requested: list[str] = []

    def fetch_ohlcv(self, symbol: str, start: str, end: str) -> pd.DataFrame:
        _ = (start, end)
        self.requested.append(symbol)
        outcome = self._outcomes[symbol]
        if isinstance(outcome, Exception):
            raise outcome
        assert isinstance(outcome, pd.DataFrame)
        return outcome


def _rising_prices(days: int = 90, start: str = "2020-01-01") -> pd.DataFrame:
    return make_price_frame([100.0 + day for day in range(days)], start=start)


class TestMonthlyLogReturns(unittest.TestCase):
    """Validate month-end log return conversion."""

    def test_month_end_log_returns(self) -> None:
        frame = make_price_frame([100.0] * 31 + [110.0] * 29 + [99.0] * 31)
        returns = monthly_log_returns(frame)

        self.assertEqual(len(returns), 3)
        self.assertEqual(returns.index.name, "date")
        self.assertEqual(returns.index[0], pd.Timestamp("2020-01-31", tz="UTC"))
        self.assertAlmostEqual(returns.iloc[0], 0.0, places=12)
        self.assertAlmostEqual(returns.iloc[1], math.log(110.0 / 100.0), places=12)
        self.assertAlmostEqual(returns.iloc[2], math.log(99.0 / 110.0), places=12)

    def test_first_month_measured_from_first_price(self) -> None:
        frame = make_price_frame([50.0, 55.0], start="2020-01-30")
        returns = monthly_log_returns(frame)

        self.assertEqual(len(returns), 1)
        self.assertAlmostEqual(returns.iloc[0], math.log(55.0 / 50.0), places=12)

    def test_empty_or_missing_column_returns_empty(self) -> None:
        self.assertTrue(monthly_log_returns(pd.DataFrame()).empty)
        frame = make_price_frame([1.0, 2.0]).drop(columns=["close"])
        self.assertTrue(monthly_log_returns(frame).empty)


class TestLoadUniverse(unittest.TestCase):
    """Validate failure isolation and fatal acquisition errors."""

    def test_partial_failures_are_absorbed(self) -> None:
        provider = _ScriptedProvider(
            {
                "SPY": _rising_prices(),
                "AAPL": _rising_prices(),
                "DOWN": DataFetchError("timeout"),
                "BAD": DataValidationError("no closes"),
                "EMPTY": make_price_frame([]),
                "KO": _rising_prices(),
            }
        )
        with self.assertLogs("bablab.core.data.universe", level="WARNING"):
            universe = load_universe(
                ["AAPL", "DOWN", "BAD", "EMPTY", "KO"], "SPY", "2020-01-01", "2020-03-31", provider
            )

        self.assertEqual(universe.symbols, ["AAPL", "KO"])
        self.assertEqual(universe.failed_symbols, ["DOWN", "BAD", "EMPTY"])
        self.assertEqual(universe.returns_by_symbol["AAPL"].name, "AAPL")
        self.assertEqual(len(universe.benchmark_returns), 3)

    def test_max_symbols_caps_requests(self) -> None:
        provider = _ScriptedProvider({symbol: _rising_prices() for symbol in ("SPY", "A", "B", "C")})
        universe = load_universe(
            ["A", "B", "C"], "SPY", "2020-01-01", "2020-03-31", provider, max_symbols=2
        )

        self.assertEqual(universe.symbols, ["A", "B"])
        self.assertNotIn("C", provider.requested)

    def test_benchmark_failure_is_fatal(self) -> None:
        provider = _ScriptedProvider({"SPY": DataFetchError("down"), "A": _rising_prices()})
        with self.assertRaises(AcquisitionError):
            load_universe(["A"], "SPY", "2020-01-01", "2020-03-31", provider)

    def test_empty_benchmark_is_fatal(self) -> None:
        provider = _ScriptedProvider({"SPY": make_price_frame([]), "A": _rising_prices()})
        with self.assertRaises(AcquisitionError):
            load_universe(["A"], "SPY", "2020-01-01", "2020-03-31", provider)

    def test_all_symbols_failing_is_fatal(self) -> None:
        provider = _ScriptedProvider({"SPY": _rising_prices(), "A": DataFetchError("down")})
        with self.assertRaises(AcquisitionError):
            load_universe(["A"], "SPY", "2020-01-01", "2020-03-31", provider)


if __name__ == "__main__":
    unittest.main()
