"""Abstract interfaces for market data providers and price-to-return conversion."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
import pandas as pd


class DataProvider(ABC):
    """Abstract interface for OHLCV data providers."""

    @abstractmethod
    def fetch_ohlcv(self, symbol: str, start: str, end: str) -> pd.DataFrame:
        """
        Fetch daily OHLCV data for a symbol over an inclusive date range.

        Args:
            symbol: Provider symbol identifier.
            start: Inclusive start date in ``YYYY-MM-DD`` format.
            end: Inclusive end date in ``YYYY-MM-DD`` format.

        Returns:
            A dataframe with UTC datetime index named ``date`` and columns:
            ``open``, ``high``, ``low``, ``close``, ``volume``.
        """

    def fetch_monthly_returns(self, symbol: str, start: str, end: str) -> pd.Series:
        """Fetch daily prices and convert closes to month-end log returns."""
        return monthly_log_returns(self.fetch_ohlcv(symbol, start, end)).rename(symbol)


def monthly_log_returns(frame: pd.DataFrame, column: str = "close") -> pd.Series:
    """
    Convert daily prices into calendar month-end logarithmic returns.

    Each month uses its last available price. The first month is measured from
    the first available price, so a partial first month still yields a return.

    Args:
        frame: Daily OHLCV dataframe indexed by datetime.
        column: Price column to use.

    Returns:
        Monthly log-return series indexed by month-end timestamps.
    """
    if frame.empty or column not in frame.columns:
        return pd.Series(dtype="float64", index=pd.DatetimeIndex([], name="date"))

    prices = pd.to_numeric(frame[column], errors="coerce").dropna().sort_index()
    prices = prices.loc[prices > 0.0]
    if prices.empty:
        return pd.Series(dtype="float64", index=pd.DatetimeIndex([], name="date"))

    month_end = prices.resample("ME").last().dropna()
    previous = month_end.shift(1)
    previous.iloc[0] = float(prices.iloc[0])
    returns = np.log(month_end / previous)
    returns.index.name = "date"
    return returns.astype("float64")
