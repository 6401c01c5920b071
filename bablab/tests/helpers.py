"""Test helpers for deterministic return series and price frames."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np
import pandas as pd
import yaml


def month_ends(periods: int, start: str = "2018-01-31") -> pd.DatetimeIndex:
    """Build a month-end date index."""
    return pd.date_range(start, periods=periods, freq="ME")


def monthly_series(values: Sequence[float | None], start: str = "2018-01-31") -> pd.Series:
    """Build a ``Float64`` month-end series where ``None`` is undefined."""
    return pd.Series(pd.array(list(values), dtype="Float64"), index=month_ends(len(values), start))


def make_price_frame(close_values: Sequence[float], start: str = "2020-01-01") -> pd.DataFrame:
    """Build deterministic daily OHLCV dataframe from close values."""
    index = pd.date_range(start, periods=len(close_values), freq="D", tz="UTC", name="date")
    close = pd.Series(close_values, index=index, dtype=float)
    return pd.DataFrame(
        {
            "open": close,
            "high": close,
            "low": close,
            "close": close,
            "volume": 1_000.0,
        },
        index=index,
    )


def synthetic_market(
    scales: Sequence[float],
    periods: int = 48,
    seed: int = 7,
    noise: float = 0.002,
) -> tuple[dict[str, pd.Series], pd.Series]:
    """
    Generate entities whose returns are ``scale * market + noise``.

    Returns:
        Mapping ``E1..En`` to monthly returns, and the market return series.
    """
    rng = np.random.default_rng(seed)
    index = month_ends(periods)
    market = pd.Series(rng.normal(0.008, 0.04, size=periods), index=index, name="market")
    returns_by_entity = {
        f"E{position}": pd.Series(
            scale * market.to_numpy() + rng.normal(0.0, noise, size=periods),
            index=index,
            name=f"E{position}",
        )
        for position, scale in enumerate(scales, start=1)
    }
    return returns_by_entity, market


SYMBOL_SCALES: dict[str, float] = {
    "SPY": 1.0,
    "LOW1": 0.3,
    "LOW2": 0.5,
    "MID1": 0.9,
    "MID2": 1.1,
    "HIGH1": 1.6,
    "HIGH2": 1.9,
}


def mock_fetch_ohlcv(self: object, symbol: str, start: str, end: str) -> pd.DataFrame:
    """Deterministic daily prices driven by one shared market factor."""
    _ = self
    index = pd.date_range(start=start, end=end, freq="D", tz="UTC", name="date")
    if symbol not in SYMBOL_SCALES or index.empty:
        empty_index = pd.DatetimeIndex([], tz="UTC", name="date")
        return pd.DataFrame(columns=["open", "high", "low", "close", "volume"], index=empty_index)

    market = np.random.default_rng(17).normal(0.0003, 0.01, size=len(index))
    idiosyncratic = np.random.default_rng(sum(map(ord, symbol))).normal(0.0, 0.002, len(index))
    log_prices = np.cumsum(SYMBOL_SCALES[symbol] * market + idiosyncratic)
    close = pd.Series(100.0 * np.exp(log_prices), index=index, dtype=float)
    return pd.DataFrame(
        {
            "open": close,
            "high": close,
            "low": close,
            "close": close,
            "volume": 1_000.0,
        },
        index=index,
    )


def write_study_config(root: Path, symbols: Sequence[str], **overrides: object) -> Path:
    """Write a small study config under ``root`` and return its path."""
    config = {
        "data": {
            "provider": "eodhd",
            "symbols": list(symbols),
            "benchmark": "SPY",
            "start": "2018-01-01",
            "end": "2019-12-31",
        },
        "strategy": {"beta_window": 6, "n_groups": 3, "risk_free_rate": 0.02},
        "evaluation": {"min_regression_observations": 6},
        "output": {"artifacts_dir": str(root / "artifacts")},
    }
    for section, values in overrides.items():
        assert isinstance(values, dict)
        config.setdefault(section, {}).update(values)  # type: ignore[union-attr]
    config_path = root / "config.yaml"
    config_path.write_text(yaml.safe_dump(config, sort_keys=True), encoding="utf-8")
    return config_path
