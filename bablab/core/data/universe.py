"""Universe acquisition with per-symbol failure isolation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from bablab.core.data.base import DataProvider
from bablab.core.utils.errors import (
    AcquisitionError,
    DataFetchError,
    DataValidationError,
)
from bablab.core.utils.logging import get_logger

_LOGGER_NAME = "bablab.core.data.universe"


@dataclass(frozen=True)
class UniverseData:
    """Materialized monthly returns for a universe and its benchmark."""

    returns_by_symbol: dict[str, pd.Series]
    benchmark_returns: pd.Series
    symbols: list[str]
    failed_symbols: list[str]


def load_universe(
    symbols: Sequence[str],
    benchmark: str,
    start: str,
    end: str,
    provider: DataProvider,
    max_symbols: int | None = None,
) -> UniverseData:
    """
    Fetch monthly returns for every symbol and the benchmark.

    A failure for one symbol is logged and skipped. Missing benchmark data or an
    empty resolved universe is fatal.

    Args:
        symbols: Requested symbols in priority order.
        benchmark: Benchmark symbol.
        start: Inclusive start date in ``YYYY-MM-DD`` format.
        end: Inclusive end date in ``YYYY-MM-DD`` format.
        provider: Market data provider.
        max_symbols: Optional cap on the number of requested symbols.

    Returns:
        Universe data with resolved and failed symbol lists.

    Raises:
        AcquisitionError: If the benchmark or every symbol fails.
    """
    logger = get_logger(_LOGGER_NAME)
    requested = list(symbols)[:max_symbols] if max_symbols is not None else list(symbols)
    logger.info(
        "Downloading data for %d symbols from %s to %s", len(requested), start, end
    )

    try:
        benchmark_returns = provider.fetch_monthly_returns(benchmark, start, end)
    except (DataFetchError, DataValidationError) as exc:
        raise AcquisitionError(f"Failed to load benchmark '{benchmark}': {exc}") from exc
    if benchmark_returns.empty:
        raise AcquisitionError(f"Fetched no data for benchmark '{benchmark}'.")

    returns_by_symbol: dict[str, pd.Series] = {}
    failed: list[str] = []
    for symbol in requested:
        try:
            returns = provider.fetch_monthly_returns(symbol, start, end)
        except (DataFetchError, DataValidationError) as exc:
            logger.warning("Skipping %s: %s", symbol, exc)
            failed.append(symbol)
            continue
        if returns.empty:
            logger.warning("Skipping %s: no data", symbol)
            failed.append(symbol)
            continue
        returns_by_symbol[symbol] = returns

    logger.info(
        "Successfully downloaded %d out of %d symbols", len(returns_by_symbol), len(requested)
    )
    if not returns_by_symbol:
        raise AcquisitionError(f"No symbols could be loaded out of {len(requested)} requested.")

    return UniverseData(
        returns_by_symbol=returns_by_symbol,
        benchmark_returns=benchmark_returns,
        symbols=list(returns_by_symbol),
        failed_symbols=failed,
    )
