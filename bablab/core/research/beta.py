"""Rolling-window OLS beta estimation."""

from __future__ import annotations

import math
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd

from bablab.core.timeseries import align, series_from_values, undefined_series
from bablab.core.utils.logging import get_logger

_LOGGER_NAME = "bablab.core.research.beta"
_ENTITY_ERRORS: tuple[type[Exception], ...] = (ValueError, TypeError, KeyError, ArithmeticError)


def _window_beta(entity: np.ndarray, benchmark: np.ndarray, min_defined: int) -> float | None:
    """OLS slope of ``entity`` on ``benchmark`` for one window, or ``None`` if undefined."""
    entity_defined = ~np.isnan(entity)
    benchmark_defined = ~np.isnan(benchmark)
    if entity_defined.sum() < min_defined or benchmark_defined.sum() < min_defined:
        return None

    paired = entity_defined & benchmark_defined
    if paired.sum() < 2:
        return None
    x = benchmark[paired]
    y = entity[paired]
    if float(np.ptp(x)) == 0.0:
        return None
    x_centered = x - x.mean()
    variance = float(np.dot(x_centered, x_centered))
    if variance <= 0.0:
        return None
    slope = float(np.dot(x_centered, y - y.mean())) / variance
    return slope if math.isfinite(slope) else None


def estimate_rolling_beta(
    entity_returns: pd.Series,
    benchmark_returns: pd.Series,
    window: int = 36,
) -> pd.Series:
    """
    Estimate a rolling beta of an entity against a benchmark.

    The two series are aligned on common dates. Each window holds exactly
    ``window`` consecutive aligned observations and its beta is dated at the
    window's right edge. A window is undefined when either side has fewer than
    ``ceil(window / 2)`` defined values or the benchmark has zero variance.

    Args:
        entity_returns: Entity (dependent variable) return series.
        benchmark_returns: Benchmark (independent variable) return series.
        window: Window length in observations.

    Returns:
        ``Float64`` beta series from the ``window``-th aligned date onward, or an
        all-undefined series over the aligned dates when there are fewer than
        ``window`` of them.
    """
    if isinstance(window, bool) or not isinstance(window, int) or window < 1:
        raise ValueError("window must be a positive integer.")

    name = entity_returns.name
    aligned = align(entity_returns, benchmark_returns)
    if len(aligned) < window:
        return undefined_series(aligned.index, name=name)

    entity_values = aligned["left"].to_numpy(dtype="float64", na_value=np.nan)
    benchmark_values = aligned["right"].to_numpy(dtype="float64", na_value=np.nan)
    min_defined = math.ceil(window / 2)

    betas: list[float | None] = []
    for end in range(window, len(aligned) + 1):
        start = end - window
        betas.append(
            _window_beta(entity_values[start:end], benchmark_values[start:end], min_defined)
        )
    return series_from_values(betas, aligned.index[window - 1 :], name=name)


def estimate_betas(
    returns_by_entity: Mapping[str, pd.Series],
    benchmark_returns: pd.Series,
    window: int = 36,
    max_workers: int = 1,
) -> dict[str, pd.Series]:
    """
    Estimate rolling betas for every entity.

    Entities are independent, so estimation may run on a thread pool. A failure
    for one entity is logged and skipped.

    Args:
        returns_by_entity: Mapping of entity to return series.
        benchmark_returns: Benchmark return series.
        window: Rolling window length.
        max_workers: Thread pool size; ``1`` runs sequentially.

    Returns:
        Mapping of entity to beta series, in sorted entity order.
    """
    logger = get_logger(_LOGGER_NAME)
    entities = sorted(returns_by_entity)

    def _estimate(entity: str) -> pd.Series:
        series = returns_by_entity[entity].rename(entity)
        return estimate_rolling_beta(series, benchmark_returns, window=window)

    results: dict[str, pd.Series] = {}
    if max_workers > 1 and len(entities) > 1:
        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="bablab-beta"
        ) as executor:
            futures = {entity: executor.submit(_estimate, entity) for entity in entities}
            for entity in entities:
                try:
                    results[entity] = futures[entity].result()
                except _ENTITY_ERRORS as exc:
                    logger.warning("Beta estimation failed for %s: %s", entity, exc)
        return results

    for entity in entities:
        try:
            results[entity] = _estimate(entity)
        except _ENTITY_ERRORS as exc:
            logger.warning("Beta estimation failed for %s: %s", entity, exc)
    return results
