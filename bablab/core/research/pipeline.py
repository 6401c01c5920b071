"""Betting-Against-Beta pipeline over in-memory return series."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import pandas as pd

from bablab.core.backtest.engine import aggregate_long_short_returns
from bablab.core.backtest.metrics import evaluate_performance
from bablab.core.backtest.types import PerformanceReport, StrategyReturns
from bablab.core.research.beta import estimate_betas
from bablab.core.research.ranking import GroupAssignment, rank_all_dates, rebalancing_dates
from bablab.core.timeseries import cumulative_wealth, to_excess_returns
from bablab.core.utils.errors import PipelineError
from bablab.core.utils.logging import get_logger

_LOGGER_NAME = "bablab.core.research.pipeline"


@dataclass(frozen=True)
class PipelineSettings:
    """Explicit parameters threaded through every pipeline stage."""

    beta_window: int = 36
    n_groups: int = 5
    risk_free_rate: float = 0.02
    leverage: float = 1.0
    periods_per_year: int = 12
    min_regression_observations: int = 12
    nw_lags: int | None = None
    max_workers: int = 1


@dataclass(frozen=True)
class PipelineDiagnostics:
    """Counts of succeeded and skipped entities, dates and periods."""

    entities_input: int
    entities_with_beta: int
    entities_skipped: int
    rebalance_dates: int
    dates_ranked: int
    dates_skipped: int
    strategy_periods: int
    undefined_periods: int
    missing_member_observations: int

    def as_dict(self) -> dict[str, int]:
        """Return diagnostics as a plain dictionary."""
        return {
            "entities_input": self.entities_input,
            "entities_with_beta": self.entities_with_beta,
            "entities_skipped": self.entities_skipped,
            "rebalance_dates": self.rebalance_dates,
            "dates_ranked": self.dates_ranked,
            "dates_skipped": self.dates_skipped,
            "strategy_periods": self.strategy_periods,
            "undefined_periods": self.undefined_periods,
            "missing_member_observations": self.missing_member_observations,
        }


@dataclass(frozen=True)
class PipelineResult:
    """Every intermediate artifact of one pipeline run."""

    excess_returns: dict[str, pd.Series]
    benchmark_excess_returns: pd.Series
    betas: dict[str, pd.Series]
    assignments: list[GroupAssignment]
    strategy: StrategyReturns
    strategy_cumulative: pd.Series
    benchmark_cumulative: pd.Series
    report: PerformanceReport | None
    diagnostics: PipelineDiagnostics


def run_bab_pipeline(
    returns_by_entity: Mapping[str, pd.Series],
    benchmark_returns: pd.Series,
    settings: PipelineSettings | None = None,
) -> PipelineResult:
    """
    Run beta estimation, ranking, lagged aggregation and evaluation.

    Args:
        returns_by_entity: Mapping of entity to raw periodic returns.
        benchmark_returns: Raw benchmark periodic returns.
        settings: Pipeline parameters; defaults reproduce the monthly quintile strategy.

    Returns:
        Pipeline result with artifacts and diagnostics.
    """
    resolved = settings or PipelineSettings()
    logger = get_logger(_LOGGER_NAME)
    if not returns_by_entity:
        raise PipelineError("At least one entity return series is required.")

    excess_returns = {
        entity: to_excess_returns(
            returns_by_entity[entity], resolved.risk_free_rate, resolved.periods_per_year
        )
        for entity in sorted(returns_by_entity)
    }
    benchmark_excess = to_excess_returns(
        benchmark_returns, resolved.risk_free_rate, resolved.periods_per_year
    )
    logger.info("Calculated excess returns for %d entities", len(excess_returns))

    estimated = estimate_betas(
        excess_returns,
        benchmark_excess,
        window=resolved.beta_window,
        max_workers=resolved.max_workers,
    )
    betas: dict[str, pd.Series] = {}
    for entity, series in estimated.items():
        if series.notna().any():
            betas[entity] = series
        else:
            logger.warning("Skipping %s: no defined rolling beta", entity)
    logger.info(
        "Calculated rolling betas for %d of %d entities", len(betas), len(excess_returns)
    )

    dates = rebalancing_dates(betas)
    assignments = rank_all_dates(betas, dates, n_groups=resolved.n_groups)
    logger.info("Ranked %d of %d rebalancing dates", len(assignments), len(dates))

    strategy = aggregate_long_short_returns(
        excess_returns, assignments, leverage=resolved.leverage
    )
    logger.info(
        "Strategy returns calculated for %d periods", strategy.defined_periods
    )

    report = evaluate_performance(
        strategy.returns,
        benchmark_excess,
        periods_per_year=resolved.periods_per_year,
        min_regression_observations=resolved.min_regression_observations,
        nw_lags=resolved.nw_lags,
    )

    diagnostics = PipelineDiagnostics(
        entities_input=len(excess_returns),
        entities_with_beta=len(betas),
        entities_skipped=len(excess_returns) - len(betas),
        rebalance_dates=len(dates),
        dates_ranked=len(assignments),
        dates_skipped=len(dates) - len(assignments),
        strategy_periods=int(strategy.returns.shape[0]),
        undefined_periods=strategy.undefined_periods,
        missing_member_observations=strategy.missing_member_observations,
    )
    return PipelineResult(
        excess_returns=excess_returns,
        benchmark_excess_returns=benchmark_excess,
        betas=betas,
        assignments=assignments,
        strategy=strategy,
        strategy_cumulative=cumulative_wealth(strategy.returns),
        benchmark_cumulative=cumulative_wealth(benchmark_excess),
        report=report,
        diagnostics=diagnostics,
    )
