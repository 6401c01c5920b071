"""Long/short aggregation and performance evaluation exports."""

from bablab.core.backtest.engine import aggregate_long_short_returns
from bablab.core.backtest.metrics import (
    calculate_max_drawdown,
    evaluate_performance,
    interpret_report,
    newey_west_lags,
    run_capm_regression,
    significance_marker,
)
from bablab.core.backtest.types import PerformanceReport, RegressionStats, StrategyReturns

__all__ = [
    "PerformanceReport",
    "RegressionStats",
    "StrategyReturns",
    "aggregate_long_short_returns",
    "calculate_max_drawdown",
    "evaluate_performance",
    "interpret_report",
    "newey_west_lags",
    "run_capm_regression",
    "significance_marker",
]
