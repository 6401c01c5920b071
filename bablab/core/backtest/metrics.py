"""Strategy performance metrics and CAPM regression with Newey-West errors."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import statsmodels.api as sm

from bablab.core.backtest.types import PerformanceReport, RegressionStats
from bablab.core.timeseries import align, drop_undefined
from bablab.core.utils.logging import get_logger

_LOGGER_NAME = "bablab.core.backtest.metrics"
SHARPE_GOOD_THRESHOLD = 0.5
HIGH_DRAWDOWN_THRESHOLD = 0.20


def _finite_or_none(value: float) -> float | None:
    """Return ``value`` as float when finite, else ``None``."""
    number = float(value)
    return number if math.isfinite(number) else None


def calculate_max_drawdown(equity_curve: pd.Series) -> float:
    """
    Calculate max drawdown from an equity curve.

    The starting equity of 1.0 counts as the first peak.

    Args:
        equity_curve: Cumulative equity curve where 1.0 is starting equity.

    Returns:
        Largest peak-to-trough decline as a positive fraction.
    """
    if equity_curve.empty:
        return 0.0

    values = equity_curve.astype("float64")
    running_max = values.cummax().clip(lower=1.0)
    drawdowns = 1.0 - values / running_max
    return float(max(drawdowns.max(), 0.0))


def newey_west_lags(n_observations: int) -> int:
    """Rule-of-thumb HAC lag truncation ``floor(4 * (n / 100) ** (2 / 9))``, at least 1."""
    if n_observations <= 0:
        return 1
    return max(1, int(math.floor(4.0 * (n_observations / 100.0) ** (2.0 / 9.0))))


def run_capm_regression(
    strategy_returns: pd.Series,
    benchmark_returns: pd.Series,
    periods_per_year: int = 12,
    min_observations: int = 12,
    nw_lags: int | None = None,
) -> RegressionStats | None:
    """
    Regress strategy returns on benchmark returns with HAC standard errors.

    Args:
        strategy_returns: Strategy (dependent variable) returns.
        benchmark_returns: Benchmark (independent variable) returns.
        periods_per_year: Periods per year used to annualize alpha.
        min_observations: Minimum aligned observations required.
        nw_lags: HAC lag truncation; defaults to :func:`newey_west_lags`.

    Returns:
        Regression statistics, or ``None`` when the overlap is too short or the
        benchmark has zero variance.
    """
    logger = get_logger(_LOGGER_NAME)
    aligned = align(strategy_returns, benchmark_returns).dropna()
    n_obs = len(aligned)
    if n_obs < min_observations:
        logger.info(
            "Skipping CAPM regression: %d aligned observations < %d", n_obs, min_observations
        )
        return None

    y = aligned["left"].to_numpy(dtype="float64")
    x = aligned["right"].to_numpy(dtype="float64")
    if float(np.ptp(x)) == 0.0:
        logger.warning("Skipping CAPM regression: benchmark returns have zero variance")
        return None

    lags = newey_west_lags(n_obs) if nw_lags is None else int(nw_lags)
    design = sm.add_constant(x, has_constant="add")
    result = sm.OLS(y, design).fit(
        cov_type="HAC",
        cov_kwds={"maxlags": lags, "use_correction": True},
        use_t=True,
    )
    params = np.asarray(result.params, dtype=float)
    tvalues = np.asarray(result.tvalues, dtype=float)
    pvalues = np.asarray(result.pvalues, dtype=float)

    alpha = float(params[0])
    return RegressionStats(
        alpha=alpha,
        alpha_annualized=alpha * periods_per_year,
        alpha_tstat=_finite_or_none(tvalues[0]),
        alpha_pvalue=_finite_or_none(pvalues[0]),
        beta=float(params[1]),
        beta_tstat=_finite_or_none(tvalues[1]),
        beta_pvalue=_finite_or_none(pvalues[1]),
        r_squared=_finite_or_none(result.rsquared),
        n_observations=n_obs,
        nw_lags=lags,
    )


def evaluate_performance(
    strategy_returns: pd.Series,
    benchmark_returns: pd.Series | None = None,
    periods_per_year: int = 12,
    min_regression_observations: int = 12,
    nw_lags: int | None = None,
) -> PerformanceReport | None:
    """
    Calculate performance statistics and the optional CAPM regression block.

    Args:
        strategy_returns: Strategy return series; undefined entries are dropped.
        benchmark_returns: Optional benchmark (excess) return series.
        periods_per_year: Return periods per year; must match the sampling
            frequency of ``strategy_returns`` (12 for monthly data).
        min_regression_observations: Minimum aligned points for the regression.
        nw_lags: Optional HAC lag truncation override.

    Returns:
        Performance report, or ``None`` when the strategy has no defined returns.
    """
    if periods_per_year <= 0:
        raise ValueError("periods_per_year must be > 0.")

    returns = drop_undefined(strategy_returns).astype("float64")
    n_obs = int(returns.shape[0])
    if n_obs == 0:
        get_logger(_LOGGER_NAME).warning("No valid returns data for performance calculation")
        return None

    equity_curve = (1.0 + returns).cumprod()
    total_return = float(equity_curve.iloc[-1]) - 1.0
    final_equity = max(float(equity_curve.iloc[-1]), 0.0)
    annualized_return = final_equity ** (periods_per_year / n_obs) - 1.0
    annualized_volatility = (
        float(returns.std(ddof=1)) * math.sqrt(periods_per_year)
        if n_obs > 1 and float(np.ptp(returns.to_numpy())) > 0.0
        else 0.0
    )
    sharpe_ratio = (
        _finite_or_none(annualized_return / annualized_volatility)
        if annualized_volatility > 0
        else None
    )

    regression = None
    if benchmark_returns is not None:
        regression = run_capm_regression(
            returns,
            benchmark_returns,
            periods_per_year=periods_per_year,
            min_observations=min_regression_observations,
            nw_lags=nw_lags,
        )

    return PerformanceReport(
        n_observations=n_obs,
        total_return=total_return,
        annualized_return=float(annualized_return),
        annualized_volatility=annualized_volatility,
        sharpe_ratio=sharpe_ratio,
        max_drawdown=calculate_max_drawdown(equity_curve),
        regression=regression,
    )


def significance_marker(pvalue: float | None) -> str:
    """Return ``**`` for p < 0.05, ``*`` for p < 0.10 and an empty string otherwise."""
    if pvalue is None:
        return ""
    if pvalue < 0.05:
        return "**"
    if pvalue < 0.10:
        return "*"
    return ""


def interpret_report(report: PerformanceReport) -> dict[str, str]:
    """
    Classify alpha, Sharpe ratio and drawdown into short human-readable labels.

    Alpha is ``significant_positive`` when positive with p < 0.05,
    ``positive_not_significant`` when positive otherwise and ``negative``
    when not positive. A Sharpe ratio above 0.5 is ``good``. A max drawdown
    of 20% or more is ``high``.

    Args:
        report: Performance report to interpret.

    Returns:
        Mapping of label name to label; alpha labels are absent without a regression.
    """
    labels: dict[str, str] = {}
    regression = report.regression
    if regression is not None:
        marker = significance_marker(regression.alpha_pvalue)
        labels["alpha_significance"] = marker or "none"
        if regression.alpha_annualized > 0 and marker == "**":
            labels["alpha_assessment"] = "significant_positive"
        elif regression.alpha_annualized > 0:
            labels["alpha_assessment"] = "positive_not_significant"
        else:
            labels["alpha_assessment"] = "negative"

    if report.sharpe_ratio is None:
        labels["sharpe_assessment"] = "undefined"
    elif report.sharpe_ratio > SHARPE_GOOD_THRESHOLD:
        labels["sharpe_assessment"] = "good"
    else:
        labels["sharpe_assessment"] = "moderate"

    labels["drawdown_assessment"] = (
        "high" if report.max_drawdown >= HIGH_DRAWDOWN_THRESHOLD else "reasonable"
    )
    return labels
