"""Data structures for strategy returns and performance reports."""

from __future__ import annotations

from dataclasses import asdict, dataclass

import pandas as pd

_COUNT_FIELDS = frozenset({"n_observations", "nw_lags"})


@dataclass(frozen=True)
class StrategyReturns:
    """Long/short strategy returns with aggregation diagnostics."""

    returns: pd.Series
    missing_member_observations: int
    undefined_periods: int

    @property
    def defined_periods(self) -> int:
        """Number of periods with a defined strategy return."""
        return int(self.returns.notna().sum())


@dataclass(frozen=True)
class RegressionStats:
    """Single-factor regression with Newey-West (HAC) inference."""

    alpha: float
    alpha_annualized: float
    alpha_tstat: float | None
    alpha_pvalue: float | None
    beta: float
    beta_tstat: float | None
    beta_pvalue: float | None
    r_squared: float | None
    n_observations: int
    nw_lags: int


@dataclass(frozen=True)
class PerformanceReport:
    """Performance statistics for one strategy return series."""

    n_observations: int
    total_return: float
    annualized_return: float
    annualized_volatility: float
    sharpe_ratio: float | None
    max_drawdown: float
    regression: RegressionStats | None = None

    def to_metrics(self) -> dict[str, float | int]:
        """Flatten defined statistics into a metrics dictionary; counts stay integers."""
        metrics: dict[str, float | int] = {
            "n_observations": int(self.n_observations),
            "total_return": self.total_return,
            "annualized_return": self.annualized_return,
            "annualized_volatility": self.annualized_volatility,
            "max_drawdown": self.max_drawdown,
        }
        if self.sharpe_ratio is not None:
            metrics["sharpe_ratio"] = self.sharpe_ratio
        if self.regression is not None:
            for key, value in asdict(self.regression).items():
                if value is None:
                    continue
                metrics[f"capm_{key}"] = int(value) if key in _COUNT_FIELDS else float(value)
        return metrics
