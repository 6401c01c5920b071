"""Plotting utilities for strategy artifacts."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pandas as pd

from bablab.core.utils.errors import ArtifactError

STRATEGY_COLOR = "#2E86AB"
BENCHMARK_COLOR = "#A23B72"


def get_matplotlib_pyplot() -> Any:
    """
    Import and return ``matplotlib.pyplot`` with a writable config directory.

    Returns:
        Imported pyplot module.
    """
    if "MPLCONFIGDIR" not in os.environ:
        mpl_config_dir = Path("/tmp/bablab-mplconfig")
        mpl_config_dir.mkdir(parents=True, exist_ok=True)
        os.environ["MPLCONFIGDIR"] = str(mpl_config_dir)

    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    return plt


def _period_caption(index: pd.Index) -> str:
    if len(index) == 0:
        return "Analysis Period: n/a"
    return f"Analysis Period: {index.min():%Y-%m-%d} to {index.max():%Y-%m-%d}"


def _style_axis(axis: Any, title: str) -> None:
    axis.set_title(title, fontsize=14, fontweight="bold")
    axis.set_xlabel("Date")
    axis.set_ylabel("Cumulative Return")
    axis.grid(alpha=0.25, linestyle="--", linewidth=0.7)
    for label in axis.get_xticklabels():
        label.set_rotation(45)
        label.set_horizontalalignment("right")


def save_cumulative_returns_plot(
    strategy_cumulative: pd.Series,
    benchmark_cumulative: pd.Series,
    output_dir: Path,
    filename: str = "bab_cumulative_returns.png",
) -> Path:
    """
    Save the strategy-versus-benchmark cumulative wealth plot.

    Both curves are drawn over the dates they share.

    Args:
        strategy_cumulative: Strategy wealth curve indexed by date.
        benchmark_cumulative: Benchmark excess-return wealth curve indexed by date.
        output_dir: Artifact directory.
        filename: Output image filename.

    Returns:
        Saved plot path.
    """
    plt = get_matplotlib_pyplot()
    plot_path = output_dir / filename
    figure = None
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        common_index = strategy_cumulative.index.intersection(benchmark_cumulative.index)
        strategy = strategy_cumulative.reindex(common_index).astype("float64")
        benchmark = benchmark_cumulative.reindex(common_index).astype("float64")

        figure, axis = plt.subplots(figsize=(12, 8))
        axis.plot(
            common_index, strategy.values, linewidth=1.2, color=STRATEGY_COLOR, label="BAB Strategy"
        )
        axis.plot(
            common_index,
            benchmark.values,
            linewidth=1.2,
            color=BENCHMARK_COLOR,
            label="Market (Excess Returns)",
        )
        _style_axis(axis, "Betting-Against-Beta Strategy vs Market")
        axis.legend(loc="lower center", bbox_to_anchor=(0.5, -0.25), ncol=2, frameon=False)
        figure.text(0.99, 0.01, _period_caption(common_index), ha="right", fontsize=8)
        figure.tight_layout()
        figure.savefig(plot_path, dpi=150)
        return plot_path
    except Exception as exc:
        raise ArtifactError(f"Failed to save cumulative returns plot to {plot_path}: {exc}") from exc
    finally:
        if figure is not None:
            plt.close(figure)


def save_strategy_plot(
    strategy_cumulative: pd.Series,
    output_dir: Path,
    filename: str = "bab_strategy_performance.png",
) -> Path:
    """
    Save the strategy-only cumulative wealth plot with a reference line at 1.0.

    Args:
        strategy_cumulative: Strategy wealth curve indexed by date.
        output_dir: Artifact directory.
        filename: Output image filename.

    Returns:
        Saved plot path.
    """
    plt = get_matplotlib_pyplot()
    plot_path = output_dir / filename
    figure = None
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        wealth = strategy_cumulative.astype("float64")

        figure, axis = plt.subplots(figsize=(12, 8))
        axis.plot(wealth.index, wealth.values, linewidth=1.2, color=STRATEGY_COLOR, alpha=0.8)
        axis.axhline(1.0, linestyle="--", color="gray", linewidth=0.8)
        _style_axis(axis, "Betting-Against-Beta Strategy Performance")
        figure.text(
            0.99,
            0.01,
            f"Starting Value: $1.00 | {_period_caption(wealth.index)}",
            ha="right",
            fontsize=8,
        )
        figure.tight_layout()
        figure.savefig(plot_path, dpi=150)
        return plot_path
    except Exception as exc:
        raise ArtifactError(f"Failed to save strategy plot to {plot_path}: {exc}") from exc
    finally:
        if figure is not None:
            plt.close(figure)
