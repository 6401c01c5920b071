"""Configuration models and YAML loading."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from bablab.core.research.pipeline import PipelineSettings
from bablab.core.utils.errors import ConfigLoadError

DEFAULT_UNIVERSE: tuple[str, ...] = (
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "BRK-B", "UNH", "JNJ",
    "JPM", "V", "PG", "XOM", "HD", "CVX", "MA", "BAC", "ABBV", "PFE",
    "AVGO", "COST", "DIS", "KO", "MRK", "PEP", "TMO", "ABT", "ACN", "ADBE",
    "LLY", "NFLX", "CMCSA", "NKE", "VZ", "CRM", "ORCL", "DHR", "WMT", "T",
    "TXN", "QCOM", "NEE", "PM", "HON", "UPS", "SPGI", "LOW", "IBM", "MDT",
    "AMT", "RTX", "AMAT", "AXP", "GS", "BLK", "CAT", "DE", "MU", "LMT",
    "BKNG", "GILD", "SBUX", "ADP", "TJX", "CVS", "MDLZ", "CI", "PYPL", "TMUS",
    "ISRG", "MMM", "SO", "ZTS", "MO", "CB", "SYK", "DUK", "CSX", "ITW",
    "AON", "CL", "EQIX", "PGR", "BSX", "APD", "COP", "SCHW", "MSI", "MCD",
    "WM", "ECL", "NSC", "ADSK", "INTU", "KLAC", "EL", "SHW", "GD", "MCK",
    "EMR", "CME", "TGT", "HUM", "REGN", "LRCX", "AFL", "NUE", "CTAS",
)  # fmt: skip


class DataConfig(BaseModel):
    """Universe and date-range settings for a study."""

    provider: Literal["eodhd"] = "eodhd"
    symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_UNIVERSE))
    benchmark: str = "SPY"
    exchange: str = "US"
    start: date
    end: date
    max_symbols: int | None = None

    @model_validator(mode="after")
    def validate_dates_and_symbols(self) -> DataConfig:
        """Ensure date boundaries and symbols are valid."""
        if self.start >= self.end:
            raise ValueError("data.start must be before data.end.")
        normalized_symbols = list(
            dict.fromkeys(symbol.strip() for symbol in self.symbols if symbol.strip())
        )
        if not normalized_symbols:
            raise ValueError("data.symbols must contain at least one non-empty symbol.")
        if not self.benchmark.strip():
            raise ValueError("data.benchmark must be a non-empty symbol.")
        if self.max_symbols is not None and self.max_symbols < 1:
            raise ValueError("data.max_symbols must be >= 1 when set.")
        self.symbols = normalized_symbols
        self.benchmark = self.benchmark.strip()
        return self

    def universe(self) -> list[str]:
        """Return configured symbols, capped by ``max_symbols``."""
        if self.max_symbols is None:
            return list(self.symbols)
        return list(self.symbols[: self.max_symbols])


class StrategyConfig(BaseModel):
    """Betting-Against-Beta strategy parameters."""

    beta_window: int = 36
    n_groups: int = 5
    risk_free_rate: float = 0.02
    leverage: float = 1.0
    rebalance_frequency: Literal["monthly"] = "monthly"
    max_workers: int = 1

    @model_validator(mode="after")
    def validate_strategy(self) -> StrategyConfig:
        """Validate strategy parameter ranges."""
        if self.beta_window < 2:
            raise ValueError("strategy.beta_window must be >= 2.")
        if self.n_groups < 2:
            raise ValueError("strategy.n_groups must be >= 2.")
        if not 0.0 <= self.risk_free_rate < 1.0:
            raise ValueError("strategy.risk_free_rate must be in [0, 1).")
        if self.leverage <= 0:
            raise ValueError("strategy.leverage must be > 0.")
        if self.max_workers < 1:
            raise ValueError("strategy.max_workers must be >= 1.")
        return self


class EvaluationConfig(BaseModel):
    """Performance evaluation settings.

    ``periods_per_year`` annualizes returns, volatility and alpha. It must match
    the sampling frequency of the return series (12 for month-end returns).
    """

    periods_per_year: int = 12
    min_regression_observations: int = 12
    nw_lags: int | None = None

    @model_validator(mode="after")
    def validate_evaluation(self) -> EvaluationConfig:
        """Validate evaluation settings."""
        if self.periods_per_year <= 0:
            raise ValueError("evaluation.periods_per_year must be > 0.")
        if self.min_regression_observations < 3:
            raise ValueError("evaluation.min_regression_observations must be >= 3.")
        if self.nw_lags is not None and self.nw_lags < 0:
            raise ValueError("evaluation.nw_lags must be >= 0 when set.")
        return self


class OutputConfig(BaseModel):
    """Output and artifact settings."""

    artifacts_dir: Path = Path("../artifacts")
    save_plots: bool = True
    save_snapshots: bool = True
    cumulative_plot_filename: str = "bab_cumulative_returns.png"
    strategy_plot_filename: str = "bab_strategy_performance.png"

    @model_validator(mode="after")
    def validate_output(self) -> OutputConfig:
        """Ensure output filenames are valid."""
        if not self.cumulative_plot_filename.strip():
            raise ValueError("output.cumulative_plot_filename must be non-empty.")
        if not self.strategy_plot_filename.strip():
            raise ValueError("output.strategy_plot_filename must be non-empty.")
        return self


class AppConfig(BaseModel):
    """Top-level application configuration."""

    data: DataConfig
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def pipeline_settings(self) -> PipelineSettings:
        """Build explicit pipeline settings from the validated config."""
        return PipelineSettings(
            beta_window=self.strategy.beta_window,
            n_groups=self.strategy.n_groups,
            risk_free_rate=self.strategy.risk_free_rate,
            leverage=self.strategy.leverage,
            periods_per_year=self.evaluation.periods_per_year,
            min_regression_observations=self.evaluation.min_regression_observations,
            nw_lags=self.evaluation.nw_lags,
            max_workers=self.strategy.max_workers,
        )


def _resolve_config_path(path: Path) -> Path:
    """Resolve and validate a config file path."""
    resolved_path = path.expanduser().resolve()
    if not resolved_path.exists():
        raise ConfigLoadError(f"Config file not found: {resolved_path}")
    if not resolved_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {resolved_path}")
    return resolved_path


def load_config(path: Path) -> AppConfig:
    """
    Load and validate application config from YAML.

    Relative paths are resolved from the YAML file parent directory.

    Args:
        path: YAML config file path.

    Returns:
        Validated application config.
    """
    config_path = _resolve_config_path(path)
    try:
        yaml_text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Failed to read config file {config_path}: {exc}") from exc
    return load_config_from_yaml_text(yaml_text, base_dir=config_path.parent)


def _build_config(raw_config: dict[str, Any], base_dir: Path) -> AppConfig:
    """Build and path-resolve config from raw data."""
    try:
        config = AppConfig.model_validate(raw_config)
    except Exception as exc:
        raise ConfigLoadError(f"Config validation failed: {exc}") from exc
    artifacts_dir = config.output.artifacts_dir
    resolved_artifacts_dir = (
        artifacts_dir.expanduser().resolve()
        if artifacts_dir.is_absolute()
        else (base_dir / artifacts_dir).resolve()
    )
    updated_output = config.output.model_copy(update={"artifacts_dir": resolved_artifacts_dir})
    return config.model_copy(update={"output": updated_output})


def load_config_from_yaml_text(yaml_text: str, base_dir: Path | None = None) -> AppConfig:
    """
    Load and validate config from YAML text.

    Args:
        yaml_text: YAML string.
        base_dir: Base directory for relative paths.

    Returns:
        Validated application config.
    """
    try:
        raw_config: Any = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML: {exc}") from exc
    if not isinstance(raw_config, dict):
        raise ConfigLoadError("YAML root must be a mapping/object.")
    resolved_base_dir = (base_dir or Path.cwd()).expanduser().resolve()
    return _build_config(raw_config, resolved_base_dir)


def dump_config_to_yaml(config: AppConfig) -> str:
    """
    Serialize config to canonical YAML for reproducibility.

    Args:
        config: App config.

    Returns:
        YAML string.
    """
    payload = config.model_dump(mode="json")
    return yaml.safe_dump(payload, sort_keys=True, default_flow_style=False)
