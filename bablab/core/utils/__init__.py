"""Utility helpers."""

from bablab.core.utils.env import load_dotenv
from bablab.core.utils.errors import (
    AcquisitionError,
    ArtifactError,
    BabLabError,
    ConfigLoadError,
    DataFetchError,
    DataValidationError,
    PipelineError,
    SnapshotError,
    exit_code_for_exception,
)
from bablab.core.utils.logging import capture_run_log, configure_logging, get_logger
from bablab.core.utils.manifest import RunManifestWriter
from bablab.core.utils.plotting import (
    get_matplotlib_pyplot,
    save_cumulative_returns_plot,
    save_strategy_plot,
)

__all__ = [
    "AcquisitionError",
    "ArtifactError",
    "BabLabError",
    "ConfigLoadError",
    "DataFetchError",
    "DataValidationError",
    "PipelineError",
    "SnapshotError",
    "capture_run_log",
    "configure_logging",
    "exit_code_for_exception",
    "get_matplotlib_pyplot",
    "get_logger",
    "load_dotenv",
    "RunManifestWriter",
    "save_cumulative_returns_plot",
    "save_strategy_plot",
]
