"""Domain-specific error taxonomy for BabLab."""

from __future__ import annotations


class BabLabError(Exception):
    """Base BabLab error with CLI exit-code metadata."""

    exit_code: int = 1
    error_code: str = "bablab_error"


class ConfigLoadError(BabLabError, ValueError):
    """Configuration loading/validation error."""

    exit_code = 2
    error_code = "config_error"


class DataFetchError(BabLabError, ConnectionError):
    """Data fetch transport/retry error."""

    exit_code = 3
    error_code = "data_fetch_error"


class DataValidationError(BabLabError, ValueError):
    """Data schema/integrity validation error."""

    exit_code = 4
    error_code = "data_validation_error"


class AcquisitionError(BabLabError, RuntimeError):
    """Universe acquisition failed as a whole (benchmark or every symbol missing)."""

    exit_code = 5
    error_code = "acquisition_error"


class SnapshotError(BabLabError, RuntimeError):
    """Snapshot read/write error."""

    exit_code = 6
    error_code = "snapshot_error"


class PipelineError(BabLabError, ValueError):
    """Strategy pipeline input or ordering error."""

    exit_code = 7
    error_code = "pipeline_error"


class ArtifactError(BabLabError, RuntimeError):
    """Artifact write/read error."""

    exit_code = 8
    error_code = "artifact_error"


def exit_code_for_exception(exc: Exception) -> int:
    """
    Resolve process exit code for an exception.

    Args:
        exc: Raised exception.

    Returns:
        Integer process exit code.
    """
    return int(getattr(exc, "exit_code", 1))
