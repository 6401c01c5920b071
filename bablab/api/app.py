"""FastAPI application for BabLab studies."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from bablab.api.schemas import ErrorResponse, HealthResponse, RunRequest, RunResponse
from bablab.core.services import run_study
from bablab.core.utils.env import load_dotenv
from bablab.core.utils.errors import (
    AcquisitionError,
    BabLabError,
    ConfigLoadError,
    DataFetchError,
    DataValidationError,
    PipelineError,
)
from bablab.core.utils.logging import configure_logging, get_logger

_LOGGER_NAME = "bablab.api.app"


def _http_status_for_bablab_error(exc: BabLabError) -> int:
    """Map typed domain exceptions to HTTP status codes."""
    if isinstance(exc, (ConfigLoadError, PipelineError)):
        return 400
    if isinstance(exc, (DataFetchError, AcquisitionError)):
        return 502
    if isinstance(exc, DataValidationError):
        return 422
    return 500


def create_app() -> FastAPI:
    """
    Build and return the BabLab FastAPI app.

    Returns:
        Configured FastAPI instance.
    """
    load_dotenv(Path(".env"))
    configure_logging()

    app = FastAPI(
        title="BabLab API",
        version="0.1.0",
        description="Programmatic API for Betting-Against-Beta studies.",
    )
    logger = get_logger(_LOGGER_NAME)
    logger.info("BabLab API startup complete.")

    @app.exception_handler(BabLabError)
    async def _handle_bablab_error(_: Any, exc: BabLabError) -> JSONResponse:
        """Render typed domain errors as JSON responses."""
        logger = get_logger(_LOGGER_NAME)
        logger.error("BabLab API error: %s", exc)
        payload = ErrorResponse(error_code=exc.error_code, message=str(exc))
        return JSONResponse(
            status_code=_http_status_for_bablab_error(exc),
            content=payload.model_dump(),
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected_error(_: Any, exc: Exception) -> JSONResponse:
        """Render unknown errors as deterministic API payloads."""
        logger = get_logger(_LOGGER_NAME)
        logger.exception("Unhandled API error: %s", exc)
        payload = ErrorResponse(error_code="internal_error", message="Internal server error.")
        return JSONResponse(status_code=500, content=payload.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Return API health metadata."""
        return HealthResponse()

    @app.post("/runs", response_model=RunResponse)
    def runs(request: RunRequest) -> RunResponse:
        """Run a Betting-Against-Beta study from a YAML config path."""
        outcome = run_study(config_path=request.config_path)
        return RunResponse(
            run_id=outcome.run_id,
            run_dir=str(outcome.run_dir),
            benchmark=outcome.benchmark,
            symbols=list(outcome.symbols),
            failed_symbols=list(outcome.failed_symbols),
            metrics=dict(outcome.metrics),
            report_available=outcome.report_available,
            diagnostics=dict(outcome.diagnostics),
            artifact_paths=list(outcome.artifact_paths),
            manifest_path=str(outcome.manifest_path),
            interpretation=dict(outcome.interpretation),
            latest_rebalance_date=outcome.latest_rebalance_date,
            latest_groups=dict(outcome.latest_groups),
            plot_error=outcome.plot_error,
        )

    return app
