"""Pydantic schemas for BabLab API endpoints."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health endpoint response."""

    status: str = "ok"
    service: str = "bablab-api"


class ErrorResponse(BaseModel):
    """Error payload for typed API failures."""

    error_code: str
    message: str


class RunRequest(BaseModel):
    """Run endpoint request payload."""

    config_path: Path


class RunResponse(BaseModel):
    """Run endpoint response payload.

    ``metrics`` is empty and ``report_available`` false when no strategy period
    had a defined return.
    """

    run_id: str
    run_dir: str
    benchmark: str
    symbols: list[str]
    failed_symbols: list[str]
    metrics: dict[str, float | int]
    report_available: bool
    diagnostics: dict[str, int]
    artifact_paths: list[str]
    manifest_path: str
    interpretation: dict[str, str] = {}
    latest_rebalance_date: str | None = None
    latest_groups: dict[str, list[str]] = {}
    plot_error: str | None = None
