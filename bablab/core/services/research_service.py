"""Programmatic service workflows for BabLab studies."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from bablab.core.backtest.metrics import interpret_report
from bablab.core.config import AppConfig, dump_config_to_yaml, load_config
from bablab.core.data.base import DataProvider
from bablab.core.data.eodhd_provider import EODHDProvider
from bablab.core.data.snapshots import ParquetSnapshotStore
from bablab.core.data.universe import UniverseData, load_universe
from bablab.core.research.pipeline import PipelineResult, run_bab_pipeline
from bablab.core.utils.env import load_dotenv
from bablab.core.utils.errors import ArtifactError
from bablab.core.utils.logging import capture_run_log, get_logger
from bablab.core.utils.manifest import RunManifestWriter
from bablab.core.utils.plotting import save_cumulative_returns_plot, save_strategy_plot

ProgressCallback = Callable[[str], None]
ProviderFactory = Callable[[AppConfig], DataProvider]
MANIFEST_NAME = "run_manifest.json"
RESOLVED_CONFIG_NAME = "resolved_config.yaml"
BENCHMARK_SNAPSHOT_KEY = "__benchmark__"
_LOGGER_NAME = "bablab.core.services.research_service"


@dataclass(frozen=True)
class StudyOutcome:
    """Result payload for one completed study run."""

    run_id: str
    run_dir: Path
    symbols: list[str]
    failed_symbols: list[str]
    benchmark: str
    metrics: dict[str, float | int]
    report_available: bool
    diagnostics: dict[str, int]
    artifact_paths: list[str]
    manifest_path: Path
    interpretation: dict[str, str]
    latest_rebalance_date: str | None
    latest_groups: dict[str, list[str]]
    plot_error: str | None = None


def _emit_progress(callback: ProgressCallback | None, message: str) -> None:
    """Emit optional progress messages."""
    if callback is not None:
        callback(message)


def new_run_id(now: datetime | None = None) -> str:
    """Return a sortable, collision-resistant run identifier."""
    timestamp = (now or datetime.now(tz=UTC)).astimezone(UTC)
    return f"run_{timestamp:%Y%m%dT%H%M%S%fZ}"


def _default_provider(app_config: AppConfig) -> DataProvider:
    """Build the configured market data provider."""
    return EODHDProvider(exchange=app_config.data.exchange)


def _save_snapshots(
    store: ParquetSnapshotStore,
    universe: UniverseData,
    result: PipelineResult,
) -> list[str]:
    """Persist raw returns, rolling betas and strategy returns."""
    raw_returns = dict(universe.returns_by_symbol)
    raw_returns[BENCHMARK_SNAPSHOT_KEY] = universe.benchmark_returns
    paths = [
        store.save("raw_returns", raw_returns),
        store.save("rolling_betas", result.betas),
        store.save("strategy_returns", {"strategy": result.strategy.returns}),
    ]
    return [str(path) for path in paths]


def _save_plots(app_config: AppConfig, result: PipelineResult, run_dir: Path) -> list[str]:
    """Render the cumulative comparison and strategy-only plots."""
    cumulative_path = save_cumulative_returns_plot(
        strategy_cumulative=result.strategy_cumulative,
        benchmark_cumulative=result.benchmark_cumulative,
        output_dir=run_dir,
        filename=app_config.output.cumulative_plot_filename,
    )
    strategy_path = save_strategy_plot(
        strategy_cumulative=result.strategy_cumulative,
        output_dir=run_dir,
        filename=app_config.output.strategy_plot_filename,
    )
    return [str(cumulative_path), str(strategy_path)]


def _write_resolved_config(app_config: AppConfig, run_dir: Path) -> Path:
    """Write the canonical resolved config next to the run artifacts."""
    config_path = run_dir / RESOLVED_CONFIG_NAME
    try:
        run_dir.mkdir(parents=True, exist_ok=True)
        config_path.write_text(dump_config_to_yaml(app_config), encoding="utf-8")
    except OSError as exc:
        raise ArtifactError(f"Failed to write resolved config to {config_path}: {exc}") from exc
    return config_path


def run_study(
    config_path: Path,
    progress_callback: ProgressCallback | None = None,
    provider_factory: ProviderFactory | None = None,
) -> StudyOutcome:
    """
    Run one Betting-Against-Beta study end to end and persist its artifacts.

    Artifacts land under ``<artifacts_dir>/<run_id>/``, including a ``run.log``
    copy of the run's log records. A plot rendering failure is logged and
    recorded as ``plot_error`` without affecting the report. On any other
    failure a manifest with status ``failed`` is written (when the run
    directory is known) and the exception is re-raised.

    Args:
        config_path: Path to YAML config file.
        progress_callback: Optional callback for status messages.
        provider_factory: Optional builder for the data provider.

    Returns:
        Completed study outcome.
    """
    logger = get_logger(_LOGGER_NAME)
    manifest_writer: RunManifestWriter | None = None

    try:
        load_dotenv(Path(".env"))
        app_config = load_config(config_path)
        run_id = new_run_id()
        run_dir = app_config.output.artifacts_dir / run_id
        manifest_writer = RunManifestWriter(
            output_dir=run_dir,
            command="run",
            run_id=run_id,
            manifest_name=MANIFEST_NAME,
        )
        manifest_writer.set_inputs(config_path=config_path)
        start = app_config.data.start.isoformat()
        end = app_config.data.end.isoformat()
        symbols = app_config.data.universe()
        manifest_writer.set_context(
            symbols=symbols,
            benchmark=app_config.data.benchmark,
            start=start,
            end=end,
            parameters=app_config.strategy.model_dump(mode="json"),
        )

        artifact_paths: list[str] = []
        with capture_run_log(run_dir) as run_log_path:
            artifact_paths.append(str(run_log_path))
            _emit_progress(
                progress_callback, f"Loading {len(symbols)} symbols from {start} to {end}"
            )
            provider = (provider_factory or _default_provider)(app_config)
            universe = load_universe(
                symbols=symbols,
                benchmark=app_config.data.benchmark,
                start=start,
                end=end,
                provider=provider,
            )
            _emit_progress(
                progress_callback,
                f"Loaded {len(universe.symbols)} symbols, {len(universe.failed_symbols)} failed",
            )

            result = run_bab_pipeline(
                universe.returns_by_symbol,
                universe.benchmark_returns,
                settings=app_config.pipeline_settings(),
            )
            diagnostics = result.diagnostics.as_dict()
            _emit_progress(
                progress_callback,
                f"Strategy returns calculated for {result.strategy.defined_periods} periods",
            )

            latest = result.assignments[-1] if result.assignments else None
            latest_rebalance_date = (
                latest.date.date().isoformat()
                if latest is not None and latest.date is not None
                else None
            )
            latest_groups = latest.composition() if latest is not None else {}
            if latest is not None:
                logger.info("Group composition on %s:", latest_rebalance_date)
                for group_name, members in latest_groups.items():
                    logger.info(
                        "  %s: %d stocks (%s)", group_name, len(members), ", ".join(members[:3])
                    )

            if app_config.output.save_snapshots:
                snapshot_store = ParquetSnapshotStore(run_dir / "snapshots")
                artifact_paths.extend(_save_snapshots(snapshot_store, universe, result))
            plot_error: str | None = None
            if app_config.output.save_plots and not result.strategy_cumulative.empty:
                try:
                    artifact_paths.extend(_save_plots(app_config, result, run_dir))
                except ArtifactError as exc:
                    plot_error = str(exc)
                    logger.warning("Plot rendering failed; report kept: %s", exc)
            artifact_paths.append(str(_write_resolved_config(app_config, run_dir)))

            if result.report is None:
                logger.warning("Performance report unavailable: no defined strategy returns")
                metrics: dict[str, float | int] = {}
                interpretation: dict[str, str] = {}
            else:
                metrics = result.report.to_metrics()
                interpretation = interpret_report(result.report)
                logger.info(
                    "Key findings: %s",
                    ", ".join(f"{key}={value}" for key, value in interpretation.items()),
                )

        extra: dict[str, Any] = {
            "failed_symbols": list(universe.failed_symbols),
            "interpretation": interpretation,
            "latest_rebalance_date": latest_rebalance_date,
            "latest_groups": latest_groups,
        }
        if plot_error is not None:
            extra["plot_error"] = plot_error
        manifest_writer.mark_success(
            metrics=metrics,
            diagnostics=diagnostics,
            artifact_paths=artifact_paths,
            extra=extra,
        )
        manifest_path = manifest_writer.write()

        return StudyOutcome(
            run_id=run_id,
            run_dir=run_dir,
            symbols=list(universe.symbols),
            failed_symbols=list(universe.failed_symbols),
            benchmark=app_config.data.benchmark,
            metrics=metrics,
            report_available=result.report is not None,
            diagnostics=diagnostics,
            artifact_paths=sorted(artifact_paths),
            manifest_path=manifest_path,
            interpretation=interpretation,
            latest_rebalance_date=latest_rebalance_date,
            latest_groups=latest_groups,
            plot_error=plot_error,
        )
    except Exception as exc:
        if manifest_writer is not None:
            try:
                manifest_writer.mark_failure(exc)
                failure_path = manifest_writer.write()
                logger.error("Run failed; manifest written to %s", failure_path)
            except Exception as manifest_exc:
                logger.error("Failed to write failure manifest for run_study: %s", manifest_exc)
        raise


def load_run_manifest(run_dir: Path) -> dict[str, Any]:
    """
    Load a stored run manifest.

    Args:
        run_dir: Run artifact directory.

    Returns:
        Parsed manifest payload.

    Raises:
        ArtifactError: If the manifest is missing or unreadable.
    """
    manifest_path = run_dir.expanduser().resolve() / MANIFEST_NAME
    if not manifest_path.is_file():
        raise ArtifactError(f"Run manifest not found: {manifest_path}")
    try:
        payload = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ArtifactError(f"Failed to read run manifest {manifest_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ArtifactError(f"Run manifest {manifest_path} is not a JSON object.")
    return payload
