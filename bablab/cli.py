"""BabLab command-line interface."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from bablab.core.services.research_service import StudyOutcome, load_run_manifest, run_study
from bablab.core.utils.errors import exit_code_for_exception
from bablab.core.utils.logging import configure_logging, get_logger

app = typer.Typer(help="BabLab CLI", no_args_is_help=True)

RUN_CONFIG_OPTION = typer.Option(
    ...,
    "--config",
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="Path to YAML configuration file.",
)
RUN_LOG_LEVEL_OPTION = typer.Option("INFO", "--log-level", help="Logging level.")
SHOW_RUN_DIR_OPTION = typer.Option(
    ...,
    "--run-dir",
    file_okay=False,
    dir_okay=True,
    resolve_path=True,
    help="Run artifact directory containing run_manifest.json.",
)

METRIC_ORDER: tuple[str, ...] = (
    "n_observations",
    "total_return",
    "annualized_return",
    "annualized_volatility",
    "sharpe_ratio",
    "max_drawdown",
    "capm_alpha",
    "capm_alpha_annualized",
    "capm_alpha_tstat",
    "capm_alpha_pvalue",
    "capm_beta",
    "capm_beta_tstat",
    "capm_beta_pvalue",
    "capm_r_squared",
    "capm_n_observations",
    "capm_nw_lags",
)


@app.callback()
def callback() -> None:
    """BabLab CLI commands."""


def _format_metric(value: Any) -> str:
    """Format counts as integers and statistics with six decimals."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return f"{float(value):.6f}"


def _print_metrics(metrics: dict[str, Any]) -> None:
    """Print report metrics in deterministic order."""
    if not metrics:
        typer.echo("report=unavailable")
        return
    for key in METRIC_ORDER:
        if key in metrics:
            typer.echo(f"{key}={_format_metric(metrics[key])}")
    if "capm_alpha" not in metrics:
        typer.echo("regression=unavailable")


def _print_diagnostics(diagnostics: dict[str, Any]) -> None:
    """Print succeeded/skipped counters."""
    for key in sorted(diagnostics):
        typer.echo(f"{key}={diagnostics[key]}")


def _print_findings(interpretation: dict[str, Any]) -> None:
    """Print alpha, Sharpe and drawdown labels."""
    for key in sorted(interpretation):
        typer.echo(f"{key}={interpretation[key]}")


def _print_groups(rebalance_date: str | None, groups: dict[str, list[str]]) -> None:
    """Print group sizes and the first members on the latest rebalancing date."""
    if rebalance_date is None:
        typer.echo("latest_rebalance=unavailable")
        return
    typer.echo(f"latest_rebalance={rebalance_date}")
    for group_name, members in groups.items():
        typer.echo(f"{group_name}={len(members)} ({','.join(members[:3])})")


def _handle_cli_exception(logger_name: str, context: str, exc: Exception) -> None:
    """Log diagnostics and exit with typed code."""
    logger = get_logger(logger_name)
    logger.exception("%s failed: %s", context, exc)
    raise typer.Exit(code=exit_code_for_exception(exc)) from None


def _print_outcome(outcome: StudyOutcome) -> None:
    typer.echo("strategy=betting_against_beta")
    typer.echo(f"benchmark={outcome.benchmark}")
    typer.echo(f"symbols={','.join(sorted(outcome.symbols))}")
    if outcome.failed_symbols:
        typer.echo(f"failed_symbols={','.join(sorted(outcome.failed_symbols))}")
    _print_metrics(outcome.metrics)
    _print_findings(outcome.interpretation)
    _print_groups(outcome.latest_rebalance_date, outcome.latest_groups)
    _print_diagnostics(outcome.diagnostics)
    if outcome.plot_error is not None:
        typer.echo(f"plots=unavailable ({outcome.plot_error})")
    typer.echo(f"run_id={outcome.run_id}")
    typer.echo(f"run_dir={outcome.run_dir}")
    for path in outcome.artifact_paths:
        typer.echo(f"artifact={path}")
    typer.echo(f"manifest={outcome.manifest_path}")


@app.command("run")
def run(
    config: Path = RUN_CONFIG_OPTION,
    log_level: str = RUN_LOG_LEVEL_OPTION,
) -> None:
    """Run a Betting-Against-Beta study and persist its artifacts."""
    configure_logging(log_level)
    logger_name = __name__

    try:
        outcome = run_study(config_path=config)
    except Exception as exc:
        _handle_cli_exception(logger_name=logger_name, context="Run command", exc=exc)

    _print_outcome(outcome)


@app.command("show")
def show(run_dir: Path = SHOW_RUN_DIR_OPTION) -> None:
    """Show one stored run manifest."""
    configure_logging()
    logger_name = __name__

    try:
        manifest = load_run_manifest(run_dir)
    except Exception as exc:
        _handle_cli_exception(logger_name=logger_name, context="Show command", exc=exc)

    context = manifest.get("context", {})
    result = manifest.get("result", {})
    date_range = context.get("date_range", {})
    typer.echo(f"run_id={manifest.get('run_id')}")
    typer.echo(f"status={manifest.get('status')}")
    typer.echo(f"started_at={manifest.get('started_at')}")
    typer.echo(f"benchmark={context.get('benchmark')}")
    typer.echo(f"date_range=[{date_range.get('start')}, {date_range.get('end')}]")
    if manifest.get("status") != "success":
        failure = manifest.get("failure", {})
        typer.echo(f"failure={failure.get('exception_type')}: {failure.get('message')}")
        return

    typer.echo("metrics:")
    _print_metrics(result.get("metrics", {}))
    extra = result.get("extra", {})
    typer.echo("findings:")
    _print_findings(extra.get("interpretation", {}))
    typer.echo("groups:")
    _print_groups(extra.get("latest_rebalance_date"), extra.get("latest_groups", {}))
    typer.echo("diagnostics:")
    _print_diagnostics(result.get("diagnostics", {}))
    if "plot_error" in extra:
        typer.echo(f"plots=unavailable ({extra['plot_error']})")
    typer.echo("artifact_paths:")
    artifact_paths = result.get("artifact_paths", [])
    if artifact_paths:
        for path in artifact_paths:
            typer.echo(f"- {path}")
    else:
        typer.echo("-")


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
