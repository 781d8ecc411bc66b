"""Typer CLI entrypoint for zonefetch."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, HarvestConfig
from .engine import RemoteEntry
from .errors import ConfigurationError, FatalError
from .logging_conf import ERROR_LOG_NAME, RUN_LOG_NAME, configure_logging, current_log_dir, tail_log
from .orchestrator import Orchestrator, RunSummary
from .ui import ProgressReporter

app = typer.Typer(
    help="Fetch DNS zone files over FTP and consolidate their records into one text file.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Inspect or initialise the configuration.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Read the run logs.", no_args_is_help=True)
app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")

console = Console()

OrchestratorFactory = Callable[[HarvestConfig, Optional[Path]], Orchestrator]


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator_factory: OrchestratorFactory


def _default_orchestrator(config: HarvestConfig, output_path: Path | None) -> Orchestrator:
    return Orchestrator(config, output_path=output_path)


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(repository=ConfigRepository(), orchestrator_factory=_default_orchestrator)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _load_config(state: AppState, overrides: dict[str, Any]) -> HarvestConfig:
    try:
        return state.repository.load(overrides)
    except (ValidationError, ValueError) as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=2) from exc


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _render_summary_table(summary: RunSummary) -> Table:
    title = "Run summary (cancelled)" if summary.cancelled else "Run summary"
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Listed entries", str(summary.listed))
    table.add_row("Canonical entries", str(summary.entries))
    table.add_row("Succeeded", str(summary.success))
    table.add_row("Failed", str(summary.failed))
    if summary.not_dispatched:
        table.add_row("Not dispatched", str(summary.not_dispatched))
    table.add_row("Records", str(summary.records))
    table.add_row("Record errors", str(summary.record_errors))
    table.add_row("Lines written", str(summary.lines_written))
    table.add_row("Duration", f"{summary.duration:.1f}s")
    table.add_row("Output", str(summary.output_path))
    return table


def _render_failures_table(failures: dict[str, str]) -> Table:
    table = Table(title="Failed entries", box=box.SIMPLE_HEAD)
    table.add_column("Entry", style="yellow", no_wrap=True)
    table.add_column("Reason", style="red", overflow="fold")
    for name, reason in sorted(failures.items()):
        table.add_row(name, reason)
    return table


def _render_listing_table(entries: Sequence[RemoteEntry], canonical: set[str]) -> Table:
    table = Table(title=f"Remote listing · {len(entries)} entries", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Type", style="magenta")
    table.add_column("Selected", justify="center")
    for entry in entries:
        table.add_row(
            entry.name,
            _format_size(entry.size),
            "dir" if entry.is_directory else "file",
            "✓" if entry.name in canonical else "",
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Fetch, parse and consolidate every canonical zone file.")
def run_command(
    ctx: typer.Context,
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Number of concurrent workers."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Destination text file."),
    host: Optional[str] = typer.Option(None, "--host", help="FTP host (overrides zf_ftp_host)."),
    user: Optional[str] = typer.Option(None, "--user", help="FTP user (overrides zf_user)."),
    password: Optional[str] = typer.Option(None, "--password", help="FTP password (overrides zf_pass)."),
    remote_path: Optional[str] = typer.Option(None, "--remote-path", help="Remote directory to list."),
    origin: Optional[str] = typer.Option(None, "--origin", help="Default $ORIGIN for files without one."),
    deadline: Optional[float] = typer.Option(None, "--deadline", help="Cancel the run after N seconds."),
    no_filter: bool = typer.Option(False, "--no-filter", help="Process plain files even when a .gz twin exists."),
    keep_order: bool = typer.Option(False, "--keep-order", help="Dispatch in listing order instead of largest first."),
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result only."),
) -> None:
    state = _get_state(ctx)
    transfer: dict[str, Any] = {}
    pipeline: dict[str, Any] = {}
    for key, value in (("host", host), ("username", user), ("password", password), ("remote_path", remote_path)):
        if value is not None:
            transfer[key] = value
    for key, value in (
        ("workers", workers),
        ("output_path", output),
        ("default_origin", origin),
        ("deadline_seconds", deadline),
    ):
        if value is not None:
            pipeline[key] = value
    if no_filter:
        pipeline["prefer_compressed"] = False
    if keep_order:
        pipeline["largest_first"] = False
    config = _load_config(state, {"transfer": transfer, "pipeline": pipeline})

    output_path = config.resolved_output_path(Path.cwd())
    orchestrator = state.orchestrator_factory(config, output_path)
    progress = ProgressReporter(enabled=not quiet)
    try:
        summary = orchestrator.run(progress=progress)
    except ConfigurationError as exc:
        console.print(f"Configuration error: {exc}", style="red")
        raise typer.Exit(code=2) from exc
    except FatalError as exc:
        console.print(f"Run aborted: {exc}", style="red")
        raise typer.Exit(code=1) from exc

    if quiet:
        console.print(
            f"done: {summary.success} ok, {summary.failed} failed, "
            f"{summary.lines_written} lines -> {summary.output_path}"
        )
        return
    console.print(_render_summary_table(summary))
    if summary.failures:
        console.print(_render_failures_table(summary.failures))


@app.command("list", help="Show the remote listing and which entries would be processed.")
def list_command(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="FTP host (overrides zf_ftp_host)."),
    remote_path: Optional[str] = typer.Option(None, "--remote-path", help="Remote directory to list."),
    show_all: bool = typer.Option(
        False, "--all", help="Include entries that would be skipped (plain twins, directories)."
    ),
) -> None:
    state = _get_state(ctx)
    transfer: dict[str, Any] = {}
    if host is not None:
        transfer["host"] = host
    if remote_path is not None:
        transfer["remote_path"] = remote_path
    config = _load_config(state, {"transfer": transfer})
    orchestrator = state.orchestrator_factory(config, None)
    try:
        entries = orchestrator.list_entries()
    except ConfigurationError as exc:
        console.print(f"Configuration error: {exc}", style="red")
        raise typer.Exit(code=2) from exc
    except FatalError as exc:
        console.print(f"Listing failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    selected = orchestrator.canonical_entries(entries)
    canonical = {entry.name for entry in selected}
    console.print(_render_listing_table(entries if show_all else selected, canonical))


@config_app.command("show", help="Print the effective configuration (password masked).")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = _load_config(state, {})
    console.print(
        yaml.safe_dump(config.masked_dump(), allow_unicode=True, sort_keys=False),
        markup=False,
        highlight=False,
    )


@config_app.command("init", help="Write a default configuration file if none exists.")
def config_init(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    path = state.repository.ensure_default()
    console.print(f"Configuration file: {path}")


@log_app.command("tail", help="Show the last lines of the run log.")
def log_tail(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Read the error log instead."),
) -> None:
    path = current_log_dir() / (ERROR_LOG_NAME if errors else RUN_LOG_NAME)
    content = tail_log(path, lines)
    if not content:
        console.print(f"No log lines in {path}", style="yellow")
        raise typer.Exit(code=0)
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


__all__ = ["AppState", "app", "build_state"]
