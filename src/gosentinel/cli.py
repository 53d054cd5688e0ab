from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gosentinel import __version__
from gosentinel.config import ConfigError
from gosentinel.engine.types import LintSummary
from gosentinel.lint import LintCallbacks, LintResult, lint_path
from gosentinel.logging_utils import configure_logging
from gosentinel.reporters.json_reporter import render_json
from gosentinel.reporters.terminal import render_terminal

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="GoSentinel: style linter for Go declarations and file headers.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

EXIT_VIOLATIONS = 1
EXIT_INTERNAL = 2


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for long runs.", show_default=True),
    ] = True,
) -> None:
    """GoSentinel CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "progress": bool(ctx.obj.get("progress", True)),
    }


def _emit_output(fmt: str, *, summary: LintSummary, project_root: Path, show_details: bool) -> None:
    normalized = fmt.strip().lower()
    if normalized == "terminal":
        render_terminal(summary, project_root=project_root, console=console, show_details=show_details)
        return
    if normalized == "json":
        typer.echo(render_json(summary, project_root=project_root))
        return
    raise typer.BadParameter("Unsupported format. Use: terminal, json.")


def _lint_with_optional_progress(path: Path, *, min_confidence: float | None, show_progress: bool) -> LintResult:
    if not show_progress:
        return lint_path(path, min_confidence=min_confidence)

    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )
    parse_task = progress.add_task("Parse", total=None)
    lint_task = progress.add_task("Lint", total=1)

    callbacks = LintCallbacks(
        on_file_loaded=lambda _path: progress.advance(parse_task, 1),
        on_files_ready=lambda total: progress.update(lint_task, total=total, completed=0),
        on_file_linted=lambda _path: progress.advance(lint_task, 1),
    )
    with progress:
        return lint_path(path, min_confidence=min_confidence, callbacks=callbacks)


@app.command()
def lint(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="Go file or directory to lint (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
    confidence: Annotated[
        float | None,
        typer.Option("--confidence", min=0.0, max=1.0, help="Drop findings below this confidence (default: config, 0.8)."),
    ] = None,
) -> None:
    """Lint Go sources."""

    settings = _cli_settings()
    normalized = output_format.strip().lower()
    if normalized not in {"terminal", "json"}:
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    try:
        result = _lint_with_optional_progress(
            path,
            min_confidence=confidence,
            show_progress=settings["progress"] and not settings["quiet"] and normalized == "terminal",
        )
    except ConfigError as exc:
        err_console.print(f"Configuration error: {exc}", markup=False)
        raise typer.Exit(code=EXIT_INTERNAL) from exc

    _emit_output(
        normalized,
        summary=result.summary,
        project_root=result.target.project_root,
        show_details=not settings["quiet"],
    )

    if result.summary.internal_errors:
        raise typer.Exit(code=EXIT_INTERNAL)
    if result.summary.has_errors:
        raise typer.Exit(code=EXIT_VIOLATIONS)


@app.command()
def rules(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List the available rules and how the current configuration sets them up.
    """

    from gosentinel.rules.registry import builtin_rules
    from gosentinel.scanner import prepare_target

    try:
        target = prepare_target(path)
    except ConfigError as exc:
        err_console.print(f"Configuration error: {exc}", markup=False)
        raise typer.Exit(code=EXIT_INTERNAL) from exc

    rows = []
    for rule in builtin_rules():
        meta = rule.meta
        settings = target.config.settings_for(meta.name)
        rows.append(
            {
                "name": meta.name,
                "enabled": not settings.disabled,
                "title": meta.title,
                "description": meta.description,
                "default_severity": meta.default_severity,
                "severity": target.config.severity_for(meta.name),
                "arguments": list(settings.arguments),
            }
        )

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="GoSentinel Rules")
    table.add_column("Name", style="bold")
    table.add_column("Enabled", justify="center")
    table.add_column("Severity")
    table.add_column("Arguments")
    table.add_column("Title")
    for row in rows:
        table.add_row(
            str(row["name"]),
            "yes" if row["enabled"] else "no",
            str(row["severity"]),
            escape(", ".join(repr(a) for a in row["arguments"])) or "-",
            str(row["title"]),
        )
    console.print(table)
