from __future__ import annotations

from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from gosentinel import __version__
from gosentinel.engine.types import LintSummary, Violation
from gosentinel.utils import display_path

_SEVERITY_ICON = {"error": "✖", "warn": "⚠", "info": "ℹ"}
_SEVERITY_STYLE = {"error": "bold red", "warn": "yellow", "info": "dim"}


def render_terminal(summary: LintSummary, *, project_root: Path, console: Console, show_details: bool = True) -> None:
    header = Text()
    header.append("GoSentinel ", style="bold")
    header.append(f"v{__version__}", style="dim")

    console.print(
        Panel(
            header,
            subtitle=f"Linted {summary.files_linted} files in {summary.packages} packages",
            border_style="cyan",
        )
    )

    if show_details:
        by_file: dict[str, list[Violation]] = defaultdict(list)
        for v in summary.violations:
            path = v.location.path if v.location is not None else None
            by_file[display_path(path, project_root) if path is not None else "<unknown>"].append(v)

        for file_path in sorted(by_file):
            console.print(Text(file_path, style="bold"))
            file_lines = _read_lines(project_root / file_path)
            for v in sorted(by_file[file_path], key=_sort_key):
                _print_violation(console, v, file_lines=file_lines)
            console.print()

    _print_summary(summary, console=console)


def _print_violation(console: Console, v: Violation, *, file_lines: list[str]) -> None:
    icon = _SEVERITY_ICON.get(v.severity, "•")
    style = _SEVERITY_STYLE.get(v.severity, "")

    loc = ""
    if v.location is not None and v.location.start_line is not None:
        loc = f"{v.location.start_line}"
        if v.location.start_col is not None:
            loc += f":{v.location.start_col}"

    line = Text()
    line.append(f"  {icon} ", style=style)
    line.append(v.rule_id, style="bold")
    if loc:
        line.append(f"  ({loc})", style="dim")
    line.append(f"  {v.message}")
    if not v.is_internal:
        line.append(f"  [{v.confidence:.2f}]", style="dim")
    console.print(line)

    if v.location is not None and v.location.start_line is not None:
        idx = v.location.start_line - 1
        if 0 <= idx < len(file_lines):
            console.print(f"     {v.location.start_line:>4} │ {file_lines[idx]}", style="dim", markup=False)


def _print_summary(summary: LintSummary, *, console: Console) -> None:
    console.print(Text("─" * 60, style="dim"))
    if not summary.violations:
        console.print(Text("No problems found.", style="bold green"))
    else:
        stats = ", ".join(f"{s.rule_id}={s.count}" for s in summary.rule_stats())
        console.print(Text(f"{len(summary.violations)} problem(s): {stats}", style="bold"))
    console.print(Text(f"Minimum confidence: {summary.min_confidence:.2f}", style="dim"))
    console.print(Text("─" * 60, style="dim"))


def _sort_key(v: Violation) -> tuple[int, int, int, str]:
    severity_rank = {"error": 0, "warn": 1, "info": 2}.get(v.severity, 3)
    line = v.location.start_line if v.location and v.location.start_line else 10**9
    col = v.location.start_col if v.location and v.location.start_col else 0
    return line, col, severity_rank, v.rule_id


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []
