from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console

from gosentinel.engine.types import FAILURE_CATEGORY_INTERNAL, LintSummary, Location, Violation
from gosentinel.reporters.json_reporter import render_json
from gosentinel.reporters.terminal import render_terminal


def _summary(root: Path) -> LintSummary:
    return LintSummary(
        files_linted=2,
        packages=1,
        violations=(
            Violation(
                rule_id="var-declaration",
                severity="warn",
                message="should drop = 0 from declaration of var n; it is the zero value",
                confidence=0.9,
                category="zero-value",
                location=Location(path=root / "main.go", start_line=3, start_col=13, end_line=3, end_col=14),
            ),
            Violation(
                rule_id="file-header",
                severity="error",
                message='invalid argument for "file-header" rule: argument should be a string, got int',
                confidence=1.0,
                category=FAILURE_CATEGORY_INTERNAL,
                location=Location(path=root / "main.go", start_line=1, start_col=1),
            ),
        ),
    )


def test_json_reporter(tmp_path: Path) -> None:
    data = json.loads(render_json(_summary(tmp_path), project_root=tmp_path))

    assert data["tool"]["name"] == "GoSentinel"
    assert data["files_linted"] == 2
    assert data["rules"] == {"file-header": 1, "var-declaration": 1}
    first = data["violations"][0]
    assert first["location"] == {"path": "main.go", "start_line": 3, "start_col": 13, "end_line": 3, "end_col": 14}
    assert first["category"] == "zero-value"


def test_terminal_reporter_shows_source_lines(tmp_path: Path) -> None:
    (tmp_path / "main.go").write_text("package main\n\nvar n int = 0\n", encoding="utf-8")
    console = Console(record=True, width=200)

    render_terminal(_summary(tmp_path), project_root=tmp_path, console=console)
    out = console.export_text()

    assert "main.go" in out
    assert "var n int = 0" in out
    assert "2 problem(s)" in out
    assert out.index("file-header") < out.index("var-declaration  (3:13)")


def test_terminal_reporter_summary_only(tmp_path: Path) -> None:
    console = Console(record=True, width=200)
    render_terminal(_summary(tmp_path), project_root=tmp_path, console=console, show_details=False)
    out = console.export_text()
    assert "var n int = 0" not in out
    assert "var-declaration=1" in out
