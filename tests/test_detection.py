from __future__ import annotations

from pathlib import Path

from helpers import make_source, write_go

from gosentinel.config import GoSentinelConfig, RuleSettings
from gosentinel.engine.detection import detect
from gosentinel.engine.types import Failure
from gosentinel.lint import lint_path
from gosentinel.rules.arguments import RuleArguments
from gosentinel.rules.base import Rule, RuleMeta
from gosentinel.rules.registry import builtin_rules

_SOURCE = """package demo

var count int = 5
var enabled bool = false // gosentinel:disable=var-declaration
"""


def _config(**rules: RuleSettings) -> GoSentinelConfig:
    return GoSentinelConfig(rules=rules)


def test_detect_applies_rules_and_suppressions() -> None:
    file = make_source(_SOURCE)
    violations = detect(_config(), builtin_rules(), [file])

    assert [(v.rule_id, v.category, v.severity) for v in violations] == [
        ("var-declaration", "type-inference", "warn"),
    ]


def test_confidence_threshold_drops_low_confidence_failures() -> None:
    file = make_source(_SOURCE)
    config = GoSentinelConfig(confidence=0.85)
    assert detect(config, builtin_rules(), [file]) == []


def test_disabled_rules_and_severity_overrides() -> None:
    file = make_source("package demo\n\nvar count int = 5\n")
    config = _config(
        **{
            "var-declaration": RuleSettings(severity="error"),
            "file-header": RuleSettings(arguments=("^Copyright",), disabled=True),
        }
    )
    violations = detect(config, builtin_rules(), [file])
    assert [(v.rule_id, v.severity) for v in violations] == [("var-declaration", "error")]


def test_internal_failures_are_errors_and_never_filtered(caplog) -> None:
    file = make_source("// gosentinel:disable-file=all\npackage demo\n")
    config = GoSentinelConfig(confidence=1.0, rules={"file-header": RuleSettings(arguments=(3,))})

    with caplog.at_level("ERROR"):
        violations = detect(config, builtin_rules(), [file])

    assert len(violations) == 1
    assert violations[0].is_internal
    assert violations[0].severity == "error"
    assert "file-header" in caplog.text


class _RecordingRule(Rule):
    meta = RuleMeta(name="recording", title="t", description="d", default_severity="info")

    def __init__(self) -> None:
        self.seen: list[tuple[str, tuple[object, ...]]] = []

    def apply(self, file, arguments: RuleArguments) -> list[Failure]:
        self.seen.append((file.relative_path, arguments.values))
        return []


def test_each_rule_gets_its_configured_arguments() -> None:
    rule = _RecordingRule()
    files = [make_source("package a\n", relpath="a.go"), make_source("package a\n", relpath="b.go")]
    config = GoSentinelConfig(rules={"recording": RuleSettings(arguments=("x", 1))})

    detect(config, [rule], files)
    assert rule.seen == [("a.go", ("x", 1)), ("b.go", ("x", 1))]


def test_parallel_lint_matches_serial(go_project: Path, monkeypatch) -> None:
    (go_project / "gosentinel.toml").write_text(
        '[rules.file-header]\narguments = ["^Copyright"]\n', encoding="utf-8"
    )
    content = "package demo\n\nvar count int = 5\nvar name string = \"\"\n"
    for name in ("alpha.go", "beta.go", "gamma.go", "delta.go"):
        write_go(go_project, name, content)
    write_go(go_project, "other/other.go", "// Copyright 2024\npackage other\n\nvar n int = count()\n\nfunc count() int { return 0 }\n")

    monkeypatch.setenv("GOSENTINEL_WORKERS", "1")
    serial = lint_path(go_project)

    monkeypatch.setenv("GOSENTINEL_WORKERS", "4")
    parallel = lint_path(go_project)

    assert serial.summary == parallel.summary
    assert serial.summary.files_linted == 5
    assert serial.summary.packages == 2
    assert {s.rule_id: s.count for s in serial.summary.rule_stats()} == {"file-header": 4, "var-declaration": 9}


def test_lint_path_confidence_override(go_project: Path) -> None:
    write_go(go_project, "main.go", "package main\n\nvar count int = 5\n")
    assert len(lint_path(go_project).summary.violations) == 1
    assert lint_path(go_project, min_confidence=0.9).summary.violations == ()


def test_unknown_rules_in_config_are_logged(go_project: Path, caplog) -> None:
    (go_project / "gosentinel.toml").write_text("[rules.no-such-rule]\ndisabled = true\n", encoding="utf-8")
    write_go(go_project, "main.go", "package main\n")
    with caplog.at_level("WARNING"):
        lint_path(go_project)
    assert "no-such-rule" in caplog.text
