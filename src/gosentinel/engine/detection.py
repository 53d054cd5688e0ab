from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path

from gosentinel.config import GoSentinelConfig
from gosentinel.engine.context import SourceFile
from gosentinel.engine.types import Failure, Severity, Violation
from gosentinel.rules.arguments import RuleArguments
from gosentinel.rules.base import Rule

logger = logging.getLogger(__name__)


def detect(
    config: GoSentinelConfig,
    rules: Sequence[Rule],
    files: Iterable[SourceFile],
    *,
    workers: int | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> list[Violation]:
    """
    Run every enabled rule over every file.

    One rule instance serves all files, possibly from several threads at
    once. Violations come back grouped by file in input order, and in the
    order each rule reported them within a file.
    """

    enabled = [r for r in rules if config.is_enabled(r.name)]
    file_list = list(files)
    effective_workers = workers or 1

    violations: list[Violation] = []
    if effective_workers <= 1 or len(file_list) <= 1:
        for file in file_list:
            violations.extend(_detect_file(config, enabled, file))
            if on_file_done is not None:
                on_file_done(file.path)
        return violations

    max_workers = min(max(1, effective_workers), len(file_list))
    detect_file = partial(_detect_file, config, enabled)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for file, file_violations in zip(file_list, executor.map(detect_file, file_list), strict=True):
            violations.extend(file_violations)
            if on_file_done is not None:
                on_file_done(file.path)
    return violations


def _detect_file(config: GoSentinelConfig, rules: Iterable[Rule], file: SourceFile) -> list[Violation]:
    violations: list[Violation] = []
    for rule in rules:
        arguments = RuleArguments.of(config.settings_for(rule.name).arguments)
        severity = config.severity_for(rule.name)
        for failure in rule.apply(file, arguments):
            if failure.is_internal:
                logger.error("%s: rule %s failed: %s", file.relative_path, rule.name, failure.message)
                violations.append(_to_violation(rule.name, "error", failure))
                continue
            if failure.confidence < config.confidence:
                continue
            line = failure.location.start_line if failure.location else None
            if file.suppressions.is_suppressed(rule.name, line=line):
                continue
            violations.append(_to_violation(rule.name, severity, failure))
    return violations


def _to_violation(rule_name: str, severity: Severity, failure: Failure) -> Violation:
    return Violation(
        rule_id=rule_name,
        severity=severity,
        message=failure.message,
        confidence=failure.confidence,
        category=failure.category,
        location=failure.location,
    )
