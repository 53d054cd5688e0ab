from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from gosentinel.engine.detection import detect
from gosentinel.engine.types import LintSummary
from gosentinel.rules.registry import builtin_rules
from gosentinel.scanner import (
    ScanTarget,
    discover_files,
    group_packages,
    load_source_files,
    prepare_target,
    worker_count_from_env,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LintResult:
    target: ScanTarget
    files: tuple[Path, ...]
    summary: LintSummary


@dataclass(frozen=True, slots=True)
class LintCallbacks:
    on_file_loaded: Callable[[Path], None] | None = None
    on_files_ready: Callable[[int], None] | None = None
    on_file_linted: Callable[[Path], None] | None = None


def lint_path(
    scan_path: Path,
    *,
    min_confidence: float | None = None,
    callbacks: LintCallbacks | None = None,
) -> LintResult:
    target = prepare_target(scan_path)
    if min_confidence is not None:
        target = replace(target, config=replace(target.config, confidence=min_confidence))
    return lint_files(target, files=discover_files(target), callbacks=callbacks)


def lint_files(target: ScanTarget, *, files: list[Path], callbacks: LintCallbacks | None = None) -> LintResult:
    workers = worker_count_from_env()
    logger.debug("linting %d file(s) with %d worker(s)", len(files), workers)

    sources = load_source_files(
        target.project_root,
        files,
        workers=workers,
        on_path_done=callbacks.on_file_loaded if callbacks else None,
    )
    packages = group_packages(sources)
    if callbacks is not None and callbacks.on_files_ready is not None:
        callbacks.on_files_ready(len(sources))

    rules = builtin_rules()
    known = {r.name for r in rules}
    for name in sorted(set(target.config.rules) - known):
        logger.warning("unknown rule in configuration: %s", name)

    violations = detect(
        target.config,
        rules,
        sources,
        workers=workers,
        on_file_done=callbacks.on_file_linted if callbacks else None,
    )
    summary = LintSummary(
        files_linted=len(sources),
        violations=tuple(violations),
        packages=len(packages),
        min_confidence=target.config.confidence,
    )
    return LintResult(target=target, files=tuple(files), summary=summary)
