from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

Severity = Literal["info", "warn", "error"]

FAILURE_CATEGORY_INTERNAL = "internal"


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Failure:
    """
    One finding produced by a rule for one file.

    `node` is the tree-sitter node the finding points at; it is kept for
    callers that want to inspect the tree and is excluded from equality.
    """

    message: str
    confidence: float = 1.0
    category: str | None = None
    location: Location | None = None
    node: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 < self.confidence <= 1.0:
            raise ValueError(f"failure confidence must be in (0, 1], got {self.confidence!r}")

    @property
    def is_internal(self) -> bool:
        return self.category == FAILURE_CATEGORY_INTERNAL


@dataclass(frozen=True, slots=True)
class Violation:
    rule_id: str
    severity: Severity
    message: str
    confidence: float
    category: str | None = None
    location: Location | None = None

    @property
    def is_internal(self) -> bool:
        return self.category == FAILURE_CATEGORY_INTERNAL


@dataclass(frozen=True, slots=True)
class RuleStats:
    rule_id: str
    count: int


@dataclass(frozen=True, slots=True)
class LintSummary:
    files_linted: int
    violations: tuple[Violation, ...]
    packages: int = 0
    min_confidence: float = 0.8

    @property
    def internal_errors(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.is_internal)

    @property
    def has_errors(self) -> bool:
        return any(v.severity == "error" for v in self.violations)

    def rule_stats(self) -> tuple[RuleStats, ...]:
        counts: dict[str, int] = {}
        for v in self.violations:
            counts[v.rule_id] = counts.get(v.rule_id, 0) + 1
        return tuple(RuleStats(rule_id=k, count=counts[k]) for k in sorted(counts))
