from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from tree_sitter import Node

from gosentinel.engine.context import SourceFile
from gosentinel.engine.types import FAILURE_CATEGORY_INTERNAL, Failure, Location, Severity
from gosentinel.rules.arguments import ConfigurationError, RuleArguments


@dataclass(frozen=True, slots=True)
class RuleMeta:
    name: str
    title: str
    description: str
    default_severity: Severity


class ConfigureOnce:
    """
    Runs a rule's configuration step exactly once.

    The outcome is remembered: a configuration error is raised again on every
    later call without re-running the step.
    """

    __slots__ = ("_done", "_error", "_lock")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = False
        self._error: ConfigurationError | None = None

    def run(self, configure: Callable[[], None]) -> None:
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        configure()
                    except ConfigurationError as exc:
                        self._error = exc
                    finally:
                        self._done = True
        if self._error is not None:
            raise self._error


class Rule(ABC):
    meta: RuleMeta

    @property
    def name(self) -> str:
        return self.meta.name

    @abstractmethod
    def apply(self, file: SourceFile, arguments: RuleArguments) -> list[Failure]:
        raise NotImplementedError

    def _failure(
        self,
        file: SourceFile,
        node: Node,
        *,
        message: str,
        confidence: float,
        category: str | None = None,
    ) -> Failure:
        return Failure(
            message=message,
            confidence=confidence,
            category=category,
            location=loc_from_node(file, node),
            node=node,
        )


def loc_from_node(file: SourceFile, node: Node) -> Location:
    return Location(
        path=file.path,
        start_line=node.start_point[0] + 1,
        start_col=node.start_point[1] + 1,
        end_line=node.end_point[0] + 1,
        end_col=node.end_point[1] + 1,
    )


def internal_failure(file: SourceFile, error: Exception) -> Failure:
    return Failure(
        message=str(error),
        confidence=1.0,
        category=FAILURE_CATEGORY_INTERNAL,
        location=Location(path=file.path, start_line=1, start_col=1),
    )
