from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


class ConfigurationError(ValueError):
    """Raised when a rule receives arguments it cannot use."""


@dataclass(frozen=True, slots=True)
class RuleArguments:
    """Positional, untyped arguments configured for one rule."""

    values: tuple[Any, ...] = ()

    @classmethod
    def of(cls, values: Iterable[Any] | None) -> RuleArguments:
        return cls(values=tuple(values or ()))

    def string_at(self, index: int, *, rule: str) -> str | None:
        """
        Return argument `index` as a string, or None when it was not supplied.

        Any other value is a configuration error for `rule`.
        """

        if index >= len(self.values):
            return None
        value = self.values[index]
        if not isinstance(value, str):
            raise ConfigurationError(
                f'invalid argument for "{rule}" rule: argument should be a string, got {_type_name(value)}'
            )
        return value


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "table"
    return type(value).__name__
