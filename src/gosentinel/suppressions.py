from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Rule suppressions read from directives in Go comments.

    Supported directives (case-insensitive):
    - `//gosentinel:disable-file=file-header` (anywhere in the file)
    - `//gosentinel:disable=var-declaration` (that same line)
    - `//gosentinel:disable-next-line=var-declaration` (the following line)

    `all` disables every rule.
    """

    disabled_in_file: frozenset[str] = frozenset()
    disabled_on_line: Mapping[int, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))

    def is_suppressed(self, rule_name: str, *, line: int | None) -> bool:
        name = rule_name.lower()
        if "all" in self.disabled_in_file or name in self.disabled_in_file:
            return True
        if line is None:
            return False
        disabled = self.disabled_on_line.get(line)
        if not disabled:
            return False
        return "all" in disabled or name in disabled


_NAMES = r"(?P<names>[a-z0-9_,\-\s]+)"
_DISABLE_FILE_RE = re.compile(r"gosentinel:\s*disable[-_]?file\s*=\s*" + _NAMES, re.IGNORECASE)
_DISABLE_RE = re.compile(r"gosentinel:\s*disable\s*=\s*" + _NAMES, re.IGNORECASE)
_DISABLE_NEXT_RE = re.compile(r"gosentinel:\s*disable-next-line\s*=\s*" + _NAMES, re.IGNORECASE)


def parse_suppressions(lines: Sequence[str]) -> Suppressions:
    disabled_in_file: set[str] = set()
    disabled_on_line: dict[int, set[str]] = {}

    for lineno, line in enumerate(lines, start=1):
        if "gosentinel" not in line.lower():
            continue

        match = _DISABLE_FILE_RE.search(line)
        if match:
            disabled_in_file.update(_parse_names(match.group("names")))

        match = _DISABLE_RE.search(line)
        if match:
            disabled_on_line.setdefault(lineno, set()).update(_parse_names(match.group("names")))

        match = _DISABLE_NEXT_RE.search(line)
        if match:
            disabled_on_line.setdefault(lineno + 1, set()).update(_parse_names(match.group("names")))

    frozen = {lineno: frozenset(names) for lineno, names in disabled_on_line.items()}
    return Suppressions(disabled_in_file=frozenset(disabled_in_file), disabled_on_line=MappingProxyType(frozen))


def _parse_names(value: str) -> set[str]:
    return {token.lower() for token in re.split(r"[,\s]+", value.strip()) if token}
