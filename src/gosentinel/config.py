from __future__ import annotations

import fnmatch
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, cast

from gosentinel.engine.types import Severity


class ConfigError(ValueError):
    """Raised when a GoSentinel configuration file is invalid."""


CONFIG_FILENAME = "gosentinel.toml"
DEFAULT_CONFIDENCE = 0.8
DEFAULT_SEVERITY: Severity = "warn"


@dataclass(frozen=True, slots=True)
class RuleSettings:
    arguments: tuple[Any, ...] = ()
    severity: Severity | None = None
    disabled: bool = False


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GoSentinelConfig:
    confidence: float = DEFAULT_CONFIDENCE
    severity: Severity = DEFAULT_SEVERITY
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    rules: Mapping[str, RuleSettings] = field(default_factory=lambda: MappingProxyType({}))
    source: Path | None = None

    def settings_for(self, rule_name: str) -> RuleSettings:
        return self.rules.get(rule_name, _DEFAULT_RULE_SETTINGS)

    def severity_for(self, rule_name: str) -> Severity:
        return self.settings_for(rule_name).severity or self.severity

    def is_enabled(self, rule_name: str) -> bool:
        return not self.settings_for(rule_name).disabled


_DEFAULT_RULE_SETTINGS = RuleSettings()


def load_config(project_dir: Path | str = ".") -> GoSentinelConfig:
    """
    Load configuration for the project rooted at `project_dir`.

    `gosentinel.toml` (settings at the top level) wins over a
    `[tool.gosentinel]` table in `pyproject.toml`. Without either, defaults
    apply.
    """

    project_dir_path = Path(project_dir)
    dedicated = project_dir_path / CONFIG_FILENAME
    if dedicated.is_file():
        return _parse_table(_read_toml(dedicated), prefix="", source=dedicated)

    pyproject = project_dir_path / "pyproject.toml"
    if pyproject.is_file():
        data = _read_toml(pyproject)
        tool = data.get("tool", {})
        table = tool.get("gosentinel") if isinstance(tool, dict) else None
        if table is None:
            return GoSentinelConfig()
        if not isinstance(table, dict):
            raise ConfigError("`tool.gosentinel` must be a table.")
        return _parse_table(table, prefix="tool.gosentinel.", source=pyproject)

    return GoSentinelConfig()


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc


def _parse_table(table: dict[str, Any], *, prefix: str, source: Path) -> GoSentinelConfig:
    confidence_raw = table.get("confidence", DEFAULT_CONFIDENCE)
    if isinstance(confidence_raw, bool) or not isinstance(confidence_raw, (int, float)):
        raise ConfigError(f"`{prefix}confidence` must be a number.")
    confidence = float(confidence_raw)
    if not 0.0 <= confidence <= 1.0:
        raise ConfigError(f"`{prefix}confidence` must be between 0 and 1.")

    severity = DEFAULT_SEVERITY
    if "severity" in table:
        severity = _validate_severity(table["severity"], field_name=f"{prefix}severity")

    return GoSentinelConfig(
        confidence=confidence,
        severity=severity,
        ignore=_parse_ignore_config(table.get("ignore"), prefix=prefix),
        rules=_parse_rules(table.get("rules"), prefix=prefix),
        source=source,
    )


def _validate_severity(value: Any, *, field_name: str) -> Severity:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = value.strip().lower()
    if normalized == "warning":
        normalized = "warn"
    if normalized not in {"info", "warn", "error"}:
        raise ConfigError(f"`{field_name}` must be one of: info, warn, error.")
    return cast(Severity, normalized)


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def _parse_ignore_config(value: Any, *, prefix: str) -> IgnoreConfig:
    if value is None:
        return IgnoreConfig()
    if not isinstance(value, dict):
        raise ConfigError(f"`{prefix}ignore` must be a table.")
    return IgnoreConfig(paths=_validate_str_list(value.get("paths", []), field_name=f"{prefix}ignore.paths"))


def _parse_rules(value: Any, *, prefix: str) -> Mapping[str, RuleSettings]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, dict):
        raise ConfigError(f"`{prefix}rules` must be a table.")

    out: dict[str, RuleSettings] = {}
    for raw_name, sub in value.items():
        field_name = f"{prefix}rules.{raw_name}"
        if not isinstance(sub, dict):
            raise ConfigError(f"`{field_name}` must be a table.")

        arguments = sub.get("arguments", [])
        if not isinstance(arguments, list):
            raise ConfigError(f"`{field_name}.arguments` must be a list.")

        severity = sub.get("severity")
        disabled = sub.get("disabled", False)
        if not isinstance(disabled, bool):
            raise ConfigError(f"`{field_name}.disabled` must be a boolean.")

        out[str(raw_name).strip().lower()] = RuleSettings(
            arguments=tuple(arguments),
            severity=_validate_severity(severity, field_name=f"{field_name}.severity") if severity is not None else None,
            disabled=disabled,
        )
    return MappingProxyType(out)


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore pattern.

    Patterns are matched against the POSIX path relative to `project_root`:
    - "gen/" matches everything below the `gen` directory.
    - "*_string.go" (no slash) matches basenames.
    - "internal/**/mock_*.go" (with a slash) matches the whole relative path.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False

    rel_posix = relative.as_posix()
    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if pattern.startswith("./"):
            pattern = pattern[2:]
        if not pattern:
            continue

        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
        elif "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        elif fnmatch.fnmatch(relative.name, pattern) or fnmatch.fnmatch(rel_posix, pattern):
            return True
    return False
