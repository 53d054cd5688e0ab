from __future__ import annotations

from pathlib import Path

import pytest

from gosentinel.config import ConfigError, GoSentinelConfig, RuleSettings, load_config, path_is_ignored


def test_defaults_without_config(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    assert config == GoSentinelConfig()
    assert config.confidence == 0.8
    assert config.severity == "warn"
    assert config.settings_for("file-header") == RuleSettings()


def test_dedicated_file_is_read(tmp_path: Path) -> None:
    (tmp_path / "gosentinel.toml").write_text(
        """
confidence = 0.9
severity = "warning"

[ignore]
paths = ["gen/"]

[rules.file-header]
arguments = ["^// Copyright"]
severity = "error"

[rules.var-declaration]
disabled = true
""".lstrip(),
        encoding="utf-8",
    )

    config = load_config(tmp_path)
    assert config.confidence == 0.9
    assert config.severity == "warn"
    assert config.ignore.paths == ("gen/",)
    assert config.settings_for("file-header").arguments == ("^// Copyright",)
    assert config.severity_for("file-header") == "error"
    assert config.severity_for("var-declaration") == "warn"
    assert not config.is_enabled("var-declaration")
    assert config.source == tmp_path / "gosentinel.toml"


def test_pyproject_table_is_read(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        '[tool.gosentinel]\nconfidence = 1\n\n[tool.gosentinel.rules.FILE-HEADER]\narguments = [1]\n',
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.confidence == 1.0
    assert config.settings_for("file-header").arguments == (1,)


def test_pyproject_without_table_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
    assert load_config(tmp_path) == GoSentinelConfig()


def test_dedicated_file_wins_over_pyproject(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.gosentinel]\nconfidence = 0.1\n", encoding="utf-8")
    (tmp_path / "gosentinel.toml").write_text("confidence = 0.5\n", encoding="utf-8")
    assert load_config(tmp_path).confidence == 0.5


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("confidence = 2\n", "between 0 and 1"),
        ('confidence = "high"\n', "must be a number"),
        ("confidence = true\n", "must be a number"),
        ('severity = "fatal"\n', "one of: info, warn, error"),
        ("rules = 1\n", "`rules` must be a table"),
        ('[rules.file-header]\narguments = "x"\n', "arguments` must be a list"),
        ('[rules.file-header]\ndisabled = "yes"\n', "disabled` must be a boolean"),
        ("[ignore]\npaths = [1]\n", "list of strings"),
        ("confidence = \n", "Invalid TOML"),
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / "gosentinel.toml").write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)


def test_path_is_ignored_patterns(tmp_path: Path) -> None:
    root = tmp_path
    patterns = ["gen/", "*_string.go", "internal/**/mock_*.go"]

    assert path_is_ignored(root / "gen" / "a.go", project_root=root, ignore_patterns=patterns)
    assert path_is_ignored(root / "pkg" / "kind_string.go", project_root=root, ignore_patterns=patterns)
    assert path_is_ignored(root / "internal" / "x" / "mock_db.go", project_root=root, ignore_patterns=patterns)
    assert not path_is_ignored(root / "pkg" / "kind.go", project_root=root, ignore_patterns=patterns)
    assert not path_is_ignored(Path("/elsewhere/gen/a.go"), project_root=root, ignore_patterns=patterns)
