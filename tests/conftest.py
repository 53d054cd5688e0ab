from __future__ import annotations

from pathlib import Path

import pytest

from gosentinel.config import GoSentinelConfig
from gosentinel.scanner import ScanTarget


@pytest.fixture()
def go_project(tmp_path: Path) -> Path:
    (tmp_path / "go.mod").write_text("module example.com/demo\n\ngo 1.22\n", encoding="utf-8")
    return tmp_path


@pytest.fixture()
def scan_target(go_project: Path) -> ScanTarget:
    return ScanTarget(project_root=go_project, scan_path=go_project, config=GoSentinelConfig())


@pytest.fixture(autouse=True)
def _single_worker(monkeypatch) -> None:
    monkeypatch.delenv("GOSENTINEL_WORKERS", raising=False)
