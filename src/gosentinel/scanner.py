from __future__ import annotations

import logging
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from gosentinel.config import CONFIG_FILENAME, GoSentinelConfig, load_config, path_is_ignored
from gosentinel.engine.context import Package, SourceFile
from gosentinel.utils import display_path

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    "vendor",
    "testdata",
    "node_modules",
}

GOSENTINEL_WORKERS_ENV = "GOSENTINEL_WORKERS"
DEFAULT_MAX_WORKERS = 32
_ROOT_MARKERS = (CONFIG_FILENAME, "go.mod", "pyproject.toml")


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: GoSentinelConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 or unparsable values fall back to the default
    - Values above `max_workers` are clamped
    """

    resolved_default = max(1, default if default is not None else (os.cpu_count() or 1))
    if raw_value is None or raw_value.strip().lower() in {"", "auto", "default"}:
        return min(resolved_default, max_workers)
    try:
        workers = int(raw_value.strip())
    except ValueError:
        return min(resolved_default, max_workers)
    if workers <= 0:
        return min(resolved_default, max_workers)
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(GOSENTINEL_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path) -> ScanTarget:
    """
    Resolve the project root and load its configuration.

    The project root is the closest directory at or above `scan_path` holding
    `gosentinel.toml`, `go.mod` or `pyproject.toml`; otherwise the scanned
    directory itself.
    """

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=load_config(project_root))


def discover_files(target: ScanTarget) -> list[Path]:
    scan_path = target.scan_path
    root = target.project_root
    ignore_patterns = target.config.ignore.paths

    if scan_path.is_file():
        if scan_path.suffix != ".go":
            return []
        if path_is_ignored(scan_path, project_root=root, ignore_patterns=ignore_patterns):
            return []
        return [scan_path]

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(scan_path, topdown=True):
        dirnames[:] = [d for d in dirnames if d not in DEFAULT_SKIP_DIRS and not d.startswith((".", "_"))]
        base = Path(dirpath)
        for filename in filenames:
            if not filename.endswith(".go") or filename.startswith((".", "_")):
                continue
            path = base / filename
            if path_is_ignored(path, project_root=root, ignore_patterns=ignore_patterns):
                logger.debug("ignoring %s", display_path(path, root))
                continue
            files.append(path)
    return sorted(set(files))


def load_source_file(root: Path, path: Path) -> SourceFile | None:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("skipping unreadable file %s: %s", path, exc)
        return None
    return SourceFile.from_text(text, path=path, relative_path=display_path(path, root))


def load_source_files(
    root: Path,
    paths: list[Path],
    *,
    workers: int = 1,
    on_path_done: Callable[[Path], None] | None = None,
) -> list[SourceFile]:
    """
    Read and parse `paths`, optionally in parallel.

    The result follows the order of `paths`, without the unreadable files.
    """

    files: list[SourceFile] = []
    if workers <= 1 or len(paths) <= 1:
        for path in paths:
            file = load_source_file(root, path)
            if on_path_done is not None:
                on_path_done(path)
            if file is not None:
                files.append(file)
        return files

    with ThreadPoolExecutor(max_workers=min(workers, len(paths))) as executor:
        for path, file in zip(paths, executor.map(partial(load_source_file, root), paths), strict=True):
            if on_path_done is not None:
                on_path_done(path)
            if file is not None:
                files.append(file)
    return files


def group_packages(files: list[SourceFile]) -> list[Package]:
    """
    Group files into packages by directory and package clause.

    External test packages (`package foo_test`) form their own package, as
    they do for the Go toolchain.
    """

    packages: dict[tuple[Path, str], Package] = {}
    for file in files:
        directory = file.path.parent
        name = file.package_name
        package = packages.get((directory, name))
        if package is None:
            package = Package(name=name, directory=directory)
            packages[(directory, name)] = package
        package.add(file)
    return list(packages.values())


def _detect_project_root(start: Path) -> Path:
    base = start if start.is_dir() else start.parent
    for candidate in (base, *base.parents):
        if any((candidate / marker).is_file() for marker in _ROOT_MARKERS):
            return candidate
    return base
