from __future__ import annotations

from pathlib import Path


def display_path(path: Path, root: Path) -> str:
    """
    Return the POSIX form of `path` relative to `root` for report output.

    Paths outside `root` (or that cannot be resolved) are returned as given.
    """

    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except (OSError, ValueError):
        return path.as_posix()
