from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from gosentinel import __version__
from gosentinel.engine.types import LintSummary, Violation
from gosentinel.utils import display_path

REPORT_SCHEMA_VERSION = 1


def render_json(summary: LintSummary, *, project_root: Path) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "GoSentinel", "version": __version__},
        "files_linted": summary.files_linted,
        "packages": summary.packages,
        "min_confidence": summary.min_confidence,
        "rules": {s.rule_id: s.count for s in summary.rule_stats()},
        "violations": [_violation_to_dict(v, project_root=project_root) for v in summary.violations],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def _violation_to_dict(v: Violation, *, project_root: Path) -> dict[str, Any]:
    loc = None
    if v.location is not None and v.location.path is not None:
        loc = {
            "path": display_path(v.location.path, project_root),
            "start_line": v.location.start_line,
            "start_col": v.location.start_col,
            "end_line": v.location.end_line,
            "end_col": v.location.end_col,
        }

    return {
        "rule": v.rule_id,
        "severity": v.severity,
        "category": v.category,
        "confidence": v.confidence,
        "message": v.message,
        "location": loc,
    }
