"""Diagnostics report written next to the generated site."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List

from .errors import Diagnostic, count_by_category, sorted_diagnostics

REPORT_FILENAME = "diagnostics.json"


def build_report(diagnostics: Iterable[Diagnostic]) -> Dict[str, object]:
    """Group diagnostics by file and count them by category."""
    ordered = sorted_diagnostics(diagnostics)
    files: Dict[str, List[Dict[str, object]]] = {}
    for diagnostic in ordered:
        files.setdefault(diagnostic.path, []).append(diagnostic.to_dict())
    return {
        "summary": count_by_category(ordered),
        "files": files,
    }


def save_report(output_root: Path, report: Dict[str, object]) -> Path:
    output = output_root / REPORT_FILENAME
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(report, indent=2, sort_keys=True, ensure_ascii=False) + "\n", encoding="utf-8")
    return output


def format_summary(summary: Dict[str, int]) -> str:
    """One line such as ``2 broken-reference, 1 parse-error`` (or ``no issues``)."""
    parts = [f"{count} {category}" for category, count in summary.items() if count]
    return ", ".join(parts) if parts else "no issues"


__all__ = ["REPORT_FILENAME", "build_report", "format_summary", "save_report"]
