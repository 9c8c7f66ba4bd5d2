"""Exceptions and diagnostic records shared across the build pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class PodSiteError(RuntimeError):
    """Base class for podsite failures."""


class ConfigError(PodSiteError):
    """Raised when the configuration file cannot be parsed."""


class FatalLoadError(PodSiteError):
    """Raised when a single source file cannot be read.

    The orchestrator records it as a diagnostic and excludes the file; the
    rest of the corpus still builds.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class OutputError(PodSiteError):
    """Raised when the output root cannot be created or written."""


class DiagnosticCategory(str, Enum):
    PARSE_ERROR = "parse-error"
    EXTRACTION_WARNING = "extraction-warning"
    AMBIGUOUS_REFERENCE = "ambiguous-reference"
    BROKEN_REFERENCE = "broken-reference"
    FATAL_LOAD_ERROR = "fatal-load-error"


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal issue attached to one source document."""

    category: DiagnosticCategory
    path: str
    message: str
    line: Optional[int] = None
    target: Optional[str] = None
    candidates: Tuple[str, ...] = field(default_factory=tuple)

    def sort_key(self) -> tuple:
        return (self.path, self.line or 0, self.category.value, self.message)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "category": self.category.value,
            "message": self.message,
        }
        if self.line is not None:
            data["line"] = self.line
        if self.target is not None:
            data["target"] = self.target
        if self.candidates:
            data["candidates"] = list(self.candidates)
        return data


def parse_error(path: str, message: str, line: Optional[int] = None) -> Diagnostic:
    return Diagnostic(DiagnosticCategory.PARSE_ERROR, path, message, line=line)


def extraction_warning(path: str, message: str, line: Optional[int] = None) -> Diagnostic:
    return Diagnostic(DiagnosticCategory.EXTRACTION_WARNING, path, message, line=line)


def count_by_category(diagnostics: Iterable[Diagnostic]) -> Dict[str, int]:
    """Return a count per category, listing every category even when zero."""
    counts = {category.value: 0 for category in DiagnosticCategory}
    for diagnostic in diagnostics:
        counts[diagnostic.category.value] += 1
    return counts


def sorted_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
    return sorted(diagnostics, key=Diagnostic.sort_key)


__all__ = [
    "ConfigError",
    "Diagnostic",
    "DiagnosticCategory",
    "FatalLoadError",
    "OutputError",
    "PodSiteError",
    "count_by_category",
    "extraction_warning",
    "parse_error",
    "sorted_diagnostics",
]
