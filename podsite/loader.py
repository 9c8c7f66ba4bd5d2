"""Corpus discovery and source file loading."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from .config import SourceConfig
from .errors import FatalLoadError
from .logging import get_logger
from .markup import read_metadata
from .models import SourceDocument

_LOGGER = get_logger("loader")

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".precomp",
    ".podsite",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .podsite.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.warning("Ignoring unreadable %s: %s", path, exc)
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class CorpusLoader:
    """Finds source documents under a root and reads them into memory."""

    def __init__(self, config: SourceConfig | None = None) -> None:
        self.config = config or SourceConfig()
        self.suffixes = tuple(suffix.lower() for suffix in self.config.suffixes)

    def discover(self, root: Path, *, extra_excludes: Iterable[str] = ()) -> List[str]:
        """Return POSIX paths (relative to ``root``) of every source file, sorted."""
        root = Path(root).expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Source path not found: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Source path is not a directory: {root}")

        rules = _parse_gitignore(root / ".gitignore")
        for pattern in [*self.config.exclude_paths, *extra_excludes]:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)

        found = [
            path.relative_to(root).as_posix()
            for path in self._iter_files(root, rules)
            if path.suffix.lower() in self.suffixes
        ]
        found.sort()
        _LOGGER.debug("Discovered %d source files under %s", len(found), root)
        return found

    def load(self, root: Path, rel_path: str) -> SourceDocument:
        """Read one file; any I/O or decoding failure raises FatalLoadError."""
        path = Path(root) / rel_path
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise FatalLoadError(rel_path, f"cannot read file: {exc.strerror or exc}") from exc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FatalLoadError(rel_path, f"not valid UTF-8 at byte {exc.start}") from exc

        text = text.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
        return SourceDocument(
            path=rel_path,
            text=text,
            metadata=read_metadata(text),
            digest=hashlib.sha256(raw).hexdigest(),
        )

    def _iter_files(self, root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            filtered_dirs = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, rules):
                    continue
                filtered_dirs.append(name)
            dirnames[:] = filtered_dirs

            for filename in filenames:
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                yield current_dir / filename


__all__ = ["CorpusLoader", "IgnoreRule", "build_ignore_rule"]
