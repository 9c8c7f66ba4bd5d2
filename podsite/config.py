"""Configuration loading for podsite (.podsite.yml)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .models import DocKind

CONFIG_FILENAME = ".podsite.yml"

DEFAULT_SUFFIXES = (".rakudoc", ".pod6", ".pod")


@dataclass
class SourceConfig:
    """Which files under the source root belong to the corpus."""

    suffixes: List[str] = field(default_factory=lambda: list(DEFAULT_SUFFIXES))
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    """Rendering settings."""

    format: str = "html"
    site_title: str = "Documentation"


@dataclass
class BuildConfig:
    """Pipeline execution settings."""

    jobs: Optional[int] = None


@dataclass
class HeadingPattern:
    """One row of the heading classification table."""

    pattern: str
    kind: DocKind
    subkind: Optional[str] = None


@dataclass
class ClassifyConfig:
    """User-supplied classification tables, merged over the built-in ones."""

    heading_patterns: List[HeadingPattern] = field(default_factory=list)
    categories: Dict[str, DocKind] = field(default_factory=dict)
    listing_sections: Dict[str, DocKind] = field(default_factory=dict)
    section_titles: List[str] = field(default_factory=list)
    index_categories: Dict[str, DocKind] = field(default_factory=dict)


@dataclass
class PodSiteConfig:
    """Represents the settings defined in .podsite.yml."""

    root: Path
    source: SourceConfig = field(default_factory=SourceConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    classify: ClassifyConfig = field(default_factory=ClassifyConfig)


def load_config(config_path: Path) -> PodSiteConfig:
    """Load configuration from a directory or an explicit file path."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PodSiteConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    source = SourceConfig()
    source_data = _as_dict(data.get("source"))
    if source_data:
        suffixes = _as_str_list(source_data.get("suffixes"))
        if suffixes:
            source.suffixes = [_normalise_suffix(suffix) for suffix in suffixes]
        source.exclude_paths = _as_str_list(source_data.get("exclude_paths"))
    # top-level exclude_paths is accepted as a shorthand
    source.exclude_paths.extend(_as_str_list(data.get("exclude_paths")))

    output = OutputConfig()
    output_data = _as_dict(data.get("output"))
    if output_data:
        output.format = _as_str(output_data.get("format")) or output.format
        output.site_title = _as_str(output_data.get("site_title")) or output.site_title

    build = BuildConfig()
    build_data = _as_dict(data.get("build"))
    if build_data:
        jobs = _as_int(build_data.get("jobs"))
        if jobs is not None and jobs < 1:
            raise ConfigError("build.jobs must be a positive integer")
        build.jobs = jobs

    classify = _parse_classify(_as_dict(data.get("classify")))

    return PodSiteConfig(
        root=root,
        source=source,
        output=output,
        build=build,
        classify=classify,
    )


def _parse_classify(data: Dict[str, Any]) -> ClassifyConfig:
    classify = ClassifyConfig()
    if not data:
        return classify

    raw_patterns = data.get("heading_patterns")
    if raw_patterns is not None and not isinstance(raw_patterns, list):
        raise ConfigError("classify.heading_patterns must be a list")
    for index, entry in enumerate(raw_patterns or []):
        entry = _as_dict(entry)
        pattern = _as_str(entry.get("pattern"))
        if not pattern:
            raise ConfigError(f"classify.heading_patterns[{index}] is missing 'pattern'")
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise ConfigError(f"classify.heading_patterns[{index}] is not a valid regex: {exc}") from exc
        if "name" not in compiled.groupindex:
            raise ConfigError(f"classify.heading_patterns[{index}] needs a (?P<name>...) group")
        classify.heading_patterns.append(
            HeadingPattern(
                pattern=pattern,
                kind=_as_kind(entry.get("kind"), f"classify.heading_patterns[{index}].kind"),
                subkind=_as_str(entry.get("subkind")),
            )
        )

    classify.categories = _as_kind_map(data.get("categories"), "classify.categories")
    classify.listing_sections = _as_kind_map(data.get("listing_sections"), "classify.listing_sections")
    classify.section_titles = _as_str_list(data.get("section_titles"))
    classify.index_categories = _as_kind_map(data.get("index_categories"), "classify.index_categories")
    return classify


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _normalise_suffix(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _as_kind(value: Any, where: str) -> DocKind:
    text = _as_str(value)
    if text is None:
        raise ConfigError(f"{where} is required")
    try:
        return DocKind(text.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(kind.value for kind in DocKind)
        raise ConfigError(f"{where}: unknown kind '{text}' (expected one of {allowed})") from exc


def _as_kind_map(value: Any, where: str) -> Dict[str, DocKind]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping")
    return {str(key): _as_kind(item, f"{where}.{key}") for key, item in value.items()}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "BuildConfig",
    "ClassifyConfig",
    "CONFIG_FILENAME",
    "HeadingPattern",
    "OutputConfig",
    "PodSiteConfig",
    "SourceConfig",
    "load_config",
]
