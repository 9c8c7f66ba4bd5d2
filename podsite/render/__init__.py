"""Renderer plugins and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import Page, Renderer, Site, assign_output_paths, output_path_for
from .html import HTMLRenderer
from .markdown import MarkdownRenderer
from .search import build_search_fragment, merge_search_index

_ENTRY_POINT_GROUP = "podsite.renderers"

_BUILTIN_FACTORIES: dict[str, Callable[[], Renderer]] = {
    "html": HTMLRenderer,
    "markdown": MarkdownRenderer,
}


def discover_renderers(enabled: Sequence[str] | None = None) -> List[Renderer]:
    """Return instantiated renderers, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    renderers: List[Renderer] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Renderer]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Renderer):
            raise TypeError(f"Renderer factory for '{name}' did not return a Renderer instance")
        renderers.append(instance)
        seen.add(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load renderer entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Renderer:
            return _coerce_renderer(obj)

        _add(name, _factory)

    if enabled_set is not None:
        missing = enabled_set - seen
        if missing:
            raise ValueError(f"Unknown renderers requested: {', '.join(sorted(missing))}")

    return renderers


def get_renderer(name: str) -> Renderer:
    """Return the single renderer registered under ``name``."""
    return discover_renderers([name])[0]


def _coerce_renderer(obj: object) -> Renderer:
    if isinstance(obj, Renderer):
        return obj
    if isinstance(obj, type) and issubclass(obj, Renderer):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Renderer):
            return instance
    raise TypeError("Renderer entry point must be a Renderer subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "HTMLRenderer",
    "MarkdownRenderer",
    "Page",
    "Renderer",
    "Site",
    "assign_output_paths",
    "build_search_fragment",
    "discover_renderers",
    "get_renderer",
    "merge_search_index",
    "output_path_for",
]
