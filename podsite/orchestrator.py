"""Pipeline orchestration for build and check runs."""

from __future__ import annotations

import json
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .classify import Classifier
from .config import PodSiteConfig, load_config
from .errors import (
    ConfigError,
    Diagnostic,
    DiagnosticCategory,
    FatalLoadError,
    OutputError,
    count_by_category,
    sorted_diagnostics,
)
from .extractor import Extraction, extract
from .loader import CorpusLoader
from .logging import get_logger
from .markup import parse
from .registry import Registry, RegistryBuilder
from .render import (
    Page,
    Renderer,
    Site,
    assign_output_paths,
    build_search_fragment,
    get_renderer,
    merge_search_index,
)
from .render.search import SearchEntry
from .report import REPORT_FILENAME, build_report, format_summary, save_report
from .resolver import Resolver

SEARCH_INDEX_FILENAME = "search-index.json"

_WARNING_CATEGORIES = frozenset(
    {
        DiagnosticCategory.AMBIGUOUS_REFERENCE,
        DiagnosticCategory.BROKEN_REFERENCE,
        DiagnosticCategory.FATAL_LOAD_ERROR,
    }
)

# categories that fail ``check --strict``
STRICT_CATEGORIES = frozenset(
    {
        DiagnosticCategory.PARSE_ERROR,
        DiagnosticCategory.AMBIGUOUS_REFERENCE,
        DiagnosticCategory.BROKEN_REFERENCE,
        DiagnosticCategory.FATAL_LOAD_ERROR,
    }
)


@dataclass
class BuildResult:
    """Outcome of a build or check run."""

    source_root: Path
    output_root: Optional[Path]
    registry: Registry
    pages: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    search_index: List[SearchEntry] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, int]:
        return count_by_category(self.diagnostics)

    def has_problems(self) -> bool:
        return any(diagnostic.category in STRICT_CATEGORIES for diagnostic in self.diagnostics)


@dataclass
class _RenderedPage:
    path: str
    output_path: str
    content: Optional[str]
    search: List[SearchEntry]
    diagnostics: List[Diagnostic]


class Orchestrator:
    """Runs the two-phase pipeline.

    Phase 1 loads, parses and extracts every document in a worker pool; the
    calling thread is the only writer to the registry builder. Once every
    task has completed the registry is frozen, which is the barrier before
    phase 2 resolves and renders documents in a second pool. Output files
    are written by the calling thread.
    """

    def __init__(
        self,
        config: PodSiteConfig | None = None,
        loader: CorpusLoader | None = None,
        classifier: Classifier | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self._config_override = config
        self._loader_override = loader
        self._classifier_override = classifier
        self._renderer_override = renderer
        self.logger = get_logger("orchestrator")

    def build(
        self,
        source_root: str | Path,
        output_root: str | Path,
        *,
        format: str | None = None,
        jobs: int | None = None,
        config_path: str | Path | None = None,
    ) -> BuildResult:
        """Generate the site for ``source_root`` into ``output_root``."""
        source_path = Path(source_root).expanduser().resolve()
        output_path = Path(output_root).expanduser().resolve()
        config = self._load_config(source_path, config_path)
        renderer = self._resolve_renderer(config, format)
        self.logger.info("Building %s into %s (%s)", source_path, output_path, renderer.name)

        result = self._run(source_path, config, jobs, renderer=renderer, output_path=output_path)
        self.logger.info(
            "Wrote %d pages to %s: %s", len(result.pages), output_path, format_summary(result.summary)
        )
        return result

    def check(
        self,
        source_root: str | Path,
        *,
        jobs: int | None = None,
        config_path: str | Path | None = None,
    ) -> BuildResult:
        """Parse, extract and resolve without writing anything."""
        source_path = Path(source_root).expanduser().resolve()
        config = self._load_config(source_path, config_path)
        self.logger.info("Checking %s", source_path)
        result = self._run(source_path, config, jobs, renderer=None, output_path=None)
        self.logger.info("Checked %d documents: %s", len(result.pages), format_summary(result.summary))
        return result

    # ------------------------------------------------------------------
    # Pipeline

    def _run(
        self,
        source_path: Path,
        config: PodSiteConfig,
        jobs: int | None,
        *,
        renderer: Renderer | None,
        output_path: Path | None,
    ) -> BuildResult:
        loader = self._loader_override or CorpusLoader(config.source)
        classifier = self._classifier_override or Classifier.from_config(config.classify)
        workers = _worker_count(jobs if jobs is not None else config.build.jobs)

        extra_excludes = _nested_output_excludes(source_path, output_path)
        paths = loader.discover(source_path, extra_excludes=extra_excludes)
        if output_path is not None:
            _prepare_output(output_path)
        self.logger.debug("Discovered %d documents; using %d workers", len(paths), workers)

        extractions, registry, diagnostics = self._extract_phase(
            source_path, paths, loader, classifier, workers
        )
        self.logger.debug("Registry frozen with %d documentables", len(registry))

        if renderer is not None:
            pages, collisions = assign_output_paths(renderer, extractions)
            diagnostics.extend(collisions)
        else:
            pages = {path: path for path in extractions}
        site = Site(
            title=config.output.site_title,
            suffix=renderer.suffix if renderer is not None else "",
            pages=pages,
            roots=[extractions[path].root for path in sorted(extractions)],
        )
        rendered = self._render_phase(extractions, registry, classifier, renderer, site, workers)
        for page in rendered:
            diagnostics.extend(page.diagnostics)

        ordered = sorted_diagnostics(diagnostics)
        self._log_diagnostics(ordered)
        search_index = merge_search_index(page.search for page in rendered)

        result = BuildResult(
            source_root=source_path,
            output_root=output_path,
            registry=registry,
            pages=[page.output_path for page in rendered],
            diagnostics=ordered,
            search_index=search_index,
        )
        if renderer is not None and output_path is not None:
            self._write_output(output_path, renderer, site, rendered, result)
        return result

    def _extract_phase(
        self,
        source_path: Path,
        paths: Sequence[str],
        loader: CorpusLoader,
        classifier: Classifier,
        workers: int,
    ) -> Tuple[Dict[str, Extraction], Registry, List[Diagnostic]]:
        builder = RegistryBuilder()
        extractions: Dict[str, Extraction] = {}
        diagnostics: List[Diagnostic] = []

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="podsite-extract") as pool:
            futures = {
                pool.submit(_extract_document, loader, classifier, source_path, path): path for path in paths
            }
            for future in as_completed(futures):
                try:
                    extraction = future.result()
                except FatalLoadError as exc:
                    diagnostics.append(
                        Diagnostic(DiagnosticCategory.FATAL_LOAD_ERROR, exc.path, exc.reason)
                    )
                    continue
                except Exception as exc:
                    path = futures[future]
                    self.logger.debug("Extraction of %s failed", path, exc_info=True)
                    diagnostics.append(
                        Diagnostic(
                            DiagnosticCategory.FATAL_LOAD_ERROR,
                            path,
                            f"could not be processed: {type(exc).__name__}: {exc}",
                        )
                    )
                    continue
                builder.merge(extraction.root, extraction.documentables)
                extractions[extraction.path] = extraction
                diagnostics.extend(extraction.diagnostics)

        return extractions, builder.freeze(), diagnostics

    def _render_phase(
        self,
        extractions: Dict[str, Extraction],
        registry: Registry,
        classifier: Classifier,
        renderer: Renderer | None,
        site: Site,
        workers: int,
    ) -> List[_RenderedPage]:
        resolver = Resolver(registry, classifier)

        def _render(extraction: Extraction) -> _RenderedPage:
            resolution = resolver.resolve_document(extraction)
            page = Page(
                extraction=extraction,
                resolution=resolution,
                output_path=site.pages[extraction.path],
                site=site,
            )
            content = renderer.render_page(page) if renderer is not None else None
            return _RenderedPage(
                path=extraction.path,
                output_path=page.output_path,
                content=content,
                search=build_search_fragment(page),
                diagnostics=resolution.diagnostics,
            )

        ordered = [extractions[path] for path in sorted(extractions)]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="podsite-render") as pool:
            return list(pool.map(_render, ordered))

    def _write_output(
        self,
        output_path: Path,
        renderer: Renderer,
        site: Site,
        rendered: Sequence[_RenderedPage],
        result: BuildResult,
    ) -> None:
        try:
            for page in rendered:
                target = output_path / page.output_path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(page.content or "", encoding="utf-8")
            index_name = renderer.index_page
            (output_path / index_name).write_text(renderer.render_index(site), encoding="utf-8")
            (output_path / SEARCH_INDEX_FILENAME).write_text(
                json.dumps(result.search_index, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )
            save_report(output_path, build_report(result.diagnostics))
        except OSError as exc:
            raise OutputError(f"Failed to write output to {output_path}: {exc}") from exc
        self.logger.debug(
            "Wrote %s, %s and %s", index_name, SEARCH_INDEX_FILENAME, REPORT_FILENAME
        )

    # ------------------------------------------------------------------
    # Helpers

    def _load_config(self, source_path: Path, config_path: str | Path | None) -> PodSiteConfig:
        if self._config_override is not None:
            return self._config_override
        if not source_path.is_dir() and config_path is None:
            return PodSiteConfig(root=source_path)
        return load_config(Path(config_path) if config_path is not None else source_path)

    def _resolve_renderer(self, config: PodSiteConfig, format: str | None) -> Renderer:
        if self._renderer_override is not None:
            return self._renderer_override
        name = format or config.output.format
        try:
            return get_renderer(name)
        except ValueError as exc:
            raise ConfigError(f"Unknown output format '{name}'") from exc

    def _log_diagnostics(self, diagnostics: Sequence[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            if diagnostic.category not in _WARNING_CATEGORIES:
                continue
            location = f"{diagnostic.path}:{diagnostic.line}" if diagnostic.line else diagnostic.path
            self.logger.warning("%s: %s: %s", location, diagnostic.category.value, diagnostic.message)


def _extract_document(
    loader: CorpusLoader, classifier: Classifier, source_path: Path, path: str
) -> Extraction:
    document = loader.load(source_path, path)
    parsed = parse(document.text, document.path)
    return extract(document, parsed, classifier)


def _worker_count(jobs: int | None) -> int:
    if jobs is None:
        return min(32, (os.cpu_count() or 1) + 4)
    if jobs < 1:
        raise ConfigError("jobs must be a positive integer")
    return jobs


def _prepare_output(output_path: Path) -> None:
    if output_path.exists() and not output_path.is_dir():
        raise OutputError(f"Output path is not a directory: {output_path}")
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputError(f"Cannot create output directory {output_path}: {exc}") from exc


def _nested_output_excludes(source_path: Path, output_path: Path | None) -> List[str]:
    """Keep a previous build inside the source tree out of the corpus."""
    if output_path is None:
        return []
    try:
        relative = output_path.relative_to(source_path)
    except ValueError:
        return []
    if not relative.parts:
        return []
    return [f"/{relative.as_posix()}/"]


__all__ = ["BuildResult", "Orchestrator", "SEARCH_INDEX_FILENAME", "STRICT_CATEGORIES"]
