"""CLI entrypoints for podsite commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .errors import ConfigError, OutputError, PodSiteError
from .logging import configure_logging
from .orchestrator import Orchestrator
from .report import format_summary


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_pipeline_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--jobs",
        "-j",
        type=_positive_int,
        default=None,
        help="Worker threads for parsing and rendering (1 runs sequentially).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .podsite.yml file (defaults to SOURCE/.podsite.yml).",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only print errors to the console.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write detailed logs to this file.",
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got '{value}'") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="podsite",
        description="Generate a cross-referenced documentation site from Pod6 sources.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Render every source document and write the site.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_pipeline_options(build_parser)
    build_parser.add_argument("source", help="Directory containing the markup corpus.")
    build_parser.add_argument("output", help="Directory that receives the generated site.")
    build_parser.add_argument(
        "--format",
        default=None,
        help="Renderer to use (html or markdown; defaults to the configured format).",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Parse and resolve the corpus without writing output.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_pipeline_options(check_parser)
    check_parser.add_argument("source", help="Directory containing the markup corpus.")
    check_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when parse errors or unresolved references are found.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP build service (requires the 'service' extra).",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for podsite commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(getattr(args, "quiet", False)),
        log_file=getattr(args, "log_file", None),
    )

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    orchestrator = Orchestrator()

    if args.command == "build":
        try:
            result = orchestrator.build(
                args.source,
                args.output,
                format=args.format,
                jobs=args.jobs,
                config_path=args.config,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except ConfigError as exc:
            parser.exit(1, f"podsite build failed: invalid configuration: {exc}\n")
        except OutputError as exc:
            parser.exit(1, f"podsite build failed: {exc}\n")
        except PodSiteError as exc:
            parser.exit(1, f"podsite build failed: {exc}\nRun with --verbose for more details.\n")
        print(
            f"Wrote {len(result.pages)} pages to {_relativize(result.output_root)} "
            f"({format_summary(result.summary)})"
        )
    elif args.command == "check":
        try:
            result = orchestrator.check(args.source, jobs=args.jobs, config_path=args.config)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except PodSiteError as exc:
            parser.exit(1, f"podsite check failed: {exc}\n")
        print(f"Checked {len(result.pages)} documents ({format_summary(result.summary)})")
        if args.strict and result.has_problems():
            parser.exit(1, "Strict check failed: unresolved problems found.\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path | None) -> str:
    if path is None:
        return "-"
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
