"""HTTP service mode (install the ``service`` extra)."""

from __future__ import annotations


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the build API with uvicorn."""
    from .app import run_service as _run

    _run(host=host, port=port)


__all__ = ["run_service"]
