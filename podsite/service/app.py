"""FastAPI application entrypoint for podsite service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import PodSiteError
from ..orchestrator import BuildResult, Orchestrator


class BuildRequest(BaseModel):
    source: str
    output: str
    format: Optional[str] = None
    jobs: Optional[int] = Field(default=None, ge=1)


class BuildResponse(BaseModel):
    status: str
    pages: int
    diagnostics: Dict[str, int]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing podsite builds."""

    app = FastAPI(title="podsite", version="0.1.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/build", response_model=BuildResponse)
    async def build_site(
        payload: BuildRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> BuildResponse:
        def _run_build() -> BuildResult:
            return orchestrator.build(
                payload.source,
                payload.output,
                format=payload.format,
                jobs=payload.jobs,
            )

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_build)
        return BuildResponse(status="ok", pages=len(result.pages), diagnostics=result.summary)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PodSiteError)
    async def podsite_error_handler(_: Any, exc: PodSiteError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["BuildRequest", "BuildResponse", "HealthResponse", "create_app", "run_service"]
