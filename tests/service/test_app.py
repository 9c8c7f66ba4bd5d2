"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from podsite.errors import Diagnostic, DiagnosticCategory, OutputError
from podsite.orchestrator import BuildResult, Orchestrator
from podsite.registry import RegistryBuilder
from podsite.service.app import create_app

from tests._fixtures.corpus_builder import CorpusBuilder


class _StubOrchestrator:
    def __init__(self) -> None:
        self.build_calls: list[dict[str, object]] = []
        self.error: Exception | None = None

    def build(
        self,
        source_root: str,
        output_root: str,
        *,
        format: str | None = None,
        jobs: int | None = None,
    ) -> BuildResult:
        self.build_calls.append(
            {"source": source_root, "output": output_root, "format": format, "jobs": jobs}
        )
        if self.error is not None:
            raise self.error
        return BuildResult(
            source_root=Path(source_root),
            output_root=Path(output_root),
            registry=RegistryBuilder().freeze(),
            pages=["a.html", "b.html"],
            diagnostics=[Diagnostic(DiagnosticCategory.BROKEN_REFERENCE, "a.rakudoc", "missing")],
        )


@pytest.fixture
def stub() -> _StubOrchestrator:
    return _StubOrchestrator()


@pytest.fixture
def client(stub: _StubOrchestrator) -> TestClient:
    return TestClient(create_app(lambda: stub))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_build_endpoint(client: TestClient, stub: _StubOrchestrator) -> None:
    response = client.post(
        "/build", json={"source": "docs", "output": "site", "format": "markdown", "jobs": 2}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["pages"] == 2
    assert data["diagnostics"]["broken-reference"] == 1
    assert stub.build_calls == [{"source": "docs", "output": "site", "format": "markdown", "jobs": 2}]


def test_build_rejects_invalid_jobs(client: TestClient, stub: _StubOrchestrator) -> None:
    response = client.post("/build", json={"source": "docs", "output": "site", "jobs": 0})
    assert response.status_code == 422
    assert stub.build_calls == []


def test_missing_source_is_not_found(client: TestClient, stub: _StubOrchestrator) -> None:
    stub.error = FileNotFoundError("Source path not found: docs")
    response = client.post("/build", json={"source": "docs", "output": "site"})
    assert response.status_code == 404
    assert "Source path not found" in response.json()["detail"]


def test_output_error_is_bad_request(client: TestClient, stub: _StubOrchestrator) -> None:
    stub.error = OutputError("Output path is not a directory: site")
    response = client.post("/build", json={"source": "docs", "output": "site"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Output path is not a directory: site"}


def test_build_endpoint_runs_real_pipeline(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write({"Language/intro.rakudoc": "=TITLE Intro\n\nHello.\n"})
    client = TestClient(create_app(Orchestrator))

    response = client.post(
        "/build", json={"source": str(corpus_builder.root), "output": str(corpus_builder.output)}
    )

    assert response.status_code == 200
    assert response.json()["pages"] == 1
    assert (corpus_builder.output / "Language" / "intro.html").is_file()
