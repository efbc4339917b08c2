"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from codelve.config import CodelveConfig
from codelve.engine import Engine
from codelve.llm.stub import StubBackend
from codelve.service.app import create_app
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def client() -> Iterator[TestClient]:
    engine = Engine(CodelveConfig(), backend=StubBackend("service reply"))
    app = create_app(lambda: engine)
    with TestClient(app) as test_client:
        yield test_client


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "scanning": False, "file_count": 0}


def test_scan_then_query_flow(client: TestClient, repo_builder: RepoBuilder) -> None:
    repo_builder.write({"core/engine.py": "class Engine:\n    def run(self):\n        pass\n"})

    scan = client.post("/scan", json={"path": str(repo_builder.path())})

    assert scan.status_code == 200
    body = scan.json()
    assert body["status"] == "ok"
    assert body["file_count"] == 1
    assert body["symbol_count"] == 2
    assert client.get("/health").json()["file_count"] == 1

    query = client.post("/query", json={"query": "explain the Engine class"})

    assert query.status_code == 200
    assert query.json() == {"kind": "text", "text": "service reply", "is_error": False}

    history = client.get("/history").json()
    assert history == {"entries": [{"query": "explain the Engine class", "response": "service reply"}]}

    cleared = client.delete("/history")
    assert cleared.json() == {"entries": []}
    assert client.get("/history").json() == {"entries": []}


def test_scan_missing_directory_returns_404(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/scan", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 404
    assert "Invalid directory path" in response.json()["detail"]


def test_query_commands_are_tagged(client: TestClient) -> None:
    help_response = client.post("/query", json={"query": "/help"}).json()
    clear_response = client.post("/query", json={"query": "/clear"}).json()

    assert help_response["kind"] == "text"
    assert help_response["text"].startswith("# CodeLve Help")
    assert clear_response["kind"] == "clear_history"
    assert clear_response["is_error"] is False


def test_scan_while_scanning_returns_400(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a.py": "a = 1\n"})

    class _BusyEngine(Engine):
        def scan(self, path):  # type: ignore[no-untyped-def]
            return False

    engine = _BusyEngine(CodelveConfig(), backend=StubBackend())
    with TestClient(create_app(lambda: engine)) as test_client:
        response = test_client.post("/scan", json={"path": str(repo_builder.path())})

    assert response.status_code == 400
    assert response.json() == {"detail": "A scan is already in progress."}


def test_service_does_not_accumulate_events(repo_builder: RepoBuilder) -> None:
    repo_builder.write({f"pkg/module_{index}.py": f"def handler_{index}():\n    pass\n" for index in range(20)})
    engine = Engine(CodelveConfig(), backend=StubBackend("service reply"))

    with TestClient(create_app(lambda: engine)) as test_client:
        for _ in range(3):
            assert test_client.post("/scan", json={"path": str(repo_builder.path())}).json()["file_count"] == 20
        for _ in range(3):
            assert test_client.post("/query", json={"query": "explain handler_1"}).status_code == 200

        assert engine.events.pending() == 0
