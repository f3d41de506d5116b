"""HTTP API tests against a fully wired application.

The app runs its real lifespan (migrations, DI container) on a SQLite file
in a temporary directory. Background workers are disabled so each lifecycle
step is driven explicitly through the API; the webhook command is a sleeping
Python interpreter.
"""

import os
import signal
import sys
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from indexer_service.application.api.rest.app import create_app
from indexer_service.config import Config

SLEEPER = "import time; time.sleep(30)"


def _config(tmp_path, code: str = SLEEPER) -> Config:
    return Config(
        storage={"data_dir": tmp_path / "data"},
        worker={"enabled": False},
        monitor={"enabled": False},
        webhook={
            "command": [sys.executable, "-c", code, "{script_path}", "{target_url}"],
            "startup_grace": 0.3,
            "stop_timeout": 5.0,
        },
    )


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    app = create_app(_config(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def crashing_client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    app = create_app(_config(tmp_path, code="import sys; sys.exit(1)"))
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient, target_url: str = "https://sink.test/hook") -> dict:
    response = client.post(
        "/v1/indexers",
        files={"script": ("indexer.js", b"export default {}", "application/javascript")},
        data={"target_url": target_url},
    )
    assert response.status_code == 200, response.text
    return response.json()


def _kill(pid: int | None) -> None:
    if pid is None:
        return
    try:
        os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class TestHealth:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Server is running!"

    def test_health_is_empty_200(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.content == b""

    def test_unknown_route_is_plain_text_404(self, client):
        response = client.get("/no/such/route")

        assert response.status_code == 404
        assert response.text == "The requested resource was not found"


class TestCreateAndRead:
    def test_create_returns_created_indexer(self, client):
        body = _create(client)

        assert body["status"] == "Created"
        assert body["indexer_type"] == "Webhook"
        assert body["target_url"] == "https://sink.test/hook"
        assert body["process_id"] is None

    def test_created_indexer_can_be_fetched_and_listed(self, client):
        created = _create(client)

        fetched = client.get(f"/v1/indexers/{created['id']}").json()
        listing = client.get("/v1/indexers").json()

        assert fetched == created
        assert listing["total"] == 1
        assert listing["items"][0]["id"] == created["id"]

    def test_list_filters_by_status(self, client):
        _create(client)

        assert client.get("/v1/indexers", params={"status": "Running"}).json()["total"] == 0
        assert client.get("/v1/indexers", params={"status": "Created"}).json()["total"] == 1

    def test_blank_target_url_is_rejected(self, client):
        response = client.post(
            "/v1/indexers",
            files={"script": ("indexer.js", b"x")},
            data={"target_url": "   "},
        )

        assert response.status_code == 422
        assert response.json()["field"] == "target_url"

    def test_missing_script_is_rejected(self, client):
        response = client.post("/v1/indexers", data={"target_url": "https://sink.test"})

        assert response.status_code == 422

    def test_unknown_indexer_is_404(self, client):
        response = client.get(f"/v1/indexers/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["code"] == "NotFoundError"

    def test_malformed_id_is_422(self, client):
        assert client.get("/v1/indexers/not-a-uuid").status_code == 422


class TestLifecycle:
    def test_start_then_stop(self, client):
        created = _create(client)
        pid = None
        try:
            started = client.post(f"/v1/indexers/start/{created['id']}")
            assert started.status_code == 200, started.text
            pid = started.json()["process_id"]
            assert started.json()["status"] == "Running"
            assert pid is not None

            stopped = client.post(f"/v1/indexers/stop/{created['id']}")
            assert stopped.status_code == 200, stopped.text
            assert stopped.json()["status"] == "Stopped"
            assert stopped.json()["process_id"] is None
            for field in ("id", "indexer_type", "target_url", "created_at"):
                assert stopped.json()[field] == created[field]
            assert client.get(f"/v1/indexers/{created['id']}").json() == stopped.json()
        finally:
            _kill(pid)

    def test_second_start_conflicts_with_current_status(self, client):
        created = _create(client)
        pid = None
        try:
            pid = client.post(f"/v1/indexers/start/{created['id']}").json()["process_id"]

            response = client.post(f"/v1/indexers/start/{created['id']}")

            assert response.status_code == 409
            assert response.json()["status"] == "Running"
        finally:
            _kill(pid)

    def test_stop_of_created_indexer_conflicts(self, client):
        created = _create(client)

        response = client.post(f"/v1/indexers/stop/{created['id']}")

        assert response.status_code == 409
        assert response.json()["code"] == "PRECONDITION_FAILED"
        assert response.json()["status"] == "Created"

    def test_start_of_unknown_indexer_is_404(self, client):
        assert client.post(f"/v1/indexers/start/{uuid4()}").status_code == 404


class TestSpawnFailure:
    def test_failed_spawn_is_opaque_500_and_recorded(self, crashing_client):
        created = _create(crashing_client)

        response = crashing_client.post(f"/v1/indexers/start/{created['id']}")

        assert response.status_code == 500
        assert response.json() == {"code": "INTERNAL_ERROR", "message": "Internal server error"}
        record = crashing_client.get(f"/v1/indexers/{created['id']}").json()
        assert record["status"] == "FailedRunning"
        assert record["process_id"] is None
