"""Tests for start_stop/webhook_server.py."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from start_stop.exceptions import EligibilityError
from start_stop.models.domain import HandlerResult, HttpStatusCode
from start_stop.webhook_server import app

ENV = {"SUPABASE_URL": "https://wallets.supabase.co", "SUPABASE_KEY": "service-key"}


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def body():
    return {
        "stateId": "state-1",
        "eventName": "issue_comment.created",
        "eventPayload": {"comment": {"body": "/start"}},
        "settings": {"maxConcurrentTasks": {"member": 4}},
        "authToken": "ghs_token",
        "ref": "main",
        "env": ENV,
    }


@pytest.fixture
def run_plugin():
    with patch(
        "start_stop.webhook_server.run_plugin",
        new=AsyncMock(return_value=HandlerResult(HttpStatusCode.OK, "Task assigned successfully")),
    ) as mock:
        yield mock


class TestHealthCheck:
    def test_health_check_returns_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "start-stop"}


class TestManifest:
    """Tests for /manifest.json."""

    def test_get_manifest(self, client):
        response = client.get("/manifest.json")

        assert response.status_code == 200
        manifest = response.json()
        assert manifest["name"] == "Start | Stop"
        assert set(manifest["commands"]) == {"start", "stop"}
        assert "issue_comment.created" in manifest["ubiquity:listeners"]
        assert "maxConcurrentTasks" in manifest["configuration"]["properties"]

    def test_validate_valid_settings(self, client):
        response = client.post("/manifest.json", json={"settings": {"reviewDelayTolerance": "2 Days"}})

        assert response.status_code == 200
        assert response.json() == {"message": "Schema is valid"}

    def test_validate_invalid_settings(self, client):
        response = client.post("/manifest.json", json={"settings": {"reviewDelayTolerance": "whenever"}})

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert errors[0]["path"] == "/reviewDelayTolerance"


class TestHandleEvent:
    """Tests for POST /."""

    def test_success(self, client, body, run_plugin):
        response = client.post("/", json=body)

        assert response.status_code == 200
        assert response.json() == {"message": "OK"}
        inputs, settings, env = run_plugin.await_args.args
        assert inputs.event_name == "issue_comment.created"
        assert inputs.auth_token == "ghs_token"
        assert settings.max_concurrent_tasks == {"member": 4}
        assert env.supabase_key == "service-key"

    def test_content_type_with_charset(self, client, body, run_plugin):
        response = client.post(
            "/", content=json.dumps(body), headers={"content-type": "application/json; charset=utf-8"}
        )

        assert response.status_code == 200

    def test_invalid_content_type(self, client, run_plugin):
        response = client.post("/", content="/start", headers={"content-type": "text/plain"})

        assert response.status_code == 400
        assert response.json() == {"message": "Error: text/plain is not a valid content type"}
        run_plugin.assert_not_awaited()

    def test_invalid_settings(self, client, body, run_plugin):
        """Should reject invalid settings before running anything."""
        body["settings"] = {"maxConcurrentTasks": {"member": -1}}

        response = client.post("/", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Bad Request: invalid configuration."
        assert data["errors"][0]["path"] == "/maxConcurrentTasks"
        run_plugin.assert_not_awaited()

    def test_missing_env(self, client, body, run_plugin, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        body["env"] = {}

        response = client.post("/", json=body)

        assert response.status_code == 400
        assert len(response.json()["errors"]) == 2

    def test_missing_event_name(self, client, body, run_plugin):
        del body["eventName"]

        response = client.post("/", json=body)

        assert response.status_code == 400
        assert response.json()["errors"][0]["path"] == "/eventName"

    def test_invalid_json(self, client, run_plugin):
        response = client.post("/", content="{not json", headers={"content-type": "application/json"})

        assert response.status_code == 400

    def test_plugin_failure(self, client, body, run_plugin):
        """Should turn handler errors into a 500 with the serialized error."""
        run_plugin.side_effect = EligibilityError("Issue is closed")

        response = client.post("/", json=body)

        assert response.status_code == 500
        assert response.json() == {"error": {"type": "EligibilityError", "message": "Issue is closed"}}

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/"),
            ("PUT", "/"),
            ("PATCH", "/"),
            ("DELETE", "/"),
            ("GET", "/anything"),
            ("PUT", "/manifest.json"),
            ("DELETE", "/health"),
        ],
    )
    def test_other_methods(self, client, method, path):
        """Should answer any non-POST request without a route with a 405."""
        response = client.request(method, path)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"
        assert response.json() == {"message": "Only POST requests are supported."}

    def test_unknown_post_path_is_not_found(self, client):
        response = client.post("/anything", json={})

        assert response.status_code == 404
