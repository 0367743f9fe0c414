"""Shared pytest fixtures for ngrok wrapper tests."""

import io
import json
from unittest.mock import Mock

import httpx
import pytest

from ngrok_wrapper.config import AgentConfig
from ngrok_wrapper.core.api_client import ControlClient

BASE_URL = "http://127.0.0.1:4040"
READY_LOG = (
    b't=2024-01-01T00:00:00+0000 lvl=info msg="starting web service" addr=127.0.0.1:4040\n'
    b't=2024-01-01T00:00:01+0000 lvl=info msg="client session established" obj=csess\n'
)


class FakeAgentAPI:
    """In-memory stand-in for the agent's control API, served via httpx.MockTransport."""

    def __init__(self) -> None:
        self.running = True
        self.requests: list[httpx.Request] = []
        self.create_status = 201
        self.create_body: object = {"public_url": "https://abc123.example.com"}
        self.delete_status = 204
        self.tunnels_body: object = {"tunnels": []}

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.running:
            raise httpx.ConnectError("Connection refused", request=request)

        path = request.url.path
        if request.method == "GET" and path == "/":
            return httpx.Response(200, text="<html>ngrok</html>")
        if request.method == "POST" and path == "/api/tunnels":
            return httpx.Response(self.create_status, json=self.create_body)
        if request.method == "GET" and path == "/api/tunnels":
            return httpx.Response(200, json=self.tunnels_body)
        if request.method == "DELETE" and path.startswith("/api/tunnels/"):
            return httpx.Response(self.delete_status)
        return httpx.Response(404, json={"msg": "not found"})

    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def created_payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.calls("POST", "/api/tunnels")]


@pytest.fixture
def fake_api():
    """Fake control API that is up and answers every endpoint successfully."""
    return FakeAgentAPI()


@pytest.fixture
def control_client(fake_api):
    """ControlClient wired to the fake control API."""
    client = ControlClient(BASE_URL, transport=httpx.MockTransport(fake_api.handle))
    yield client
    client.close()


@pytest.fixture
def agent_config():
    """Agent config with an explicit binary path and a short startup timeout."""
    return AgentConfig(binary_path="/opt/ngrok/ngrok", startup_timeout=2.0)


@pytest.fixture
def mock_subprocess(monkeypatch):
    """Mock subprocess.Popen for testing process management.

    Returns:
        Mock: Mocked Popen class
    """
    mock_popen = Mock()
    monkeypatch.setattr("subprocess.Popen", mock_popen)
    return mock_popen


@pytest.fixture
def mock_process():
    """Mock agent process whose stdout contains the readiness line.

    Returns:
        Mock: Mock process with common attributes
    """
    process = Mock()
    process.pid = 12345
    process.poll.return_value = None  # Process is running
    process.terminate.return_value = None
    process.kill.return_value = None
    process.wait.return_value = 0
    process.stdout = io.BytesIO(READY_LOG)
    return process
