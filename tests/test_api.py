"""Tests for the FastAPI endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.messages import AgentResult, Message
from src.server import app


@pytest.fixture
def mock_agent():
    """Create a mock agent and attach it to app state (mirrors the lifespan)."""
    agent = MagicMock()
    agent.run = AsyncMock(return_value=AgentResult(messages=[
        Message.tool('{"temperature": "15°C"}', tool_call_id="call_0", tool_name="get_weather"),
        Message.assistant("It's 15°C in Warsaw"),
    ]))
    agent.backend.host = "http://ollama.test:11434"
    agent.backend.model = "test-model"
    agent.backend.check_health = AsyncMock(return_value=True)

    app.state.agent = agent
    yield agent
    app.state.agent = None


@pytest.fixture
def client(mock_agent):
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_reports_backend(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "toolchat-agent"
        assert data["backend"] == "http://ollama.test:11434"
        assert data["backend_reachable"] is True

    def test_health_degraded_when_backend_down(self, client, mock_agent):
        mock_agent.backend.check_health.return_value = False
        data = client.get("/api/health").json()
        assert data["status"] == "degraded"
        assert data["backend_reachable"] is False


class TestChatEndpoint:
    def test_chat_returns_transcript(self, client):
        response = client.post("/api/chat", json={"message": "What's the weather?"})
        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [m["role"] for m in messages] == ["tool", "assistant"]
        assert messages[-1]["content"] == "It's 15°C in Warsaw"

    def test_chat_passes_history(self, client, mock_agent):
        history = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
        ]
        client.post("/api/chat", json={"message": "Weather?", "history": history})

        text, passed_history = mock_agent.run.call_args[0]
        assert text == "Weather?"
        assert passed_history == [Message.user("Hi"), Message.assistant("Hello!")]

    def test_chat_validates_empty_message(self, client):
        response = client.post("/api/chat", json={"message": ""})
        assert response.status_code == 422

    def test_chat_rejects_unknown_role_in_history(self, client):
        response = client.post(
            "/api/chat",
            json={"message": "Hi", "history": [{"role": "narrator", "content": "x"}]},
        )
        assert response.status_code == 422

    def test_chat_handles_agent_error(self, client, mock_agent):
        mock_agent.run.side_effect = RuntimeError("loop exploded")
        response = client.post("/api/chat", json={"message": "Hello!"})
        assert response.status_code == 500
        detail = response.json()["detail"]
        assert "loop exploded" not in detail
        assert "internal error" in detail.lower()

    def test_client_supplied_request_id_is_echoed(self, client):
        response = client.post(
            "/api/chat",
            json={"message": "Hello!"},
            headers={"X-Request-ID": "my-trace-id-123"},
        )
        assert response.headers["X-Request-ID"] == "my-trace-id-123"


class TestAgentNotReady:
    def test_returns_503_when_agent_not_initialised(self):
        with TestClient(app) as tc:
            app.state.agent = None
            response = tc.post("/api/chat", json={"message": "Hello!"})
            assert response.status_code == 503
            assert "starting up" in response.json()["detail"].lower()


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        data = client.get("/").json()
        assert data["service"] == "Tool-calling Chat Agent"
        assert data["health"] == "/api/health"
