"""Shared test fixtures for the agent test suite."""

from __future__ import annotations

import os
from typing import Any
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py picks these values up.
    """
    os.environ.setdefault("OLLAMA_HOST", "http://ollama.test:11434")
    os.environ.setdefault("OLLAMA_MODEL", "test-model")
    os.environ["METRICS_ENABLED"] = "false"


class FakeBackend:
    """Scripted stand-in for ``OllamaClient``.

    ``replies`` is consumed one item per ``chat`` call; an item that is an
    exception is raised instead of returned.  ``health`` optionally scripts
    the probe results in order; once it runs out, ``healthy`` is used.
    """

    def __init__(
        self,
        replies: list[Any] | None = None,
        *,
        healthy: bool = True,
        health: list[bool] | None = None,
    ):
        self.host = "http://ollama.test:11434"
        self.model = "test-model"
        self.healthy = healthy
        self.replies = list(replies or [])
        self.chat_calls: list[tuple[list, list]] = []
        self.health_calls = 0
        self.health = list(health or [])

    async def check_health(self) -> bool:
        self.health_calls += 1
        if self.health:
            return self.health.pop(0)
        return self.healthy

    async def chat(self, messages, tools=None):
        self.chat_calls.append((list(messages), list(tools or [])))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_backend_factory():
    return FakeBackend


@pytest.fixture
def mock_http_response():
    """Factory fixture for creating mock httpx responses."""

    def _make(data: Any, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make
