"""Async HTTP client for the Ollama chat API.

Ollama API docs: https://github.com/ollama/ollama/blob/main/docs/api.md

This client deliberately performs **one** request per call and never
retries: retry/backoff, health short-circuiting and tool execution are the
agent loop's job (see ``src/agent.py``).
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import httpx

from src.config import BACKEND_TIMEOUT_SECONDS, OLLAMA_API_KEY, OLLAMA_HOST, OLLAMA_MODEL
from src.errors import TransportError
from src.messages import AssistantReply, Message, ToolCallRequest
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT_SECONDS = 5.0


class OllamaClient:
    """Thin wrapper around ``/api/tags`` (health probe) and ``/api/chat``."""

    def __init__(
        self,
        host: str | None = None,
        model: str | None = None,
        *,
        api_key: str | None = None,
        timeout: float = BACKEND_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.host = (host or OLLAMA_HOST).rstrip("/")
        self.model = model or OLLAMA_MODEL
        headers = {"Content-Type": "application/json"}
        token = api_key or OLLAMA_API_KEY
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = http_client or httpx.AsyncClient(
            base_url=self.host,
            headers=headers,
            timeout=timeout,
        )

    # ── Health ───────────────────────────────────────────────────────

    async def list_models(self) -> list[str]:
        """Return the names of the models the server has pulled."""
        t0 = time.perf_counter()
        try:
            response = await self._client.get("/api/tags", timeout=HEALTH_TIMEOUT_SECONDS)
        except httpx.HTTPError as exc:
            metrics.record_failure("ollama", "list_models", error_type=type(exc).__name__)
            raise TransportError(f"Could not reach Ollama at {self.host}: {exc}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if response.status_code >= 400:
            metrics.record_failure(
                "ollama", "list_models",
                error_type=f"http_{response.status_code}", latency_ms=elapsed,
            )
            raise TransportError(
                f"Ollama returned {response.status_code} for /api/tags: {response.text}",
                status_code=response.status_code,
            )
        metrics.record_success("ollama", "list_models", latency_ms=elapsed)
        return [model.get("name", "") for model in self._json(response).get("models", [])]

    async def check_health(self) -> bool:
        """Probe the server cheaply.  Never raises."""
        try:
            await self.list_models()
        except TransportError as exc:
            logger.warning("Ollama connection check failed: %s", exc)
            return False
        return True

    # ── Chat ─────────────────────────────────────────────────────────

    async def chat(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        *,
        options: dict[str, Any] | None = None,
    ) -> AssistantReply:
        """Run a single non-streaming chat completion.

        Args:
            messages: The full conversation, system prompt first.
            tools: Function-calling catalog (JSON schema per tool).
            options: Ollama model options such as ``temperature``.

        Raises:
            TransportError: the request failed, returned an HTTP error, or
                the body could not be decoded.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_wire() for message in messages],
            "stream": False,
        }
        if tools:
            payload["tools"] = tools
        if options:
            payload["options"] = options

        t0 = time.perf_counter()
        try:
            response = await self._client.post("/api/chat", json=payload)
        except httpx.HTTPError as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "ollama", "chat", error_type=type(exc).__name__, latency_ms=elapsed,
            )
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if response.status_code >= 400:
            metrics.record_failure(
                "ollama", "chat",
                error_type=f"http_{response.status_code}", latency_ms=elapsed,
            )
            raise TransportError(
                f"Ollama returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        metrics.record_success("ollama", "chat", latency_ms=elapsed)
        logger.debug("Ollama chat (%s) responded in %.0fms", self.model, elapsed)
        return self._parse_reply(self._json(response))

    # ── Internal helpers ─────────────────────────────────────────────

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Ollama returned a non-JSON body: {response.text[:200]}") from exc
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected Ollama response shape: {type(data).__name__}")
        return data

    @staticmethod
    def _parse_reply(data: dict[str, Any]) -> AssistantReply:
        """Build an ``AssistantReply`` from a ``/api/chat`` body.

        A missing ``message`` (or one with neither text nor tool calls) is
        tolerated and becomes an empty reply.  Ollama usually omits call
        IDs, so calls without one get ``call_<position>`` to keep results
        pairable by ID.
        """
        message = data.get("message") or {}
        if not isinstance(message, dict):
            message = {}
        raw_calls = message.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raw_calls = []
        tool_calls = []
        for i, raw in enumerate(raw_calls):
            call = ToolCallRequest.from_wire(raw)
            if call.id is None:
                call = call.model_copy(update={"id": f"call_{i}"})
            tool_calls.append(call)
        return AssistantReply(content=str(message.get("content") or ""), tool_calls=tool_calls)

    async def aclose(self) -> None:
        await self._client.aclose()


# ── Module-level singleton (thread-safe) ────────────────────────────
_client: OllamaClient | None = None
_client_lock = threading.Lock()


def get_ollama_client() -> OllamaClient:
    """Return a module-level OllamaClient singleton."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = OllamaClient()
    return _client
