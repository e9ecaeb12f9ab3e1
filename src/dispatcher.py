"""Executes the tool calls requested by the model.

Every request gets exactly one outcome, whatever happens: an unknown tool,
unparseable arguments, a handler exception or a timeout each become a
``ToolErr`` for that call only, and the rest of the batch still runs.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from src.config import TOOL_TIMEOUT_SECONDS
from src.errors import ToolExecutionError, ToolResolutionError
from src.messages import Message, ToolCallRequest
from src.services.metrics import metrics
from src.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

TOOL_NOT_FOUND = "Tool not found"


@dataclass(frozen=True)
class ToolOk:
    """A tool ran and returned *value*."""

    call: ToolCallRequest
    value: Any

    def payload(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ToolErr:
    """A tool could not be resolved, parsed or run."""

    call: ToolCallRequest
    message: str
    resolved: bool = True

    def payload(self) -> dict[str, Any]:
        if not self.resolved:
            return {"error": self.message, "toolName": self.call.name}
        return {
            "error": self.message,
            "toolName": self.call.name,
            "arguments": self.call.arguments,
        }


ToolOutcome = ToolOk | ToolErr


def serialize_payload(payload: Any) -> str:
    """Render a tool result as message content.  Strings pass through."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, ensure_ascii=False, default=str)


class ToolDispatcher:
    """Resolves and runs tool-call requests against a ``ToolRegistry``."""

    def __init__(self, registry: ToolRegistry, *, timeout: float = TOOL_TIMEOUT_SECONDS):
        self._registry = registry
        self._timeout = timeout

    async def execute(self, requests: list[ToolCallRequest]) -> dict[str, ToolOutcome]:
        """Run *requests* one after another.

        Returns:
            Outcomes keyed by tool-call ID, in the order the requests were
            received.  Never raises for a tool failure.
        """
        outcomes: dict[str, ToolOutcome] = {}
        for position, call in enumerate(requests):
            key = call.id or f"call_{position}"
            if key in outcomes:
                key = f"{key}#{position}"
            outcomes[key] = await self._execute_one(call)
        return outcomes

    async def _execute_one(self, call: ToolCallRequest) -> ToolOutcome:
        try:
            tool = self._resolve(call)
        except ToolResolutionError as exc:
            logger.warning("Model requested unknown tool %r", call.name)
            metrics.record_failure("tool", call.name, error_type="ToolResolutionError")
            return ToolErr(call, str(exc), resolved=False)

        t0 = time.perf_counter()
        deadline = asyncio.timeout(self._timeout)
        try:
            arguments = self._parse_arguments(call)
            async with deadline:
                value = await tool.ainvoke(arguments)
        except TimeoutError as exc:
            # a handler may raise TimeoutError itself, e.g. from its own HTTP client
            if not deadline.expired():
                return self._failed(call, exc, t0)
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "tool", call.name, error_type="TimeoutError", latency_ms=elapsed,
            )
            logger.error("Tool %s timed out after %.0fs", call.name, self._timeout)
            return ToolErr(call, f"Tool timed out after {self._timeout:g} seconds")
        except Exception as exc:
            return self._failed(call, exc, t0)

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("tool", call.name, latency_ms=elapsed)
        logger.debug("Tool %s finished in %.0fms", call.name, elapsed)
        return ToolOk(call, value)

    @staticmethod
    def _failed(call: ToolCallRequest, exc: Exception, t0: float) -> ToolErr:
        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_failure(
            "tool", call.name, error_type=type(exc).__name__, latency_ms=elapsed,
        )
        logger.error("Error executing tool %s: %s", call.name, exc)
        return ToolErr(call, str(exc) or type(exc).__name__)

    def _resolve(self, call: ToolCallRequest):
        tool = self._registry.lookup(call.name)
        if tool is None:
            raise ToolResolutionError(TOOL_NOT_FOUND)
        return tool

    @staticmethod
    def _parse_arguments(call: ToolCallRequest) -> dict[str, Any]:
        """Decode string arguments; some models send JSON as text."""
        raw = call.arguments
        if isinstance(raw, dict):
            return raw
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ToolExecutionError(f"Invalid JSON arguments: {exc.msg}") from exc
        if not isinstance(parsed, dict):
            raise ToolExecutionError(
                f"Arguments must be a JSON object, got {type(parsed).__name__}"
            )
        return parsed

    @staticmethod
    def to_messages(outcomes: dict[str, ToolOutcome]) -> list[Message]:
        """One ``tool`` message per outcome, in request order."""
        return [
            Message.tool(
                serialize_payload(outcome.payload()),
                tool_call_id=outcome.call.id or key,
                tool_name=outcome.call.name,
            )
            for key, outcome in outcomes.items()
        ]
