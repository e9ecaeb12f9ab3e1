"""Tool-calling agent loop on top of an Ollama chat backend.

Architecture:
  One call to ``Agent.run`` drives a small state machine::

    start → health probe → chat (with retry) → tool calls? ─ no ─→ done
                 ↑                                   │
                 └──────── dispatch tools ←── yes ───┘

  Each pass through the loop is one *round*.  Rounds are counted and the
  loop gives up with a canned message once ``recursion_limit`` is passed,
  so a model that keeps asking for tools cannot spin forever.

  Nothing raises past ``run``: an unreachable backend, exhausted retries and
  the recursion limit all become a single assistant message, and tool
  failures become error payloads in ``tool`` messages.  Only task
  cancellation propagates.

  Memory:
    The agent is stateless.  Callers pass the prior turns in ``history``
    and persist the returned transcript themselves.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from src.config import (
    MAX_RETRIES,
    RETRY_BASE_DELAY_SECONDS,
    TOOL_TIMEOUT_SECONDS,
    TOOLS_RECURSION_LIMIT,
)
from src.dispatcher import ToolDispatcher
from src.errors import ConfigurationError, RecursionLimitExceeded, TransportError
from src.messages import AgentResult, AssistantReply, Message
from src.prompts import (
    BACKEND_ERROR_TEMPLATE,
    BACKEND_UNREACHABLE_TEMPLATE,
    RECURSION_LIMIT_MESSAGE,
    get_system_prompt,
)
from src.services.metrics import metrics
from src.services.ollama_client import get_ollama_client
from src.tools.registry import ToolRegistry, build_default_registry

logger = logging.getLogger(__name__)


class ChatBackend(Protocol):
    """What the agent needs from a chat backend."""

    host: str
    model: str

    async def check_health(self) -> bool: ...

    async def chat(
        self, messages: list[Message], tools: list[dict[str, Any]] | None = None,
    ) -> AssistantReply: ...


class Agent:
    """Runs one user turn to completion, calling tools as the model asks."""

    def __init__(
        self,
        backend: ChatBackend,
        registry: ToolRegistry,
        *,
        dispatcher: ToolDispatcher | None = None,
        system_prompt: str | None = None,
        recursion_limit: int = TOOLS_RECURSION_LIMIT,
        max_retries: int = MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ConfigurationError("max_retries must be at least 1")
        if recursion_limit < 0:
            raise ConfigurationError("recursion_limit cannot be negative")
        self.backend = backend
        self.registry = registry
        self.dispatcher = dispatcher or ToolDispatcher(registry)
        self.recursion_limit = recursion_limit
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._system_prompt = system_prompt
        self._sleep = sleep

    async def run(self, user_text: str, history: Sequence[Message] = ()) -> AgentResult:
        """Answer *user_text* given the earlier turns in *history*.

        Returns:
            The transcript of this turn: every ``tool`` message produced,
            in order, followed by one final assistant message.  The
            assistant messages that only carried tool calls are sent to the
            backend but are not part of the transcript.
        """
        conversation: list[Message] = [
            Message.system(self._system_prompt or get_system_prompt()),
            *history,
            Message.user(user_text),
        ]
        transcript: list[Message] = []
        depth = 0

        while True:
            try:
                self._check_depth(depth)
            except RecursionLimitExceeded as exc:
                logger.warning("%s", exc)
                metrics.record_count("Agent/RecursionLimitHit")
                transcript.append(Message.assistant(RECURSION_LIMIT_MESSAGE))
                return AgentResult(messages=transcript)

            try:
                outcome = await self._round(conversation)
            except Exception as exc:
                logger.exception("Unexpected error in agent round %d", depth)
                transcript.append(self._backend_error_message(exc))
                return AgentResult(messages=transcript)

            if isinstance(outcome, Message):
                transcript.append(outcome)
                return AgentResult(messages=transcript)

            if not outcome.has_tool_calls:
                metrics.record_count("Agent/ToolRounds", depth)
                transcript.append(Message.assistant(outcome.content))
                return AgentResult(messages=transcript)

            logger.info(
                "Round %d: model requested %s",
                depth, ", ".join(call.name for call in outcome.tool_calls),
            )
            results = await self.dispatcher.execute(outcome.tool_calls)
            tool_messages = self.dispatcher.to_messages(results)

            conversation.append(outcome.to_message())
            conversation.extend(tool_messages)
            transcript.extend(tool_messages)
            depth += 1

    # ── One round ────────────────────────────────────────────────────

    def _check_depth(self, depth: int) -> None:
        if depth > self.recursion_limit:
            raise RecursionLimitExceeded(
                f"Tool-call recursion limit of {self.recursion_limit} exceeded"
            )

    async def _round(self, conversation: list[Message]) -> AssistantReply | Message:
        """Probe the backend, then ask it for the next reply.

        Returns either the backend's reply or a terminal assistant message
        explaining why there is no reply.
        """
        if not await self.backend.check_health():
            return Message.assistant(
                BACKEND_UNREACHABLE_TEMPLATE.format(host=self.backend.host)
            )
        try:
            return await self._chat_with_retry(conversation)
        except TransportError as exc:
            return self._backend_error_message(exc)

    async def _chat_with_retry(self, conversation: list[Message]) -> AssistantReply:
        """Call ``chat`` up to ``max_retries`` times with linear backoff."""
        tools = self.registry.catalog()
        last_error: TransportError | None = None
        for attempt in range(self.max_retries):
            if attempt > 0:
                delay = self.retry_base_delay * attempt
                logger.warning(
                    "Retry attempt %d/%d in %.1fs after error: %s",
                    attempt, self.max_retries - 1, delay, last_error,
                )
                await self._sleep(delay)
            try:
                return await self.backend.chat(conversation, tools)
            except TransportError as exc:
                last_error = exc
                logger.error(
                    "Chat attempt %d/%d failed: %s", attempt + 1, self.max_retries, exc,
                )
        raise last_error

    def _backend_error_message(self, exc: Exception) -> Message:
        return Message.assistant(
            BACKEND_ERROR_TEMPLATE.format(
                error=exc, host=self.backend.host, model=self.backend.model,
            )
        )


def create_agent() -> Agent:
    """Build the production agent: Ollama backend plus the built-in tools."""
    registry = build_default_registry()
    agent = Agent(
        get_ollama_client(),
        registry,
        dispatcher=ToolDispatcher(registry, timeout=TOOL_TIMEOUT_SECONDS),
    )
    logger.debug(
        "Agent ready — backend: %s (%s), tools: %s",
        agent.backend.host, agent.backend.model, ", ".join(registry.names()),
    )
    return agent
