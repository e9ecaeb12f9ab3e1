"""Conversation data model shared by the backend client, dispatcher and agent.

The wire format is the one used by Ollama's ``/api/chat`` endpoint::

    {"role": "assistant", "content": "",
     "tool_calls": [{"id": "call_0", "function": {"name": "get_weather",
                                                  "arguments": {"city": "Warsaw"}}}]}
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant", "tool"]


class ToolCallRequest(BaseModel):
    """A single tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str
    arguments: dict[str, Any] | str = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "function": {"name": self.name, "arguments": self.arguments},
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_wire(cls, data: Any) -> ToolCallRequest:
        """Parse a wire tool call, tolerating malformed backend output.

        A missing name becomes ``""`` and arguments that are neither an
        object nor a string are kept as JSON text, so the dispatcher can
        report them as a per-call error instead of the whole reply failing.
        """
        if not isinstance(data, dict):
            data = {}
        function = data.get("function")
        if not isinstance(function, dict):
            function = {}
        arguments = function.get("arguments")
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict | str):
            arguments = json.dumps(arguments, default=str)
        call_id = data.get("id")
        return cls(
            id=str(call_id) if call_id not in (None, "") else None,
            name=str(function.get("name") or ""),
            arguments=arguments,
        )


class Message(BaseModel):
    """One turn of a conversation.  Immutable once built."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: list[ToolCallRequest] | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    # ── Factories ────────────────────────────────────────────────────

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(
        cls, content: str = "", tool_calls: list[ToolCallRequest] | None = None,
    ) -> Message:
        return cls(role="assistant", content=content, tool_calls=tool_calls or None)

    @classmethod
    def tool(
        cls, content: str, *, tool_call_id: str | None = None, tool_name: str | None = None,
    ) -> Message:
        return cls(
            role="tool", content=content, tool_call_id=tool_call_id, tool_name=tool_name,
        )

    # ── Wire conversion ──────────────────────────────────────────────

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_name is not None:
            data["tool_name"] = self.tool_name
        return data

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Message:
        raw_calls = data.get("tool_calls") or []
        tool_calls = [
            ToolCallRequest.from_wire(call) for call in raw_calls
        ]
        return cls(
            role=data["role"],
            content=data.get("content"),
            tool_calls=tool_calls or None,
            tool_call_id=data.get("tool_call_id"),
            tool_name=data.get("tool_name"),
        )


class AssistantReply(BaseModel):
    """The backend's answer to one chat call.

    A well-formed reply carries text *or* tool calls, but both (or neither)
    can show up.  Tool calls always win when deciding what to do next.
    """

    content: str = ""
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Message:
        return Message.assistant(self.content, self.tool_calls)


class AgentResult(BaseModel):
    """The transcript produced by one top-level ``Agent.run`` call."""

    messages: list[Message]
