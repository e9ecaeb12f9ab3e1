"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.messages import Message


class ChatRequest(BaseModel):
    """Incoming chat turn from the frontend.

    The server keeps no conversation state, so the client sends the prior
    turns (as previously returned by ``/api/chat``) in ``history``.
    """

    message: str = Field(..., min_length=1, max_length=8000, description="The user's message")
    history: list[Message] = Field(
        default_factory=list,
        max_length=500,
        description="Earlier messages of this conversation, oldest first",
    )


class ChatResponse(BaseModel):
    """Transcript produced for this turn."""

    messages: list[Message] = Field(..., description="Tool results followed by the final answer")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "toolchat-agent"
    backend: str = Field(..., description="Configured Ollama host")
    model: str = Field(..., description="Configured Ollama model")
    backend_reachable: bool
