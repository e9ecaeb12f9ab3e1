"""FastAPI route definitions for the agent API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from src.agent import Agent
from src.api.schemas import ChatRequest, ChatResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_agent(request: Request) -> Agent:
    """Retrieve the agent built during the FastAPI lifespan."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return agent


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check(http_request: Request):
    """Report whether the chat backend answers its health probe."""
    agent = _get_agent(http_request)
    reachable = await agent.backend.check_health()
    return HealthResponse(
        status="ok" if reachable else "degraded",
        backend=agent.backend.host,
        model=agent.backend.model,
        backend_reachable=reachable,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Run one user turn through the agent and return its transcript.

    ``Agent.run`` turns backend and tool failures into assistant messages
    itself, so anything that reaches the ``except`` below is a bug.  If the
    client disconnects, Starlette cancels this task and the cancellation
    propagates through the agent untouched.
    """
    agent = _get_agent(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await agent.run(request.message, request.history)
    except Exception as e:
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    logger.info("[%s] Turn produced %d messages", request_id, len(result.messages))
    return ChatResponse(messages=result.messages)
