"""LangChain tool that shortens long text with a second call to the chat model."""

from __future__ import annotations

import logging
import re
from typing import Any

from langchain_core.tools import tool

from src.messages import Message
from src.services.ollama_client import get_ollama_client

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 280
SUMMARY_OPTIONS = {"temperature": 0.7, "top_p": 0.95}

SUMMARY_SYSTEM_PROMPT = (
    "You summarize texts. Answer in the same language as the original text. "
    "Do not use <think> tags; reply with the final summary only."
)

_PREFIX_RE = re.compile(r"^text to summari[sz]e:\s*", re.IGNORECASE)
_THINK_RE = re.compile(r"<think>.*?(?:</think>|\Z)", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def clean_summary(raw: str, max_length: int) -> str:
    """Strip reasoning blocks and markup, then cap at *max_length* characters."""
    text = _THINK_RE.sub("", raw)
    text = _TAG_RE.sub("", text)
    text = _WS_RE.sub(" ", text).strip()
    if len(text) > max_length:
        text = text[: max(max_length - 3, 0)] + "..."
    return text


@tool
async def summarize_text(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> dict[str, Any]:
    """Summarize a text in at most max_length characters, keeping its language.

    Args:
        text: The text to summarize.
        max_length: Maximum summary length in characters (default 280).
    """
    if max_length < 10:
        raise ValueError("max_length must be at least 10 characters")
    original = _PREFIX_RE.sub("", text).strip()
    if len(original) <= max_length:
        return {"original": original, "summary": original, "shortened": False}

    reply = await get_ollama_client().chat(
        [
            Message.system(SUMMARY_SYSTEM_PROMPT),
            Message.user(
                f"Summarize this text in no more than {max_length} characters: {original}"
            ),
        ],
        options=SUMMARY_OPTIONS,
    )
    summary = clean_summary(reply.content, max_length)
    if not summary:
        raise ValueError("The model returned an empty summary")

    logger.debug("Summarized %d chars into %d", len(original), len(summary))
    return {
        "original": original,
        "summary": summary,
        "shortened": True,
        "original_length": len(original),
        "summary_length": len(summary),
        "compression_ratio": f"{round(len(summary) / len(original) * 100)}%",
    }
