"""LangChain tool that fetches a web page and hands its text to the model."""

from __future__ import annotations

import html
import logging
import re
from typing import Any
from urllib.parse import urlparse

import httpx
from langchain_core.tools import tool

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 15.0
MAX_EXCERPT_CHARS = 4_000

_COMMENT_RE = re.compile(r"<!--.*?(?:-->|\Z)|<!\[CDATA\[.*?(?:\]\]>|\Z)", re.DOTALL)
_DROP_BLOCKS_RE = re.compile(
    r"<(script|style|noscript|svg|head)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL,
)
# a script or style block left open runs to the end of the document
_UNCLOSED_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*\Z", re.IGNORECASE | re.DOTALL)
_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def _validate_url(url: str) -> str:
    """Return the stripped URL or raise ``ValueError`` if it is not http(s)."""
    if not url or not url.strip():
        raise ValueError("URL is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL format")
    return url


def extract_text(markup: str) -> tuple[str, str]:
    """Return ``(title, visible_text)`` for an HTML document."""
    title_match = _TITLE_RE.search(markup)
    title = html.unescape(_WS_RE.sub(" ", title_match.group(1))).strip() if title_match else ""
    body = _COMMENT_RE.sub(" ", markup)
    body = _DROP_BLOCKS_RE.sub(" ", body)
    body = _UNCLOSED_BLOCK_RE.sub(" ", body)
    body = _TAG_RE.sub(" ", body)
    return title, _WS_RE.sub(" ", html.unescape(body)).strip()


@tool
async def scrape_link(url: str) -> dict[str, Any]:
    """Fetch a web page and return its title and a plain-text excerpt.

    Call this whenever the user's message contains a URL.

    Args:
        url: The full http(s) URL to fetch.
    """
    url = _validate_url(url)
    async with httpx.AsyncClient(
        timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True,
    ) as client:
        response = await client.get(url)
    response.raise_for_status()

    content_type = response.headers.get("content-type", "")
    if "html" in content_type:
        title, text = extract_text(response.text)
    else:
        title, text = "", response.text.strip()

    truncated = len(text) > MAX_EXCERPT_CHARS
    if truncated:
        text = text[: MAX_EXCERPT_CHARS - 3] + "..."
    logger.debug("Scraped %s (%d chars, truncated=%s)", url, len(text), truncated)
    return {
        "url": str(response.url),
        "title": title,
        "content": text,
        "truncated": truncated,
    }
