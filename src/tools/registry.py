"""Catalog of the tools the model may call.

Tools are plain LangChain ``BaseTool`` objects: the name, description and
pydantic ``args_schema`` advertise the tool to the backend, and
``ainvoke`` is the handler.  The registry is built once at start-up and
only read afterwards.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool

from src.errors import DuplicateToolError
from src.tools.notes import (
    add_note_to_index,
    add_notes_index_field,
    get_all_notes,
    get_notes_index_fields,
)
from src.tools.summarize import summarize_text
from src.tools.weather import find_city, get_weather
from src.tools.web import scrape_link

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Name → tool mapping that keeps registration order."""

    def __init__(self, tools: list[BaseTool] | None = None) -> None:
        self._tools: dict[str, BaseTool] = {}
        self._schemas: dict[str, dict[str, Any]] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """Add *tool*.  Raises ``DuplicateToolError`` if the name is taken."""
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        self._schemas[tool.name] = convert_to_openai_tool(tool)
        logger.debug("Registered tool %s", tool.name)

    def lookup(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def all(self) -> list[BaseTool]:
        """Every registered tool, in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def catalog(self) -> list[dict[str, Any]]:
        """Function-calling descriptors sent to the backend each round."""
        return [self._schemas[name] for name in self._tools]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry() -> ToolRegistry:
    """Registry with every built-in tool."""
    return ToolRegistry([
        find_city,
        get_weather,
        scrape_link,
        summarize_text,
        get_all_notes,
        add_note_to_index,
        get_notes_index_fields,
        add_notes_index_field,
    ])
