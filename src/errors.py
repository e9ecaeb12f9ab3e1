"""Exception hierarchy for the agent core.

Only ``ConfigurationError`` is allowed to abort start-up.  Every other error
is caught where it happens and turned into either a per-tool error payload
or a user-facing assistant message.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base class for all agent errors."""


class ConfigurationError(AgentError):
    """Raised when the agent is wired up incorrectly at start-up."""


class DuplicateToolError(ConfigurationError):
    """Raised when two tools are registered under the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A tool named {name!r} is already registered.")


class TransportError(AgentError):
    """Raised when the chat backend cannot be reached or answers badly."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ToolResolutionError(AgentError):
    """Raised when the model asks for a tool that is not registered."""


class ToolExecutionError(AgentError):
    """Raised when a tool's arguments are invalid or its handler fails."""


class RecursionLimitExceeded(AgentError):
    """Raised when a request needs more tool rounds than allowed."""
