"""Quarry exception hierarchy.

All Quarry-specific exceptions inherit from QuarryError.
"""


class QuarryError(Exception):
    """Base exception for all Quarry errors."""


class ConversationError(QuarryError):
    """Raised when an append would break the conversation's pairing rules.

    A tool-result message must answer, one-to-one and in order, the tool
    calls of the assistant message immediately before it.
    """


class DuplicateToolError(QuarryError):
    """Raised when two tools are registered under the same name."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool already registered: {tool_name}")


class ToolNotFoundError(QuarryError):
    """Raised when a registry lookup by name fails."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class ModelUnavailableError(QuarryError):
    """Raised (or attached to a run result) when no chat model could be selected."""

    def __init__(self, message: str = "No language model available.") -> None:
        super().__init__(message)


class RunCancelledError(QuarryError):
    """Raised at a checkpoint after the run's cancellation token was signalled."""

    def __init__(self, where: str = "") -> None:
        self.where = where
        msg = "Run cancelled"
        if where:
            msg += f" ({where})"
        super().__init__(msg)
