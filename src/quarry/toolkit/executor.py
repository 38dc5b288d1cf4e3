"""ToolInvoker: dispatches tool calls against the registry.

Provides a single ``invoke()`` method that looks up the tool by name,
validates the input against its schema, runs its handler, and normalizes
whatever comes back into a list of Segments.  Nothing a tool does escapes
as an exception; failures become text segments the model can read.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from quarry.cancellation import CancellationToken
from quarry.exceptions import RunCancelledError
from quarry.models.content import (
    BinarySegment,
    TextSegment,
    ToolCallSegment,
    ToolResultSegment,
)

if TYPE_CHECKING:
    from quarry.models.content import Segment
    from quarry.toolkit.registry import ToolRegistry

logger = logging.getLogger(__name__)

_SEGMENT_TYPES = (TextSegment, BinarySegment, ToolCallSegment, ToolResultSegment)


def normalize_result(result: object) -> list[Segment]:
    """Coerce a handler's return value into a non-empty list of Segments."""
    if result is None:
        return [TextSegment("")]
    if isinstance(result, _SEGMENT_TYPES):
        return [result]
    if isinstance(result, str):
        return [TextSegment(result)]
    if isinstance(result, (list, tuple)):
        segments: list[Segment] = []
        for item in result:
            if isinstance(item, _SEGMENT_TYPES):
                segments.append(item)
            else:
                segments.append(TextSegment(str(item)))
        return segments or [TextSegment("")]
    return [TextSegment(str(result))]


class ToolInvoker:
    """Runs tool calls by name and returns structured result segments.

    Usage::

        invoker = ToolInvoker(registry)
        segments = invoker.invoke("quarry_saveMarkdown",
                                  {"filePath": "papers/x.md", "content": "# X"})
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def invoke(
        self,
        name: str,
        arguments: Any,
        cancellation: CancellationToken | None = None,
    ) -> list[Segment]:
        """Execute a tool by name with the given structured input.

        Args:
            name: Name of the tool to execute.
            arguments: Structured input; validated against the tool schema.
            cancellation: Token handed to the tool handler.

        Returns:
            The tool's result segments, or a single text segment describing
            why the tool could not run.
        """
        tool = self._registry.get(name)
        if tool is None:
            logger.warning("Model requested unknown tool %s", name)
            return [TextSegment(f"Unknown tool: {name}")]

        problem = tool.validate(arguments)
        if problem is not None:
            logger.debug("Invalid input for %s: %s", name, problem)
            return [TextSegment(f"Invalid input for {name}: {problem}")]

        token = cancellation or CancellationToken.none()
        try:
            result = tool.handler(dict(arguments), token)
        except RunCancelledError:
            logger.debug("Tool %s cancelled", name)
            return [TextSegment(f"Cancelled: {name} did not complete")]
        except Exception as exc:
            logger.debug("Tool %s failed: %s", name, exc, exc_info=True)
            return [TextSegment(f"Error: {exc}")]
        return normalize_result(result)

    def available_tools(self) -> list[str]:
        """Return the names of all available tools."""
        return self._registry.names()
