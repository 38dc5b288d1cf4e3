"""ToolRegistry: the process-wide, read-only table of tools.

Built once at startup from an iterable of ToolDefinitions and never
mutated afterwards, so any number of concurrent runs may read it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from quarry.exceptions import DuplicateToolError, ToolNotFoundError
from quarry.toolkit.models import ToolDefinition, ToolDescriptor

logger = logging.getLogger(__name__)


class ToolRegistry(Mapping[str, ToolDefinition]):
    """Immutable name -> ToolDefinition mapping.

    Usage::

        registry = ToolRegistry([download_tool, screenshot_tool])
        tools = [d.to_openai() for d in registry.descriptors()]
    """

    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        table: dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in table:
                raise DuplicateToolError(tool.name)
            table[tool.name] = tool
        self._tools: Mapping[str, ToolDefinition] = MappingProxyType(table)
        self._descriptors: tuple[ToolDescriptor, ...] = tuple(
            t.describe() for t in table.values()
        )
        logger.debug("Tool registry built with %d tools", len(table))

    def __getitem__(self, name: str) -> ToolDefinition:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def require(self, name: str) -> ToolDefinition:
        """Look up a tool, raising ToolNotFoundError if absent."""
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def descriptors(self) -> tuple[ToolDescriptor, ...]:
        """Descriptors for every tool, in registration order."""
        return self._descriptors

    def __repr__(self) -> str:
        return f"<ToolRegistry: {', '.join(self._tools) or 'empty'}>"
