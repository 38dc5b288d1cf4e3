"""Toolkit data models: tool descriptors and definitions.

Frozen dataclasses.  A ToolDescriptor is what the model sees; a
ToolDefinition adds the handler and the optional side-effect pattern the
orchestrator uses to discover directories a tool reports having populated.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import jsonschema

if TYPE_CHECKING:
    from collections.abc import Callable

    from quarry.cancellation import CancellationToken
    from quarry.models.content import Segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and JSON Schema of a tool, for model consumption.

    Attributes:
        name: Globally unique tool name.
        description: Human-readable description of when/why to use the tool.
        input_schema: JSON Schema dict describing the tool's input object.
    """

    name: str
    description: str
    input_schema: dict = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }

    def to_anthropic(self) -> dict:
        """Convert to Anthropic tool-use format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolDefinition:
    """A registered tool: descriptor fields plus the capability to invoke it.

    Attributes:
        name: Tool name (e.g. "quarry_screenshotPdf").
        description: Human-readable description.
        parameters: JSON Schema dict for the tool input.
        handler: ``handler(arguments, cancellation)`` returning a string,
            a Segment, or a list of Segments.
        side_effect_pattern: Optional regex applied to the tool's result
            text.  Each match's ``dir`` group (or group 1) names a
            directory the tool reports as populated out-of-band.
    """

    name: str
    description: str
    parameters: dict
    handler: Callable[[dict[str, Any], CancellationToken], str | Segment | list[Segment]]
    side_effect_pattern: re.Pattern[str] | None = None

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.parameters,
        )

    def validate(self, arguments: Any) -> str | None:
        """Check ``arguments`` against the declared schema.

        Returns:
            None when valid, otherwise a human-readable description of the
            first problem found.
        """
        if not isinstance(arguments, dict):
            return f"expected an object, got {type(arguments).__name__}"
        try:
            jsonschema.validate(arguments, self.parameters)
        except jsonschema.exceptions.ValidationError as exc:
            where = ".".join(str(p) for p in exc.absolute_path)
            return f"{where}: {exc.message}" if where else exc.message
        except jsonschema.exceptions.SchemaError as exc:
            logger.warning("Tool %s declares an invalid schema: %s", self.name, exc.message)
            return f"tool schema is invalid: {exc.message}"
        return None

    def side_effect_dirs(self, text: str) -> set[str]:
        """Return the directories this tool reports in ``text``."""
        if self.side_effect_pattern is None or not text:
            return set()
        found: set[str] = set()
        for match in self.side_effect_pattern.finditer(text):
            if "dir" in match.groupdict():
                value = match.group("dir")
            elif match.groups():
                value = match.group(1)
            else:
                value = match.group(0)
            if value:
                found.add(value.rstrip("/\\"))
        return found
