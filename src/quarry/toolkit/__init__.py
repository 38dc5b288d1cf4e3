"""Agent toolkit: tool definitions, the read-only registry, and the invoker."""

from quarry.toolkit.executor import ToolInvoker, normalize_result
from quarry.toolkit.models import ToolDefinition, ToolDescriptor
from quarry.toolkit.registry import ToolRegistry

__all__ = [
    "ToolDefinition",
    "ToolDescriptor",
    "ToolInvoker",
    "ToolRegistry",
    "normalize_result",
]
