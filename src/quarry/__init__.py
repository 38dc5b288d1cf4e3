"""Quarry: an agentic research assistant.

A bounded loop alternates between a streaming chat model and a registry
of tools until the model stops asking for tools, the round budget runs
out, or the caller cancels.
"""

from quarry._version import __version__

# Core entry point
from quarry.orchestrator import (
    ModelTurn,
    Orchestrator,
    OrchestratorConfig,
    OrchestratorState,
    RoundRecord,
    RunMetadata,
    RunResult,
)

# Conversation content
from quarry.models.content import (
    BinarySegment,
    Conversation,
    Message,
    Role,
    Segment,
    TextSegment,
    ToolCallSegment,
    ToolResultSegment,
)

# Tools
from quarry.toolkit import ToolDefinition, ToolDescriptor, ToolInvoker, ToolRegistry

# Support services
from quarry.cancellation import CancellationToken
from quarry.completion import CompletionPoller, PollResult
from quarry.materializer import materialize
from quarry.followups import Followup, suggest_followups

# Model boundary
from quarry.llm import ChatModel, OpenAIChatModel, select_model

# Exceptions
from quarry.exceptions import (
    ConversationError,
    DuplicateToolError,
    ModelUnavailableError,
    QuarryError,
    RunCancelledError,
    ToolNotFoundError,
)
from quarry.llm.errors import LLMClientError

__all__ = [
    "__version__",
    # Orchestrator
    "ModelTurn",
    "Orchestrator",
    "OrchestratorConfig",
    "OrchestratorState",
    "RoundRecord",
    "RunMetadata",
    "RunResult",
    # Content
    "BinarySegment",
    "Conversation",
    "Message",
    "Role",
    "Segment",
    "TextSegment",
    "ToolCallSegment",
    "ToolResultSegment",
    # Tools
    "ToolDefinition",
    "ToolDescriptor",
    "ToolInvoker",
    "ToolRegistry",
    # Support
    "CancellationToken",
    "CompletionPoller",
    "PollResult",
    "materialize",
    "Followup",
    "suggest_followups",
    # Model boundary
    "ChatModel",
    "OpenAIChatModel",
    "select_model",
    # Exceptions
    "ConversationError",
    "DuplicateToolError",
    "LLMClientError",
    "ModelUnavailableError",
    "QuarryError",
    "RunCancelledError",
    "ToolNotFoundError",
]
