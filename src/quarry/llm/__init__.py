"""Model boundary for Quarry.

Provides the ChatModel protocol, a streaming OpenAI-compatible HTTP
client, wire-format conversion, and the LLM error hierarchy.
"""

from quarry.llm.client import OpenAIChatModel
from quarry.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMStreamError,
)
from quarry.llm.protocols import ChatModel, select_model
from quarry.llm.wire import to_openai_messages, to_openai_tools

__all__ = [
    "ChatModel",
    "OpenAIChatModel",
    "select_model",
    "to_openai_messages",
    "to_openai_tools",
    "LLMAuthError",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMResponseError",
    "LLMStreamError",
]
