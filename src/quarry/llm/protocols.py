"""Model boundary protocol.

The orchestrator hands a model the full message history plus every tool
descriptor and consumes an incrementally delivered sequence of segments:
text chunks as they are generated, then complete tool calls.  Any object
with ``stream()`` and ``close()`` matching these signatures works; the
built-in OpenAIChatModel implements it over HTTP.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from quarry.cancellation import CancellationToken
    from quarry.models.content import Message, Segment
    from quarry.toolkit.models import ToolDescriptor


@runtime_checkable
class ChatModel(Protocol):
    """Protocol for pluggable chat models."""

    def stream(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        *,
        cancellation: CancellationToken,
    ) -> Iterator[Segment]:
        """Yield TextSegment chunks and complete ToolCallSegments in arrival order."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...


def select_model(candidates: Sequence[ChatModel | None] | None) -> ChatModel | None:
    """Pick the first usable model, or None when nothing is available."""
    if not candidates:
        return None
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
