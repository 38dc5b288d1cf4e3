"""Conversation content model: segments, messages and the append-only history.

Segments are the atomic units of message content.  A Message is a role
plus an ordered tuple of segments.  A Conversation is the history owned by
a single orchestrator run; it only grows, and it refuses appends that
would break tool-call/tool-result pairing.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Union

from quarry.exceptions import ConversationError


class Role(str, enum.Enum):
    """Who authored a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class TextSegment:
    """Plain text content."""

    text: str


@dataclass(frozen=True)
class BinarySegment:
    """Raw bytes with a mime type (e.g. an attached screenshot)."""

    data: bytes
    mime_type: str

    def __repr__(self) -> str:
        return f"BinarySegment(mime_type={self.mime_type!r}, {len(self.data)} bytes)"


@dataclass(frozen=True)
class ToolCallSegment:
    """A model request to invoke a tool.

    ``id`` must be unique within the message that carries it.
    """

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultSegment:
    """The answer to one ToolCallSegment, fed back to the model."""

    call_id: str
    content: tuple[Segment, ...] = ()

    def text(self) -> str:
        """Concatenate the text segments of this result."""
        return "".join(s.text for s in self.content if isinstance(s, TextSegment))


Segment = Union[TextSegment, BinarySegment, ToolCallSegment, ToolResultSegment]


@dataclass(frozen=True)
class Message:
    """A single conversation message."""

    role: Role
    content: tuple[Segment, ...] = ()

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(Role.SYSTEM, (TextSegment(text),))

    @classmethod
    def user(cls, text: str, extra: Iterable[Segment] = ()) -> Message:
        return cls(Role.USER, (TextSegment(text), *extra))

    @classmethod
    def assistant(cls, text: str, tool_calls: Iterable[ToolCallSegment] = ()) -> Message:
        parts: list[Segment] = []
        if text:
            parts.append(TextSegment(text))
        parts.extend(tool_calls)
        return cls(Role.ASSISTANT, tuple(parts))

    @classmethod
    def tool_results(cls, results: Iterable[ToolResultSegment]) -> Message:
        return cls(Role.TOOL, tuple(results))

    def text(self) -> str:
        """Concatenate all text segments in order."""
        return "".join(s.text for s in self.content if isinstance(s, TextSegment))

    def tool_calls(self) -> list[ToolCallSegment]:
        return [s for s in self.content if isinstance(s, ToolCallSegment)]

    def tool_results_in(self) -> list[ToolResultSegment]:
        return [s for s in self.content if isinstance(s, ToolResultSegment)]


class Conversation:
    """Append-only message history for one run.

    Invariants enforced on ``append()``:

    - tool-call ids are unique within their message;
    - a TOOL message holds only ToolResultSegments and directly follows an
      assistant message with tool calls, answering each call exactly once
      in the order the calls were issued;
    - an assistant message with tool calls must be answered before any
      other message is appended.
    """

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = []
        for message in messages:
            self.append(message)

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the history.  Mutating the tuple is impossible."""
        return tuple(self._messages)

    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def pending_calls(self) -> list[ToolCallSegment]:
        """Tool calls of the last message if they have not been answered yet."""
        last = self.last()
        if last is None or last.role != Role.ASSISTANT:
            return []
        return last.tool_calls()

    def append(self, message: Message) -> None:
        calls = message.tool_calls()
        ids = [c.id for c in calls]
        if len(ids) != len(set(ids)):
            raise ConversationError(f"Duplicate tool-call ids in message: {ids}")

        pending = self.pending_calls()
        if message.role == Role.TOOL:
            if not pending:
                raise ConversationError(
                    "Tool-result message must follow an assistant message with tool calls"
                )
            if any(not isinstance(s, ToolResultSegment) for s in message.content):
                raise ConversationError("Tool-result message may only hold tool results")
            answered = [s.call_id for s in message.tool_results_in()]
            expected = [c.id for c in pending]
            if answered != expected:
                raise ConversationError(
                    f"Tool results {answered} do not answer calls {expected} in order"
                )
        elif pending:
            raise ConversationError(
                f"{len(pending)} tool call(s) must be answered before appending a "
                f"{message.role.value} message"
            )
        elif calls and message.role != Role.ASSISTANT:
            raise ConversationError("Only assistant messages may carry tool calls")

        self._messages.append(message)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __repr__(self) -> str:
        return f"<Conversation: {len(self._messages)} messages>"
