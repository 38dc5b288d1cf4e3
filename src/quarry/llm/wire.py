"""Conversion between Quarry messages and the OpenAI chat wire format.

One Quarry TOOL message (one result segment per call) becomes one
OpenAI ``tool`` message per result, in the same order, which is the
shape OpenAI-compatible endpoints expect after an assistant turn with
``tool_calls``.
"""

from __future__ import annotations

import base64
import json
import logging
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

from quarry.models.content import (
    BinarySegment,
    Message,
    Role,
    TextSegment,
    ToolCallSegment,
    ToolResultSegment,
)
from quarry.toolkit.models import ToolDescriptor

logger = logging.getLogger(__name__)


def _data_url(segment: BinarySegment) -> str:
    encoded = base64.b64encode(segment.data).decode("ascii")
    return f"data:{segment.mime_type};base64,{encoded}"


def _user_content(message: Message) -> str | list[dict[str, Any]]:
    if all(isinstance(s, TextSegment) for s in message.content):
        return message.text()
    parts: list[dict[str, Any]] = []
    for seg in message.content:
        if isinstance(seg, TextSegment):
            parts.append({"type": "text", "text": seg.text})
        elif isinstance(seg, BinarySegment) and seg.mime_type.startswith("image/"):
            parts.append({"type": "image_url", "image_url": {"url": _data_url(seg)}})
        elif isinstance(seg, BinarySegment):
            parts.append({"type": "text", "text": f"[binary {seg.mime_type}, {len(seg.data)} bytes]"})
    return parts


def _result_text(result: ToolResultSegment) -> str:
    chunks: list[str] = []
    for seg in result.content:
        if isinstance(seg, TextSegment):
            chunks.append(seg.text)
        elif isinstance(seg, BinarySegment):
            chunks.append(f"[binary {seg.mime_type}, {len(seg.data)} bytes]")
    return "\n".join(chunks)


def to_openai_messages(messages: Iterable[Message]) -> list[dict[str, Any]]:
    """Render a message history as OpenAI chat-completions ``messages``."""
    out: list[dict[str, Any]] = []
    for message in messages:
        if message.role == Role.SYSTEM:
            out.append({"role": "system", "content": message.text()})
        elif message.role == Role.USER:
            out.append({"role": "user", "content": _user_content(message)})
        elif message.role == Role.ASSISTANT:
            entry: dict[str, Any] = {"role": "assistant", "content": message.text() or None}
            calls = message.tool_calls()
            if calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.input),
                        },
                    }
                    for call in calls
                ]
            out.append(entry)
        elif message.role == Role.TOOL:
            for result in message.tool_results_in():
                out.append({
                    "role": "tool",
                    "tool_call_id": result.call_id,
                    "content": _result_text(result),
                })
    return out


def to_openai_tools(descriptors: Sequence[ToolDescriptor]) -> list[dict[str, Any]]:
    return [d.to_openai() for d in descriptors]


def parse_arguments(name: str, raw: str | None) -> dict[str, Any]:
    """Decode a tool call's JSON arguments; malformed input becomes ``{}``."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Malformed JSON in tool call arguments for %s", name)
        return {}
    if not isinstance(value, dict):
        logger.warning("Tool call arguments for %s are not an object", name)
        return {}
    return value


class ToolCallAccumulator:
    """Reassembles streamed ``tool_calls`` deltas keyed by their index.

    OpenAI-compatible streams send the id and function name in the first
    delta for an index and the argument JSON in pieces afterwards.
    """

    def __init__(self) -> None:
        self._calls: dict[int, dict[str, Any]] = {}

    def add(self, delta: dict[str, Any]) -> None:
        index = delta.get("index", len(self._calls))
        slot = self._calls.setdefault(index, {"id": None, "name": "", "arguments": ""})
        if delta.get("id"):
            slot["id"] = delta["id"]
        function = delta.get("function") or {}
        if function.get("name"):
            slot["name"] += function["name"]
        if function.get("arguments"):
            slot["arguments"] += function["arguments"]

    def __bool__(self) -> bool:
        return bool(self._calls)

    def finish(self) -> list[ToolCallSegment]:
        """Return complete tool calls in index order."""
        calls: list[ToolCallSegment] = []
        for index in sorted(self._calls):
            slot = self._calls[index]
            call_id = slot["id"] or f"call_{uuid.uuid4().hex[:8]}"
            calls.append(ToolCallSegment(
                id=call_id,
                name=slot["name"],
                input=parse_arguments(slot["name"], slot["arguments"]),
            ))
        self._calls.clear()
        return calls
