"""Data models for Quarry conversations."""

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

__all__ = [
    "BinarySegment",
    "Conversation",
    "Message",
    "Role",
    "Segment",
    "TextSegment",
    "ToolCallSegment",
    "ToolResultSegment",
]
