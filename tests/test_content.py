"""Tests for segments, messages and the append-only Conversation."""

from __future__ import annotations

import pytest
from hypothesis import given, settings

from quarry.exceptions import ConversationError, QuarryError
from quarry.models.content import (
    BinarySegment,
    Conversation,
    Message,
    Role,
    TextSegment,
    ToolCallSegment,
    ToolResultSegment,
)
from tests.strategies import tool_rounds


def _calls(*ids: str) -> list[ToolCallSegment]:
    return [ToolCallSegment(id=i, name="search", input={}) for i in ids]


def _results(*ids: str) -> Message:
    return Message.tool_results(ToolResultSegment(i, (TextSegment("ok"),)) for i in ids)


def _base() -> Conversation:
    return Conversation([Message.system("sys"), Message.user("hi")])


class TestMessage:
    def test_user_message_keeps_extra_segments_after_text(self):
        img = BinarySegment(b"\x89PNG", "image/png")
        msg = Message.user("look", [TextSegment("[Image: a.png]"), img])
        assert msg.role == Role.USER
        assert msg.content[0] == TextSegment("look")
        assert msg.content[-1] is img
        assert msg.text() == "look[Image: a.png]"

    def test_assistant_without_text_has_only_calls(self):
        msg = Message.assistant("", _calls("a", "b"))
        assert [c.id for c in msg.tool_calls()] == ["a", "b"]
        assert msg.text() == ""
        assert all(isinstance(s, ToolCallSegment) for s in msg.content)

    def test_tool_result_text_joins_text_segments(self):
        result = ToolResultSegment("a", (TextSegment("one "), BinarySegment(b"x", "image/png"), TextSegment("two")))
        assert result.text() == "one two"

    def test_binary_repr_hides_bytes(self):
        assert "3 bytes" in repr(BinarySegment(b"abc", "image/png"))

    def test_segments_are_frozen(self):
        seg = TextSegment("x")
        with pytest.raises(AttributeError):
            seg.text = "y"  # type: ignore[misc]


class TestConversationPairing:
    def test_results_answer_calls_in_order(self):
        conv = _base()
        conv.append(Message.assistant("working", _calls("a", "b")))
        conv.append(_results("a", "b"))
        conv.append(Message.assistant("done"))
        assert len(conv) == 5
        assert conv.last().text() == "done"

    def test_results_out_of_order_rejected(self):
        conv = _base()
        conv.append(Message.assistant("", _calls("a", "b")))
        with pytest.raises(ConversationError):
            conv.append(_results("b", "a"))

    def test_missing_result_rejected(self):
        conv = _base()
        conv.append(Message.assistant("", _calls("a", "b")))
        with pytest.raises(ConversationError):
            conv.append(_results("a"))

    def test_extra_result_rejected(self):
        conv = _base()
        conv.append(Message.assistant("", _calls("a")))
        with pytest.raises(ConversationError):
            conv.append(_results("a", "b"))

    def test_tool_message_without_pending_calls_rejected(self):
        conv = _base()
        with pytest.raises(ConversationError):
            conv.append(_results("a"))

    def test_unanswered_calls_block_other_messages(self):
        conv = _base()
        conv.append(Message.assistant("", _calls("a")))
        with pytest.raises(ConversationError, match="must be answered"):
            conv.append(Message.user("next"))

    def test_duplicate_call_ids_rejected(self):
        conv = _base()
        with pytest.raises(ConversationError, match="Duplicate"):
            conv.append(Message.assistant("", _calls("a", "a")))

    def test_tool_message_may_hold_only_results(self):
        conv = _base()
        conv.append(Message.assistant("", _calls("a")))
        bad = Message(Role.TOOL, (ToolResultSegment("a"), TextSegment("stray")))
        with pytest.raises(ConversationError):
            conv.append(bad)

    def test_only_assistant_may_call_tools(self):
        conv = _base()
        with pytest.raises(ConversationError):
            conv.append(Message(Role.USER, tuple(_calls("a"))))

    def test_rejected_append_leaves_history_unchanged(self):
        conv = _base()
        with pytest.raises(ConversationError):
            conv.append(_results("a"))
        assert len(conv) == 2

    def test_error_is_quarry_error(self):
        assert issubclass(ConversationError, QuarryError)

    def test_public_exceptions(self):
        import quarry

        exported = {name for name in quarry.__all__ if name.endswith("Error")}
        assert exported == {
            "ConversationError",
            "DuplicateToolError",
            "LLMClientError",
            "ModelUnavailableError",
            "QuarryError",
            "RunCancelledError",
            "ToolNotFoundError",
        }
        for name in exported:
            assert issubclass(getattr(quarry, name), QuarryError)


class TestConversationSnapshot:
    def test_messages_is_a_snapshot(self):
        conv = _base()
        snapshot = conv.messages
        conv.append(Message.assistant("later"))
        assert len(snapshot) == 2
        assert len(conv.messages) == 3

    def test_iteration_in_append_order(self):
        conv = _base()
        assert [m.role for m in conv] == [Role.SYSTEM, Role.USER]

    def test_pending_calls(self):
        conv = _base()
        assert conv.pending_calls() == []
        conv.append(Message.assistant("", _calls("a")))
        assert [c.id for c in conv.pending_calls()] == ["a"]
        conv.append(_results("a"))
        assert conv.pending_calls() == []

    def test_empty_conversation(self):
        conv = Conversation()
        assert conv.last() is None
        assert len(conv) == 0


class TestConversationProperties:
    @settings(deadline=None)
    @given(rounds=tool_rounds)
    def test_well_formed_rounds_always_append(self, rounds):
        conv = _base()
        for assistant, results in rounds:
            conv.append(assistant)
            conv.append(results)
        assert len(conv) == 2 + 2 * len(rounds)
        assert conv.pending_calls() == []

    @settings(deadline=None)
    @given(rounds=tool_rounds)
    def test_every_tool_message_answers_the_previous_calls(self, rounds):
        conv = _base()
        for assistant, results in rounds:
            conv.append(assistant)
            conv.append(results)
        messages = conv.messages
        for i, msg in enumerate(messages):
            if msg.role == Role.TOOL:
                expected = [c.id for c in messages[i - 1].tool_calls()]
                assert [r.call_id for r in msg.tool_results_in()] == expected
