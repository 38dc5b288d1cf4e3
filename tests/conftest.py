"""Shared test fixtures for Quarry.

Provides scripted chat models, a fake clock with a matching cancellation
token for poller tests, and a throwaway research workspace.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from quarry.cancellation import CancellationToken
from quarry.models.content import TextSegment, ToolCallSegment
from quarry.research.workspace import ResearchWorkspace
from quarry.toolkit.models import ToolDefinition


# ------------------------------------------------------------------
# Scripted models (used by test_orchestrator.py, test_cli.py)
# ------------------------------------------------------------------


class ScriptedModel:
    """A chat model that replays turns in sequence and records every request.

    Each turn is a list of segments to yield, or an exception to raise when
    the stream is first advanced.  Once the script runs out the last turn is
    repeated.
    """

    def __init__(self, turns: list) -> None:
        self.turns = list(turns)
        self.requests: list[tuple] = []
        self.closed = False

    def stream(self, messages, tools, *, cancellation):
        self.requests.append((tuple(messages), tuple(tools)))
        idx = min(len(self.requests), len(self.turns)) - 1
        turn = self.turns[idx]
        if isinstance(turn, BaseException):
            raise turn
        for segment in turn:
            yield segment

    def close(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.requests)


def make_model(*turns) -> ScriptedModel:
    """Create a scripted model from turns given positionally."""
    return ScriptedModel(list(turns))


def text_turn(*chunks: str) -> list:
    """A model turn that only streams text."""
    return [TextSegment(c) for c in chunks]


def tool_turn(name: str, arguments: dict | None = None, call_id: str = "call_1", text: str = "") -> list:
    """A model turn with optional text then one tool call."""
    segments: list = [TextSegment(text)] if text else []
    segments.append(ToolCallSegment(id=call_id, name=name, input=arguments or {}))
    return segments


def multi_tool_turn(calls: list[tuple[str, dict, str]], text: str = "") -> list:
    """A model turn with several tool calls given as (name, arguments, call_id)."""
    segments: list = [TextSegment(text)] if text else []
    segments.extend(ToolCallSegment(id=cid, name=name, input=args) for name, args, cid in calls)
    return segments


def echo_tool(name: str = "search", reply: str = "3 papers found") -> ToolDefinition:
    """A tool that records its inputs and answers with a fixed string."""
    def handler(args, token):
        handler.seen.append(args)
        return reply

    handler.seen = []
    return ToolDefinition(
        name=name,
        description=f"Test tool {name}",
        parameters={
            "type": "object",
            "properties": {"query": {"type": "string"}},
        },
        handler=handler,
    )


# ------------------------------------------------------------------
# Fake time
# ------------------------------------------------------------------


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class ClockedToken(CancellationToken):
    """Cancellation token whose ``wait()`` advances a FakeClock instantly.

    ``on_tick(now)`` runs after every advance, which lets a test make files
    appear or cancel the run at a chosen simulated time.
    """

    def __init__(self, clock: FakeClock, on_tick=None) -> None:
        super().__init__()
        self.clock = clock
        self.on_tick = on_tick
        self.waits: list[float] = []

    def wait(self, timeout: float) -> bool:
        if self.is_cancelled:
            return True
        self.waits.append(timeout)
        self.clock.now += timeout
        if self.on_tick is not None:
            self.on_tick(self.clock.now)
        return self.is_cancelled


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ------------------------------------------------------------------
# Workspace
# ------------------------------------------------------------------


@pytest.fixture
def workspace(tmp_path: Path) -> ResearchWorkspace:
    """Research workspace rooted in a temporary directory."""
    return ResearchWorkspace(root=tmp_path, arxiv_base_url="http://arxiv.test")


def write_pdf(workspace: ResearchWorkspace, name: str = "paper-1.pdf", size: int = 2048) -> Path:
    """Create a fake PDF under the workspace papers directory."""
    path = workspace.papers_path / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"%PDF-1.4\n" + b"0" * max(size - 9, 0))
    return path
