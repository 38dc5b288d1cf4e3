"""Orchestrator configuration types.

Provides OrchestratorState and OrchestratorConfig for configuring the
research orchestrator loop.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from quarry.models.content import Segment, ToolCallSegment
    from quarry.orchestrator.models import RoundRecord


class OrchestratorState(str, enum.Enum):
    """States an orchestrator run moves through.

    ``awaiting_model`` and ``executing_tools`` alternate while the run is
    live; the remaining non-idle states are terminal.
    """

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    OrchestratorState.DONE,
    OrchestratorState.EXHAUSTED,
    OrchestratorState.CANCELLED,
    OrchestratorState.FAILED,
})


@dataclass
class OrchestratorConfig:
    """Configuration for the research orchestrator.

    Mutable dataclass -- callers may adjust settings between runs.

    Attributes:
        max_rounds: Maximum number of tool-executing rounds per run.
        system_prompt: Override for the default research system prompt.
        on_text: Called with each text chunk as the model streams it.
        on_progress: Called with short status lines ("Calling tool: ...").
        on_tool_result: Called after each tool call with its result segments.
        on_round: Called after each tool-executing round completes.
    """

    max_rounds: int = 10
    system_prompt: str | None = None
    on_text: Callable[[str], None] | None = None
    on_progress: Callable[[str], None] | None = None
    on_tool_result: Callable[[ToolCallSegment, list[Segment]], None] | None = None
    on_round: Callable[[RoundRecord], None] | None = None

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {self.max_rounds}")
