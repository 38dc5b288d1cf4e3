"""Orchestrator result models.

Provides RunMetadata, RoundRecord and RunResult.  All are frozen: a run
folds a fresh RunMetadata out of each round rather than mutating shared
state, and hands the final values to the caller without keeping them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from quarry.orchestrator.config import OrchestratorState

if TYPE_CHECKING:
    from quarry.models.content import Segment, ToolCallSegment


@dataclass(frozen=True)
class RunMetadata:
    """Advisory facts gathered during a run.

    Attributes:
        side_effect_directories: Directories tools reported as populated
            by an external producer.  Deduplicated.
    """

    side_effect_directories: frozenset[str] = frozenset()

    def with_directories(self, directories: Iterable[str]) -> RunMetadata:
        """Return metadata with ``directories`` folded in."""
        new = frozenset(directories)
        if new <= self.side_effect_directories:
            return self
        return RunMetadata(self.side_effect_directories | new)

    def to_dict(self) -> dict[str, Any]:
        return {"sideEffectDirectories": sorted(self.side_effect_directories)}


@dataclass(frozen=True)
class RoundRecord:
    """What happened in one tool-executing round."""

    round: int
    assistant_text: str
    tool_calls: tuple[ToolCallSegment, ...] = ()
    results: tuple[tuple[Segment, ...], ...] = ()


@dataclass(frozen=True)
class RunResult:
    """Final result of an orchestrator run.

    Attributes:
        final_text: Text of the final model response, or the last assistant
            text seen when the run stopped early.
        metadata: Advisory run metadata.
        state: Terminal state (done, exhausted, cancelled, failed).
        rounds: Tool-executing rounds consumed; never exceeds max_rounds.
        model_calls: Model exchanges started.
        rounds_log: One RoundRecord per tool-executing round.
        error: The error behind a failed or model-less run, if any.
    """

    final_text: str = ""
    metadata: RunMetadata = field(default_factory=RunMetadata)
    state: OrchestratorState = OrchestratorState.DONE
    rounds: int = 0
    model_calls: int = 0
    rounds_log: tuple[RoundRecord, ...] = ()
    error: Exception | None = None

    @property
    def exhausted(self) -> bool:
        return self.state == OrchestratorState.EXHAUSTED

    @property
    def cancelled(self) -> bool:
        return self.state == OrchestratorState.CANCELLED

    @property
    def total_tool_calls(self) -> int:
        return sum(len(r.tool_calls) for r in self.rounds_log)

    def to_dict(self) -> dict[str, Any]:
        """Render the caller-facing result shape."""
        return {"finalText": self.final_text, "metadata": self.metadata.to_dict()}
