"""Orchestrator package -- the bounded model/tool loop.

Provides the Orchestrator class, its configuration and state enum, the
two-phase ModelTurn, and the run result types.
"""

from quarry.orchestrator.config import OrchestratorConfig, OrchestratorState
from quarry.orchestrator.loop import Orchestrator
from quarry.orchestrator.models import RoundRecord, RunMetadata, RunResult
from quarry.orchestrator.turn import ModelTurn

__all__ = [
    # Core
    "Orchestrator",
    "ModelTurn",
    # Config
    "OrchestratorConfig",
    "OrchestratorState",
    # Models
    "RoundRecord",
    "RunMetadata",
    "RunResult",
]
