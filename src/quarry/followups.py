"""Follow-up suggestions derived from a run's metadata.

After a run that produced screenshot directories, offer to analyse each
one, plus a combined comparison when there is more than one.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quarry.orchestrator.models import RunMetadata


@dataclass(frozen=True)
class Followup:
    """A suggested next prompt and its short label."""

    prompt: str
    label: str


def suggest_followups(metadata: RunMetadata) -> list[Followup]:
    dirs = sorted(metadata.side_effect_directories)
    followups = [
        Followup(
            prompt=(
                f"Analyse the screenshots in {d}. Read the images and provide a "
                f"detailed security research analysis with key findings and a "
                f"Mermaid diagram."
            ),
            label=f"Analyse {PurePath(d).name or d} screenshots",
        )
        for d in dirs
    ]
    if len(dirs) > 1:
        followups.append(Followup(
            prompt=(
                f"Analyse all paper screenshots from these directories: "
                f"{', '.join(dirs)}. Compare the papers and provide a comprehensive "
                f"security research analysis with key findings and Mermaid diagrams."
            ),
            label="Analyse all paper screenshots",
        ))
    return followups
