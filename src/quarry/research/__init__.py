"""Concrete research tools and their workspace configuration."""

from quarry.research.tools import (
    SCREENSHOT_DIR_RE,
    RendererProcesses,
    build_research_registry,
    build_research_tools,
    launch_renderer,
    sanitize_filename,
)
from quarry.research.workspace import DEFAULT_RENDER_COMMAND, ResearchWorkspace

__all__ = [
    "DEFAULT_RENDER_COMMAND",
    "ResearchWorkspace",
    "RendererProcesses",
    "SCREENSHOT_DIR_RE",
    "build_research_registry",
    "build_research_tools",
    "launch_renderer",
    "sanitize_filename",
]
