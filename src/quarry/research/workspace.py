"""Workspace configuration for the research tools."""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Any

from pydantic import BaseModel, field_validator

DEFAULT_RENDER_COMMAND: tuple[str, ...] = ("pdftoppm", "-png", "{pdf}", "{out_dir}/page")


class ResearchWorkspace(BaseModel):
    """Where papers, screenshots and reports live, and how rendering runs.

    ``render_command`` is an argv template; ``{pdf}`` and ``{out_dir}`` are
    substituted with the absolute PDF path and the screenshot directory.
    The renderer is an external program: Quarry only starts it and then
    watches ``<root>/<screenshots_dir>/<pdf-stem>/`` for images.
    """

    model_config = {"frozen": True}

    root: Path = Path(".")
    papers_dir: str = "papers"
    screenshots_dir: str = "PDF-Screenshots"
    arxiv_base_url: str = "https://arxiv.org"
    render_command: tuple[str, ...] = DEFAULT_RENDER_COMMAND
    render_max_wait: float = 15.0
    render_poll_interval: float = 2.0
    render_settle_delay: float = 1.0
    download_timeout: float = 60.0
    min_pdf_bytes: int = 1000

    @field_validator("render_command", mode="before")
    @classmethod
    def _split_command(cls, v: object) -> object:
        """Accept a shell-style string as well as a sequence."""
        if isinstance(v, str):
            return tuple(shlex.split(v))
        return v

    @field_validator("render_command")
    @classmethod
    def _require_pdf_placeholder(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("render_command must not be empty")
        if not any("{pdf}" in part for part in v):
            raise ValueError("render_command must reference {pdf}")
        return v

    @field_validator("render_max_wait", "render_poll_interval", "download_timeout")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @classmethod
    def from_env(cls, **overrides: Any) -> ResearchWorkspace:
        """Build from QUARRY_WORKSPACE / QUARRY_RENDER_COMMAND, then overrides."""
        values: dict[str, Any] = {}
        if os.environ.get("QUARRY_WORKSPACE"):
            values["root"] = Path(os.environ["QUARRY_WORKSPACE"])
        if os.environ.get("QUARRY_RENDER_COMMAND"):
            values["render_command"] = os.environ["QUARRY_RENDER_COMMAND"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def root_path(self) -> Path:
        return self.root.expanduser().resolve()

    @property
    def papers_path(self) -> Path:
        return self.root_path / self.papers_dir

    @property
    def screenshots_path(self) -> Path:
        return self.root_path / self.screenshots_dir

    def resolve(self, path: str | os.PathLike[str]) -> Path:
        """Resolve ``path`` against the workspace root (absolute paths kept)."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root_path / candidate
        return candidate.resolve()

    def contains(self, path: Path) -> bool:
        """True if ``path`` lies inside the workspace root."""
        try:
            path.resolve().relative_to(self.root_path)
        except ValueError:
            return False
        return True

    def render_argv(self, pdf: Path, out_dir: Path) -> list[str]:
        return [part.format(pdf=str(pdf), out_dir=str(out_dir)) for part in self.render_command]
