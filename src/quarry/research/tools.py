"""Research tool definitions: acquire, render and save.

Each tool definition carries an action-oriented description, a JSON
Schema for its input, and a handler bound to a specific workspace.
Handlers report problems as result text so the model can adapt; only
cancellation and unexpected faults escape to the invoker.
"""

from __future__ import annotations

import logging
import re
import subprocess
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from quarry.completion import IMAGE_FILE_PATTERN, CompletionPoller
from quarry.prompts.research import DOWNLOAD_TOOL, SAVE_MARKDOWN_TOOL, SCREENSHOT_TOOL
from quarry.toolkit.models import ToolDefinition
from quarry.toolkit.registry import ToolRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from quarry.cancellation import CancellationToken
    from quarry.research.workspace import ResearchWorkspace

logger = logging.getLogger(__name__)

ARXIV_ID_RE = re.compile(r"^\d{4}\.\d{4,5}(v\d+)?$")
SCREENSHOT_DIR_RE = re.compile(r"^Screenshots saved to: (?P<dir>.+?)/?$", re.MULTILINE)
_USER_AGENT = "Mozilla/5.0 (Quarry-Research-Assistant)"


class RenderProcess(Protocol):
    """The part of subprocess.Popen the screenshot tool relies on."""

    def poll(self) -> int | None: ...


def launch_renderer(argv: list[str]) -> RenderProcess:
    """Start the external renderer and return without waiting for it."""
    logger.debug("Launching renderer: %s", argv)
    return subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class RendererProcesses:
    """Renderers still running after their screenshot call returned.

    Handles are kept until a later ``reap()`` sees them exit; ``poll()`` on
    a finished ``Popen`` collects its exit status.
    """

    def __init__(self) -> None:
        self._running: list[RenderProcess] = []
        self._lock = threading.Lock()

    def track(self, process: RenderProcess) -> None:
        with self._lock:
            self._running.append(process)

    def reap(self) -> int:
        """Drop every renderer that has exited; returns how many still run."""
        with self._lock:
            self._running = [p for p in self._running if p.poll() is None]
            return len(self._running)

    def __len__(self) -> int:
        with self._lock:
            return len(self._running)


def sanitize_filename(name: str) -> str:
    """Kebab-case a requested filename: ``"MELON Defense.pdf"`` -> ``"melon-defense"``."""
    stem = re.sub(r"\.pdf$", "", name.strip(), flags=re.IGNORECASE)
    return re.sub(r"[^a-z0-9-]", "-", stem, flags=re.IGNORECASE).lower()


def build_research_tools(
    workspace: ResearchWorkspace,
    *,
    http_client: httpx.Client | None = None,
    poller: CompletionPoller | None = None,
    launcher: Callable[[list[str]], RenderProcess] = launch_renderer,
    renderers: RendererProcesses | None = None,
) -> list[ToolDefinition]:
    """Build the research tool definitions bound to ``workspace``.

    Args:
        workspace: Paths and renderer settings.
        http_client: Client used for downloads; one is created per call
            when omitted.
        poller: Completion poller for rendered screenshots.  Defaults to
            one built from the workspace's render timings.
        launcher: Starts the external renderer.
        renderers: Collects renderers that outlive their call.  A fresh
            tracker is made when omitted.

    Returns:
        Tool definitions for download, screenshot and save.
    """
    renderers = renderers if renderers is not None else RendererProcesses()
    poller = poller or CompletionPoller(
        max_wait=workspace.render_max_wait,
        poll_interval=workspace.render_poll_interval,
        settle_delay=workspace.render_settle_delay,
    )
    return [
        ToolDefinition(
            name=DOWNLOAD_TOOL,
            description=(
                "Download an academic paper from arXiv as a PDF into the "
                "workspace papers/ directory. Provide the arXiv ID (e.g. "
                "'2502.05174') and a descriptive kebab-case filename."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "arxivId": {
                        "type": "string",
                        "description": "arXiv identifier, e.g. '2502.05174' or '1706.03762v7'.",
                    },
                    "filename": {
                        "type": "string",
                        "description": "Optional kebab-case filename without extension.",
                    },
                },
                "required": ["arxivId"],
            },
            handler=lambda args, token: _handle_download(
                workspace, http_client, args["arxivId"], args.get("filename"), token
            ),
        ),
        ToolDefinition(
            name=SCREENSHOT_TOOL,
            description=(
                "Render every page of a downloaded PDF to PNG screenshots in "
                "PDF-Screenshots/<pdf-name>/. Use after downloading a paper; "
                "the screenshots can then be attached for analysis."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "pdfPath": {
                        "type": "string",
                        "description": "Workspace-relative or absolute path to the PDF.",
                    },
                },
                "required": ["pdfPath"],
            },
            handler=lambda args, token: _handle_screenshot(
                workspace, poller, launcher, renderers, args["pdfPath"], token
            ),
            side_effect_pattern=SCREENSHOT_DIR_RE,
        ),
        ToolDefinition(
            name=SAVE_MARKDOWN_TOOL,
            description=(
                "Save analysis content (summaries, Mermaid diagrams) as a "
                "Markdown file in the workspace, e.g. papers/topic-analysis.md."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "filePath": {
                        "type": "string",
                        "description": "Workspace-relative path ending in .md.",
                    },
                    "content": {
                        "type": "string",
                        "description": "Markdown content to write.",
                    },
                },
                "required": ["filePath", "content"],
            },
            handler=lambda args, token: _handle_save_markdown(
                workspace, args["filePath"], args["content"]
            ),
        ),
    ]


def build_research_registry(
    workspace: ResearchWorkspace,
    extra: Iterable[ToolDefinition] = (),
    **kwargs: Any,
) -> ToolRegistry:
    """Build the frozen registry: research tools plus any ``extra`` tools."""
    return ToolRegistry([*build_research_tools(workspace, **kwargs), *extra])


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_download(
    workspace: ResearchWorkspace,
    client: httpx.Client | None,
    arxiv_id: str,
    filename: str | None,
    token: CancellationToken,
) -> str:
    arxiv_id = arxiv_id.strip()
    if not ARXIV_ID_RE.match(arxiv_id):
        return (
            f'Error: Invalid arXiv ID format "{arxiv_id}". '
            f'Expected format like "2502.05174".'
        )

    papers_dir = workspace.papers_path
    name = sanitize_filename(filename) if filename else arxiv_id.replace(".", "-")
    output = papers_dir / f"{name}.pdf"
    papers_dir.mkdir(parents=True, exist_ok=True)

    if output.exists():
        return (
            f"Paper already exists at: {output}\n"
            f"Skipping download. Delete the file to re-download."
        )

    url = f"{workspace.arxiv_base_url.rstrip('/')}/pdf/{arxiv_id}"
    try:
        _download_file(url, output, client, workspace.download_timeout, token)
    except (httpx.HTTPError, OSError) as exc:
        return f"Error downloading paper: {exc}\nURL: {url}"

    size = output.stat().st_size
    if size < workspace.min_pdf_bytes:
        output.unlink(missing_ok=True)
        return (
            f"Error: Downloaded file is too small ({size} bytes) -- likely not a "
            f'valid PDF. The arXiv ID "{arxiv_id}" may be incorrect.'
        )

    return (
        f"Successfully downloaded arXiv paper {arxiv_id}.\n"
        f"Saved to: {output}\n"
        f"File size: {size / 1024:.1f} KB\n"
        f"\nNext step: Use {SCREENSHOT_TOOL} to extract page images."
    )


def _download_file(
    url: str,
    output: Path,
    client: httpx.Client | None,
    timeout: float,
    token: CancellationToken,
) -> None:
    """Stream ``url`` into ``output``, removing the partial file on any failure."""
    own_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        with http.stream(
            "GET", url, headers={"User-Agent": _USER_AGENT}, follow_redirects=True
        ) as response:
            response.raise_for_status()
            with output.open("wb") as fh:
                for chunk in response.iter_bytes():
                    token.raise_if_cancelled("download")
                    fh.write(chunk)
    except BaseException:
        output.unlink(missing_ok=True)
        raise
    finally:
        if own_client:
            http.close()


def _handle_screenshot(
    workspace: ResearchWorkspace,
    poller: CompletionPoller,
    launcher: Callable[[list[str]], RenderProcess],
    renderers: RendererProcesses,
    pdf_path: str,
    token: CancellationToken,
) -> str:
    still_running = renderers.reap()
    if still_running:
        logger.debug("%d renderer(s) from earlier calls still running", still_running)
    absolute = workspace.resolve(pdf_path)
    if not absolute.exists():
        return (
            f'Error: PDF file not found at "{absolute}".\n'
            f"Use {DOWNLOAD_TOOL} first to download the paper."
        )
    if absolute.suffix.lower() != ".pdf":
        return f'Error: File "{pdf_path}" is not a PDF file.'

    out_dir = workspace.screenshots_path / absolute.stem
    out_dir.mkdir(parents=True, exist_ok=True)
    argv = workspace.render_argv(absolute, out_dir)
    try:
        process = launcher(argv)
    except (OSError, ValueError) as exc:
        return (
            f"Error processing PDF: {exc}\n"
            f"Ensure the renderer ({workspace.render_command[0]}) is installed."
        )

    try:
        result = poller.poll(out_dir, IMAGE_FILE_PATTERN, cancellation=token)
    finally:
        exit_code = process.poll()
        if exit_code is None:
            renderers.track(process)
    if result.cancelled:
        token.raise_if_cancelled(SCREENSHOT_TOOL)

    if result.found:
        listing = "\n".join(f"  - {out_dir / name}" for name in result.items)
        return (
            f'Successfully extracted {len(result.items)} page screenshot(s) from "{pdf_path}".\n\n'
            f"Screenshots saved to: {out_dir}/\n\n"
            f"Files:\n{listing}\n\n"
            f"Next step: Attach these images for multimodal analysis."
        )

    if exit_code is not None and exit_code != 0:
        return (
            f'Error: the renderer exited with status {exit_code} for "{pdf_path}" '
            f"and produced no screenshots."
        )
    return (
        f'Render command triggered for "{pdf_path}", but no screenshots appeared '
        f"within {poller.max_wait:g}s.\n"
        f"The screenshots may still be generating. Check {out_dir}/ and call "
        f"{SCREENSHOT_TOOL} again if needed."
    )


def _handle_save_markdown(workspace: ResearchWorkspace, file_path: str, content: str) -> str:
    absolute = workspace.resolve(file_path)
    if absolute.suffix.lower() != ".md":
        return f'Error: File path must end with .md -- got "{file_path}".'
    if not workspace.contains(absolute):
        return f'Error: "{file_path}" is outside the workspace.'

    try:
        absolute.parent.mkdir(parents=True, exist_ok=True)
        absolute.write_text(content, encoding="utf-8")
        size = absolute.stat().st_size
    except OSError as exc:
        return f"Error saving file: {exc}"

    return (
        f"Successfully saved analysis to: {file_path}\n"
        f"File size: {size / 1024:.1f} KB\n"
        f"Tip: preview the file with a Mermaid-aware Markdown viewer to see the diagrams."
    )
