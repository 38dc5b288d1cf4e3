"""Quarry CLI -- terminal interface for the research assistant.

Loaded only through the ``quarry`` console script; nothing in the
library imports it.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import click

from quarry.cli.formatting import (
    format_error,
    format_followups,
    format_progress,
    format_run_summary,
    format_tool_result,
    get_console,
    stream_text,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rich.console import Console

    from quarry.llm.protocols import ChatModel
    from quarry.orchestrator.models import RunResult
    from quarry.research.workspace import ResearchWorkspace
    from quarry.toolkit.registry import ToolRegistry

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--workspace",
    "workspace_root",
    default=None,
    envvar="QUARRY_WORKSPACE",
    type=click.Path(file_okay=False),
    help="Workspace directory for papers, screenshots and reports.",
)
@click.option("--model", "model_name", default=None, envvar="QUARRY_MODEL", help="Model name.")
@click.option("--max-rounds", default=10, show_default=True, type=click.IntRange(min=1),
              help="Maximum tool rounds per run.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    workspace_root: str | None,
    model_name: str | None,
    max_rounds: int,
    verbose: bool,
) -> None:
    """Quarry: an agentic research assistant for academic papers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["workspace_root"] = workspace_root
    ctx.obj["model_name"] = model_name
    ctx.obj["max_rounds"] = max_rounds


def _build_model(model_name: str | None) -> ChatModel | None:
    """Build the HTTP chat model, or None when it is not configured."""
    from quarry.llm import LLMConfigError, OpenAIChatModel, select_model

    try:
        candidate = OpenAIChatModel(model=model_name)
    except LLMConfigError as exc:
        logger.debug("Chat model unavailable: %s", exc)
        candidate = None
    return select_model([candidate])


def _get_workspace(ctx: click.Context) -> ResearchWorkspace:
    from quarry.research.workspace import ResearchWorkspace

    return ResearchWorkspace.from_env(root=ctx.obj.get("workspace_root"))


def _get_registry(ctx: click.Context) -> ToolRegistry:
    from quarry.research.tools import build_research_registry

    return build_research_registry(_get_workspace(ctx))


def _run_prompt(
    ctx: click.Context,
    prompt: str,
    attachments: Sequence[str] = (),
    console: Console | None = None,
) -> RunResult:
    """Run the orchestrator for ``prompt``, streaming output to the console.

    The run executes on a worker thread so Ctrl-C on the main thread can
    cancel it cooperatively; partial output stays on screen.
    """
    from quarry.cancellation import CancellationToken
    from quarry.followups import suggest_followups
    from quarry.orchestrator import Orchestrator, OrchestratorConfig

    console = console or get_console()
    model = _build_model(ctx.obj.get("model_name"))
    config = OrchestratorConfig(
        max_rounds=ctx.obj.get("max_rounds", 10),
        on_text=lambda text: stream_text(text, console),
        on_progress=lambda msg: format_progress(msg, console),
        on_tool_result=lambda call, segs: format_tool_result(call, segs, console),
    )
    orch = Orchestrator(model, _get_registry(ctx), config)
    token = CancellationToken()
    outcome: dict[str, object] = {}

    def _target() -> None:
        try:
            outcome["result"] = orch.run(prompt, attachments, cancellation=token)
        except BaseException as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=_target, name="quarry-run", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelling...[/yellow]")
        token.cancel()
        worker.join()
    finally:
        if model is not None:
            model.close()

    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    result: RunResult = outcome["result"]  # type: ignore[assignment]
    format_run_summary(result, console)
    format_followups(suggest_followups(result.metadata), console)
    return result


def _run_command(ctx: click.Context, prompt: str, attachments: Sequence[str] = ()) -> None:
    """Shared body of the prompt-driven commands: run, then map failures to exit 1."""
    from quarry.orchestrator import OrchestratorState

    console = get_console()
    try:
        result = _run_prompt(ctx, prompt, attachments, console)
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None
    if result.state == OrchestratorState.FAILED:
        raise SystemExit(1)


# Register subcommands after cli group is defined
from quarry.cli.commands.run import ask, find, workflow  # noqa: E402
from quarry.cli.commands.tools import download, render  # noqa: E402

cli.add_command(ask)
cli.add_command(find)
cli.add_command(workflow)
cli.add_command(download)
cli.add_command(render)
