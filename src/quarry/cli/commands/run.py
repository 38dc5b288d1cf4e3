"""quarry ask / find / workflow -- prompt-driven research runs."""

from __future__ import annotations

import click

from quarry.cli.formatting import format_error, get_console


@click.command()
@click.argument("prompt")
@click.option(
    "--attach",
    "attachments",
    multiple=True,
    type=click.Path(dir_okay=False),
    help="File to attach (images are embedded, other files inlined). Repeatable.",
)
@click.pass_context
def ask(ctx: click.Context, prompt: str, attachments: tuple[str, ...]) -> None:
    """Ask the research assistant anything; it may call tools to answer."""
    from quarry.cli import _run_command

    _run_command(ctx, prompt, attachments)


@click.command()
@click.argument("topic", nargs=-1, required=True)
@click.pass_context
def find(ctx: click.Context, topic: tuple[str, ...]) -> None:
    """Search for papers on TOPIC."""
    from quarry.cli import _run_command
    from quarry.prompts import find_prompt

    text = " ".join(topic).strip()
    if not text:
        format_error("Please provide a topic, e.g. `quarry find prompt injection defenses`.", get_console())
        raise SystemExit(1)
    _run_command(ctx, find_prompt(text))


@click.command()
@click.argument("request", nargs=-1, required=True)
@click.pass_context
def workflow(ctx: click.Context, request: tuple[str, ...]) -> None:
    """Run the full pipeline: discover, download, render, analyse, save."""
    from quarry.cli import _run_command
    from quarry.prompts import workflow_prompt

    text = " ".join(request).strip()
    if not text:
        format_error("Please describe what you want to research.", get_console())
        raise SystemExit(1)
    _run_command(ctx, workflow_prompt(text))
