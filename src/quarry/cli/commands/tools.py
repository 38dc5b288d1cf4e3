"""quarry download / render -- invoke a research tool directly, no model involved."""

from __future__ import annotations

import click

from quarry.cli.formatting import format_error, format_progress, get_console


def _invoke_and_print(ctx: click.Context, tool_name: str, arguments: dict, progress: str) -> None:
    from quarry.cancellation import CancellationToken
    from quarry.cli import _get_registry
    from quarry.models.content import TextSegment
    from quarry.toolkit.executor import ToolInvoker

    console = get_console()
    format_progress(progress, console)
    token = CancellationToken()
    try:
        segments = ToolInvoker(_get_registry(ctx)).invoke(tool_name, arguments, token)
    except KeyboardInterrupt:
        token.cancel()
        format_error("Interrupted", console)
        raise SystemExit(1) from None
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    failed = False
    for seg in segments:
        if isinstance(seg, TextSegment):
            if seg.text.startswith("Error"):
                failed = True
            console.print(seg.text, markup=False, highlight=False)
    if failed:
        raise SystemExit(1)


@click.command()
@click.argument("request", nargs=-1, required=True)
@click.pass_context
def download(ctx: click.Context, request: tuple[str, ...]) -> None:
    """Download an arXiv paper: ARXIV_ID [FILENAME]."""
    from quarry.prompts import DOWNLOAD_TOOL, parse_download_request

    parsed = parse_download_request(" ".join(request))
    if parsed is None:
        format_error(
            "Please provide an arXiv ID, e.g. `quarry download 2502.05174 melon-provable-defense`.",
            get_console(),
        )
        raise SystemExit(1)
    arxiv_id, filename = parsed
    arguments = {"arxivId": arxiv_id}
    if filename:
        arguments["filename"] = filename
    _invoke_and_print(ctx, DOWNLOAD_TOOL, arguments, f"Downloading arXiv:{arxiv_id}…")


@click.command()
@click.argument("pdf_path")
@click.pass_context
def render(ctx: click.Context, pdf_path: str) -> None:
    """Render page screenshots from PDF_PATH."""
    from quarry.prompts import SCREENSHOT_TOOL

    _invoke_and_print(
        ctx, SCREENSHOT_TOOL, {"pdfPath": pdf_path}, f"Extracting screenshots from {pdf_path}…"
    )
