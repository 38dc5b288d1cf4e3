"""Prompts for the research assistant.

The system prompt tells the model to act through its tools rather than
describe steps; the command prompts wrap a user's topic for the /find
and /workflow style entry points.
"""

from __future__ import annotations

import re

DOWNLOAD_TOOL = "quarry_downloadArxivPaper"
SCREENSHOT_TOOL = "quarry_screenshotPdf"
SAVE_MARKDOWN_TOOL = "quarry_saveMarkdown"

ARXIV_ID_PATTERN = re.compile(r"\d{4}\.\d{4,5}(v\d+)?")

NO_MODEL_MESSAGE = (
    "No language model available. Configure QUARRY_OPENAI_API_KEY "
    "(and optionally QUARRY_OPENAI_BASE_URL / QUARRY_MODEL) and try again."
)

RESEARCH_SYSTEM_PROMPT = f"""You are a Research Assistant.
You help researchers discover, download, render, and analyse academic papers on any topic, with a focus on cybersecurity.

You MUST actively use your tools to perform actions -- do not just describe steps for the user to run manually.

Your tools and how to use them:
1. **Discover** -- Use any available search tool to find papers. CALL the tool directly, do not just suggest the user run it.
2. **Acquire** -- Use {DOWNLOAD_TOOL} to download PDFs from arXiv. Always provide a descriptive kebab-case filename.
3. **Render** -- Use {SCREENSHOT_TOOL} to extract page screenshots from downloaded PDFs.
4. **Analyse** -- When the user attaches images, analyse their content in detail. Produce Mermaid diagrams (flowchart, sequence, or graph) to visualise attack/defense patterns.
5. **Save** -- Use {SAVE_MARKDOWN_TOOL} to save analysis results as a Markdown file in the papers/ directory.

CRITICAL RULES:
- ALWAYS call tools directly. Never tell the user to run a command themselves when you have a tool that can do it.
- After downloading papers, proceed to render them automatically.
- After rendering, offer to analyse the screenshots.
- After analysing, save the results as a Markdown file using {SAVE_MARKDOWN_TOOL}.
- Use kebab-case for all filenames (e.g., "prompt-injection-defense.pdf").
- Papers are saved to the papers/ directory and screenshots to PDF-Screenshots/.
- When you already know relevant arXiv IDs for a topic, include them AND also search to find more."""


def find_prompt(topic: str) -> str:
    """Wrap a topic in the instructions for a paper search."""
    return f"""The user wants to find academic papers about: "{topic}".

You MUST:
1. Call a search tool to search for papers on this topic, if one is available. Do NOT just tell the user to run it -- call it yourself.
2. Also list any relevant arXiv paper IDs you already know, with titles.
3. After presenting results, offer to download the most relevant papers immediately.

Be specific and helpful. Execute the search now."""


def workflow_prompt(request: str) -> str:
    """Wrap a request in the instructions for the full research pipeline."""
    return f"""The user wants to run a full research workflow on: "{request}".

Execute the COMPLETE pipeline using your tools. Do NOT just describe steps -- CALL the tools:

1. **Discover** -- find papers on this topic. Also list any arXiv IDs you already know.
2. **Acquire** -- CALL {DOWNLOAD_TOOL} to download the most relevant papers (2-4 papers). Use descriptive kebab-case filenames.
3. **Render** -- CALL {SCREENSHOT_TOOL} for each downloaded PDF to extract page screenshots.
4. **Analyse** -- Summarise the key findings from the papers. Create Mermaid diagrams for attack flows, defence architectures, and comparison matrices.
5. **Save** -- CALL {SAVE_MARKDOWN_TOOL} to save the full analysis (including Mermaid diagrams) as a Markdown file in papers/.

Proceed through each step automatically. After each tool call, use the results to inform the next step."""


def parse_download_request(text: str) -> tuple[str, str | None] | None:
    """Split "<arxiv-id> [filename]" into its parts.

    Returns:
        (arxiv_id, filename or None), or None if no arXiv id is present.
    """
    text = text.strip()
    match = ARXIV_ID_PATTERN.search(text)
    if match is None:
        return None
    arxiv_id = match.group(0)
    rest = (text[: match.start()] + text[match.end():]).strip()
    return arxiv_id, rest or None
