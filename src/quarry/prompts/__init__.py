"""Prompt templates for the research assistant."""

from quarry.prompts.research import (
    DOWNLOAD_TOOL,
    NO_MODEL_MESSAGE,
    RESEARCH_SYSTEM_PROMPT,
    SAVE_MARKDOWN_TOOL,
    SCREENSHOT_TOOL,
    find_prompt,
    parse_download_request,
    workflow_prompt,
)

__all__ = [
    "DOWNLOAD_TOOL",
    "NO_MODEL_MESSAGE",
    "RESEARCH_SYSTEM_PROMPT",
    "SAVE_MARKDOWN_TOOL",
    "SCREENSHOT_TOOL",
    "find_prompt",
    "parse_download_request",
    "workflow_prompt",
]
