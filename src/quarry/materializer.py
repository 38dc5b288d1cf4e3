"""Reference materializer: user attachments to model-consumable segments.

Image files become a short label followed by the raw bytes; everything
else is decoded and inlined between delimiter lines.  One unreadable
attachment produces a failure note and never aborts the rest.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from quarry.models.content import BinarySegment, TextSegment

if TYPE_CHECKING:
    from collections.abc import Iterable

    from quarry.models.content import Segment

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
}


def image_mime(path: str | os.PathLike[str]) -> str | None:
    """Return the image mime type for ``path``'s extension, or None."""
    suffix = Path(path).suffix.lower().lstrip(".")
    return IMAGE_MIME_TYPES.get(suffix)


def _label(path: Path) -> str:
    return path.name or str(path)


def materialize_one(locator: str | os.PathLike[str]) -> list[Segment]:
    path = Path(locator)
    label = _label(path)
    mime = image_mime(path)

    if mime is not None:
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("Could not read image %s: %s", path, exc)
            return [TextSegment(f"[Could not read image: {label}]")]
        return [TextSegment(f"[Image: {label}]"), BinarySegment(data, mime)]

    try:
        content = path.read_bytes().decode("utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Could not read file %s: %s", path, exc)
        return [TextSegment(f"[Could not read file: {label}]")]
    return [TextSegment(f"\n\n--- Content of {label} ---\n{content}\n---\n")]


def materialize(locators: Iterable[str | os.PathLike[str] | None]) -> list[Segment]:
    """Turn attachment locators into segments, preserving attachment order."""
    segments: list[Segment] = []
    for locator in locators:
        if locator is None or str(locator) == "":
            continue
        segments.extend(materialize_one(locator))
    return segments
