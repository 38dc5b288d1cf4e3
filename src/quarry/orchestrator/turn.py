"""ModelTurn: one model response, consumed in two phases.

While ``consume()`` drains the model's iterator the turn is *streaming*
and each text chunk is forwarded immediately; afterwards it is *settled*
and the full, ordered segment list is available.  Cancellation is
checked between chunks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from quarry.models.content import TextSegment, ToolCallSegment

if TYPE_CHECKING:
    from quarry.cancellation import CancellationToken
    from quarry.models.content import Segment

logger = logging.getLogger(__name__)


class ModelTurn:
    """Accumulates one streamed model response."""

    def __init__(self, on_text: Callable[[str], None] | None = None) -> None:
        self._on_text = on_text
        self._segments: list[Segment] = []
        self.streaming = False
        self.settled = False
        self.interrupted = False

    def consume(self, chunks: Iterable[Segment], cancellation: CancellationToken) -> ModelTurn:
        """Drain ``chunks``, forwarding text as it arrives.

        Returns self.  Sets ``interrupted`` if cancellation stopped the
        stream before it ended; segments received so far are kept.
        """
        self.streaming = True
        iterator = iter(chunks)
        try:
            for segment in iterator:
                if cancellation.is_cancelled:
                    self.interrupted = True
                    break
                if isinstance(segment, TextSegment):
                    if not segment.text:
                        continue
                    self._segments.append(segment)
                    self._forward(segment.text)
                elif isinstance(segment, ToolCallSegment):
                    self._segments.append(segment)
                else:
                    logger.warning(
                        "Ignoring %s in model output", type(segment).__name__
                    )
            else:
                self.interrupted = cancellation.is_cancelled
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()
            self.streaming = False
            self.settled = True
        return self

    def _forward(self, text: str) -> None:
        if self._on_text is None:
            return
        try:
            self._on_text(text)
        except Exception:
            logger.debug("on_text callback error", exc_info=True)

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    @property
    def text(self) -> str:
        """Text chunks concatenated in arrival order."""
        return "".join(s.text for s in self._segments if isinstance(s, TextSegment))

    @property
    def tool_calls(self) -> list[ToolCallSegment]:
        """Tool calls in the order received, with duplicate ids made unique."""
        received = [s for s in self._segments if isinstance(s, ToolCallSegment)]
        taken = {s.id for s in received}
        calls: list[ToolCallSegment] = []
        seen: set[str] = set()
        for seg in received:
            if seg.id in seen:
                n = len(calls)
                fixed = f"{seg.id}_{n}"
                while fixed in taken:
                    n += 1
                    fixed = f"{seg.id}_{n}"
                taken.add(fixed)
                logger.warning("Duplicate tool-call id %s renamed to %s", seg.id, fixed)
                seg = ToolCallSegment(id=fixed, name=seg.name, input=seg.input)
            seen.add(seg.id)
            calls.append(seg)
        return calls
