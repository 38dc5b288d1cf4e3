"""Completion poller for tools whose effect is produced out-of-band.

Some tools only trigger work in an external component (e.g. a PDF
renderer writing page images).  The only observable signal is files
appearing under ``<root>/<namespace>/<key>/``.  The poller samples that
directory until a non-empty listing appears, waits one settle delay to
let a still-writing producer finish, re-lists, and returns.

The settle delay is a heuristic: a producer that is slower than
``max_wait``, or still writing after the settle delay, can race the
caller.  The poller only ever reads directory listings, never file
contents.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from quarry.cancellation import CancellationToken

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: frozenset[str] = frozenset({"png", "jpg", "jpeg"})
IMAGE_FILE_PATTERN: re.Pattern[str] = re.compile(r"\.(png|jpe?g)$", re.IGNORECASE)


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll.

    Attributes:
        found: True if matching files were observed before the deadline.
        items: Sorted names of the matching files (empty when not found).
        elapsed: Seconds spent polling.
        cancelled: True if the cancellation token cut the poll short.
    """

    found: bool
    items: tuple[str, ...] = ()
    elapsed: float = 0.0
    cancelled: bool = False


def _compile(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, re.IGNORECASE)


def list_matching(directory: str | os.PathLike[str], pattern: str | re.Pattern[str]) -> list[str]:
    """Sorted names of regular files in ``directory`` whose name matches ``pattern``.

    A missing or unreadable directory yields an empty list.
    """
    regex = _compile(pattern)
    try:
        with os.scandir(directory) as entries:
            names = [e.name for e in entries if e.is_file() and regex.search(e.name)]
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as exc:
        logger.debug("Cannot list %s: %s", directory, exc)
        return []
    return sorted(names)


class CompletionPoller:
    """Waits for an external writer to populate a directory.

    Times are in seconds.  ``clock`` and the cancellation token's
    ``wait()`` are the only time sources, which keeps the poller
    deterministic under a fake clock in tests.

    Usage::

        poller = CompletionPoller(max_wait=15.0, poll_interval=2.0)
        result = poller.poll(out_dir, cancellation=token)
        if result.found:
            print(result.items)
    """

    def __init__(
        self,
        max_wait: float = 15.0,
        poll_interval: float = 2.0,
        settle_delay: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.max_wait = max_wait
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay
        self._clock = clock

    def poll(
        self,
        expected_dir: str | os.PathLike[str],
        file_pattern: str | re.Pattern[str] = IMAGE_FILE_PATTERN,
        *,
        max_wait: float | None = None,
        poll_interval: float | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PollResult:
        """Sample ``expected_dir`` until matching files appear or time runs out.

        Each iteration sleeps ``poll_interval`` first, then lists the
        directory.  On the first non-empty listing it sleeps
        ``settle_delay`` and lists again before returning.

        Returns:
            PollResult; ``found=False`` with no items on timeout or cancel.

        Raises:
            ValueError: If the effective ``poll_interval`` is not positive.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        if interval <= 0:
            raise ValueError("poll_interval must be positive")
        token = cancellation or CancellationToken.none()
        budget = self.max_wait if max_wait is None else max_wait
        regex = _compile(file_pattern)
        start = self._clock()

        while self._clock() - start < budget:
            if token.wait(interval):
                return PollResult(False, (), self._clock() - start, cancelled=True)
            if not os.path.isdir(expected_dir):
                continue
            items = list_matching(expected_dir, regex)
            if not items:
                continue
            if token.wait(self.settle_delay):
                return PollResult(False, (), self._clock() - start, cancelled=True)
            items = list_matching(expected_dir, regex) or items
            elapsed = self._clock() - start
            logger.debug("Found %d file(s) in %s after %.1fs", len(items), expected_dir, elapsed)
            return PollResult(True, tuple(items), elapsed)

        elapsed = self._clock() - start
        logger.debug("Nothing appeared in %s within %.1fs", expected_dir, budget)
        return PollResult(False, (), elapsed)
