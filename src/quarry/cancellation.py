"""Cooperative cancellation for orchestrator runs.

A run threads one CancellationToken through the model stream, every tool
invocation and every poller wait.  ``wait()`` is the cooperative sleep:
it returns early as soon as the token is cancelled, so a run blocked in a
poll interval observes cancellation without waiting out the interval.
"""

from __future__ import annotations

import threading

from quarry.exceptions import RunCancelledError


class CancellationToken:
    """Thread-safe, one-way cancellation signal.

    Usage::

        token = CancellationToken()
        worker = threading.Thread(target=orch.run, args=("prompt",),
                                  kwargs={"cancellation": token})
        worker.start()
        token.cancel()  # run stops at its next checkpoint
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @classmethod
    def none(cls) -> CancellationToken:
        """Return a fresh token that nobody holds a reference to cancel."""
        return cls()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Signal cancellation.  Idempotent."""
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds.

        Returns:
            True if the token was cancelled (possibly before the timeout).
        """
        if timeout <= 0:
            return self._event.is_set()
        return self._event.wait(timeout)

    def raise_if_cancelled(self, where: str = "") -> None:
        """Raise RunCancelledError if the token has been cancelled."""
        if self._event.is_set():
            raise RunCancelledError(where)

    def __repr__(self) -> str:
        return f"<CancellationToken cancelled={self.is_cancelled}>"
