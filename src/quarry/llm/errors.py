"""Errors raised at the model boundary.

Every model-side failure derives from LLMClientError, so the orchestrator
can end a run in the ``failed`` state on these while letting anything
else (programming errors in a custom model) propagate.
"""

from __future__ import annotations

from quarry.exceptions import QuarryError


class LLMClientError(QuarryError):
    """Base for all model client errors."""


class LLMConfigError(LLMClientError):
    """The client cannot be built: no API key, bad base URL, etc."""


class LLMAuthError(LLMClientError):
    """The endpoint rejected our credentials (401/403). Never retried."""


class LLMRateLimitError(LLMClientError):
    """The endpoint answered 429.

    Attributes:
        retry_after: Seconds suggested by the Retry-After header, if any.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMResponseError(LLMClientError):
    """The endpoint answered with something we cannot interpret."""


class LLMStreamError(LLMResponseError):
    """A streamed response broke off or carried an undecodable event.

    Attributes:
        chunks_received: Number of events decoded before the failure.
    """

    def __init__(self, message: str, chunks_received: int = 0) -> None:
        self.chunks_received = chunks_received
        super().__init__(f"{message} after {chunks_received} chunk(s)")
