"""Built-in OpenAI-compatible streaming chat model (httpx + tenacity).

Streams ``/chat/completions`` with ``stream: true`` and yields Quarry
segments as server-sent events arrive.  Opening the stream is retried
with exponential backoff on transient failures; once bytes are flowing
the stream is consumed exactly once.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

import httpx
import tenacity

from quarry.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMStreamError,
)
from quarry.llm.wire import ToolCallAccumulator, to_openai_messages, to_openai_tools
from quarry.models.content import TextSegment

if TYPE_CHECKING:
    from quarry.cancellation import CancellationToken
    from quarry.models.content import Message, Segment
    from quarry.toolkit.models import ToolDescriptor

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_AUTH_ERROR_STATUS_CODES = {401, 403}
_DATA_PREFIX = "data:"
_DONE_SENTINEL = "[DONE]"


def _should_reopen(exc: BaseException) -> bool:
    """True for failures worth another attempt at opening the stream.

    Rate limits, gateway/server errors and transport failures before any
    bytes arrived qualify; credential and request errors do not.
    """
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout, httpx.RemoteProtocolError))


class OpenAIChatModel:
    """Streaming chat model for OpenAI-compatible endpoints.

    Implements the ChatModel protocol.

    Usage::

        with OpenAIChatModel(api_key="sk-...") as model:
            for segment in model.stream(messages, registry.descriptors(),
                                        cancellation=token):
                ...
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 3,
        temperature: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key. Falls back to QUARRY_OPENAI_API_KEY.
            base_url: API base URL. Falls back to QUARRY_OPENAI_BASE_URL,
                then to https://api.openai.com/v1.
            model: Model name. Falls back to QUARRY_MODEL, then gpt-4o-mini.
            timeout: Request timeout in seconds.
            max_retries: Attempts at opening the stream for retryable errors.
            temperature: Optional sampling temperature.
            transport: Optional httpx transport (tests use MockTransport).

        Raises:
            LLMConfigError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("QUARRY_OPENAI_API_KEY", "")
        if not self._api_key:
            raise LLMConfigError(
                "No API key provided. Pass api_key= or set QUARRY_OPENAI_API_KEY "
                "environment variable."
            )
        self._base_url = (
            base_url
            or os.environ.get("QUARRY_OPENAI_BASE_URL", "https://api.openai.com/v1")
        ).rstrip("/")
        self.model = model or os.environ.get("QUARRY_MODEL", "gpt-4o-mini")
        self._temperature = temperature
        self._max_retries = max_retries
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
        )

    def stream(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        *,
        cancellation: CancellationToken,
    ) -> Iterator[Segment]:
        """Stream one assistant turn.

        Yields TextSegment chunks as they arrive, then the turn's tool calls
        once the stream reports them complete.  Stops early, without
        raising, when ``cancellation`` is signalled between events.

        Raises:
            LLMAuthError: On 401/403 (no retry).
            LLMRateLimitError: On 429 after all retries exhausted.
            LLMStreamError: If an event cannot be decoded.
            httpx.HTTPStatusError: On other non-retryable HTTP errors.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(messages),
            "stream": True,
        }
        if tools:
            payload["tools"] = to_openai_tools(tools)
        if self._temperature is not None:
            payload["temperature"] = self._temperature

        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_should_reopen),
            wait=(
                tenacity.wait_exponential(multiplier=1, min=1, max=30)
                + tenacity.wait_random(0, 2)
            ),
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        response = retryer(self._open_stream, payload)
        try:
            yield from self._iter_segments(response, cancellation)
        finally:
            response.close()

    def _open_stream(self, payload: dict[str, Any]) -> httpx.Response:
        """Send the request and return the response with its body unread."""
        request = self._client.build_request(
            "POST", f"{self._base_url}/chat/completions", json=payload
        )
        response = self._client.send(request, stream=True)
        if response.status_code < 400:
            return response

        body = response.read().decode("utf-8", errors="replace")
        response.close()
        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise LLMAuthError(
                f"Authentication failed: HTTP {response.status_code} - {body}"
            )
        if response.status_code == 429:
            retry_after: float | None = None
            raw = response.headers.get("Retry-After")
            if raw is not None:
                try:
                    retry_after = float(raw)
                except (ValueError, TypeError):
                    pass
            raise LLMRateLimitError(f"Rate limited: HTTP 429 - {body}", retry_after=retry_after)
        response.raise_for_status()
        return response

    def _iter_segments(
        self, response: httpx.Response, cancellation: CancellationToken
    ) -> Iterator[Segment]:
        calls = ToolCallAccumulator()
        received = 0
        for line in response.iter_lines():
            if cancellation.is_cancelled:
                logger.debug("Stream abandoned after %d chunk(s): cancelled", received)
                return
            line = line.strip()
            if not line.startswith(_DATA_PREFIX):
                continue
            data = line[len(_DATA_PREFIX):].strip()
            if data == _DONE_SENTINEL:
                break
            try:
                event = json.loads(data)
            except json.JSONDecodeError as exc:
                raise LLMStreamError(f"Undecodable stream event ({exc})", received) from exc
            if not isinstance(event, dict):
                raise LLMStreamError(
                    f"Stream event is not an object ({type(event).__name__})", received
                )
            received += 1

            if "error" in event:
                raise LLMResponseError(f"Model reported an error: {event['error']}")
            for choice in event.get("choices") or []:
                delta = choice.get("delta") or {}
                text = delta.get("content")
                if text:
                    yield TextSegment(text)
                for tc_delta in delta.get("tool_calls") or []:
                    calls.add(tc_delta)

        if calls:
            yield from calls.finish()

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> OpenAIChatModel:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<OpenAIChatModel {self.model} @ {self._base_url}>"
