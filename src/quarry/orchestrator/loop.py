"""Core orchestrator loop for research runs.

Provides the Orchestrator class that runs a bounded model/tool loop:
send the history and every tool descriptor to the model, stream its
answer, execute any tool calls it makes strictly in order, feed the
results back, and repeat until the model answers without tool calls or
the round budget is spent.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from quarry.cancellation import CancellationToken
from quarry.exceptions import ModelUnavailableError, RunCancelledError
from quarry.llm.errors import LLMClientError
from quarry.materializer import materialize
from quarry.models.content import (
    Conversation,
    Message,
    TextSegment,
    ToolResultSegment,
)
from quarry.orchestrator.config import OrchestratorConfig, OrchestratorState
from quarry.orchestrator.models import RoundRecord, RunMetadata, RunResult
from quarry.orchestrator.turn import ModelTurn
from quarry.prompts import NO_MODEL_MESSAGE, RESEARCH_SYSTEM_PROMPT
from quarry.toolkit.executor import ToolInvoker

if TYPE_CHECKING:
    import os
    from collections.abc import Iterable

    from quarry.llm.protocols import ChatModel
    from quarry.models.content import Segment, ToolCallSegment
    from quarry.toolkit.registry import ToolRegistry

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the research agent loop against a chat model and a tool registry.

    Each ``run()`` owns its own conversation and metadata; the registry is
    shared read-only, so one Orchestrator may serve concurrent runs on
    separate threads.

    Usage::

        from quarry.orchestrator import Orchestrator, OrchestratorConfig

        orch = Orchestrator(model, registry, OrchestratorConfig(on_text=print))
        result = orch.run("find papers on prompt injection")
        print(result.final_text, result.metadata.side_effect_directories)
    """

    def __init__(
        self,
        model: ChatModel | None,
        registry: ToolRegistry,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._model = model
        self._registry = registry
        self._config = config or OrchestratorConfig()
        self._invoker = ToolInvoker(registry)
        self._state = OrchestratorState.IDLE
        self._lock = threading.Lock()
        self._active: set[CancellationToken] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        """State of the most recently advanced run."""
        return self._state

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def cancel(self) -> None:
        """Cancel every run currently executing on this orchestrator.

        Runs stop at their next checkpoint and return partial results.
        """
        with self._lock:
            tokens = list(self._active)
        for token in tokens:
            token.cancel()

    def run(
        self,
        prompt: str,
        attachments: Iterable[str | os.PathLike[str]] = (),
        *,
        system_prompt: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> RunResult:
        """Execute one research run.

        1. Build the history: system message, then the user prompt followed
           by the materialized attachments
        2. Loop up to ``max_rounds``: stream a model turn -> stop if it has
           no tool calls -> otherwise record it, run each call in order,
           append the results
        3. Return final text, metadata and terminal state

        Args:
            prompt: The user's request.
            attachments: File locators to inline (text) or embed (images).
            system_prompt: Per-run override of the configured system prompt.
            cancellation: Cooperative cancellation token for this run.

        Returns:
            RunResult.  Cancellation, tool failures and budget exhaustion
            are reported through the result, never raised.

        Raises:
            Exception: Anything other than an LLMClientError or a
                RunCancelledError raised by the model collaborator
                propagates unchanged.
        """
        token = cancellation or CancellationToken()
        with self._lock:
            self._active.add(token)
        try:
            return self._run(prompt, attachments, system_prompt, token)
        finally:
            with self._lock:
                self._active.discard(token)

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _run(
        self,
        prompt: str,
        attachments: Iterable[str | os.PathLike[str]],
        system_prompt: str | None,
        token: CancellationToken,
    ) -> RunResult:
        metadata = RunMetadata()
        if token.is_cancelled:
            self._state = OrchestratorState.CANCELLED
            return RunResult(state=OrchestratorState.CANCELLED)

        if self._model is None:
            logger.warning("No chat model available; ending run without tool calls")
            self._emit_text(NO_MODEL_MESSAGE)
            self._state = OrchestratorState.DONE
            return RunResult(
                final_text=NO_MODEL_MESSAGE,
                state=OrchestratorState.DONE,
                error=ModelUnavailableError(NO_MODEL_MESSAGE),
            )

        sys_text = system_prompt or self._config.system_prompt or RESEARCH_SYSTEM_PROMPT
        conversation = Conversation([
            Message.system(sys_text),
            Message.user(prompt, materialize(attachments)),
        ])
        descriptors = self._registry.descriptors()

        rounds_log: list[RoundRecord] = []
        model_calls = 0
        final_text = ""
        state = OrchestratorState.AWAITING_MODEL
        error: Exception | None = None

        try:
            for round_num in range(1, self._config.max_rounds + 1):
                if token.is_cancelled:
                    state = OrchestratorState.CANCELLED
                    break

                self._state = OrchestratorState.AWAITING_MODEL
                model_calls += 1
                turn = ModelTurn(on_text=self._config.on_text)
                try:
                    turn.consume(
                        self._model.stream(
                            conversation.messages, descriptors, cancellation=token
                        ),
                        token,
                    )
                except LLMClientError as exc:
                    logger.warning("Model exchange failed: %s", exc)
                    message = f"Model error: {exc}"
                    self._emit_text(message)
                    final_text = message
                    error = exc
                    state = OrchestratorState.FAILED
                    break
                except RunCancelledError:
                    logger.debug("Model stream cancelled after %d chunk(s)", len(turn.segments))
                    final_text = turn.text or final_text
                    state = OrchestratorState.CANCELLED
                    break

                if turn.interrupted:
                    final_text = turn.text or final_text
                    state = OrchestratorState.CANCELLED
                    break

                calls = turn.tool_calls
                final_text = turn.text
                if not calls:
                    state = OrchestratorState.DONE
                    break

                conversation.append(Message.assistant(turn.text, calls))
                self._state = OrchestratorState.EXECUTING_TOOLS
                record, directories = self._execute_round(round_num, turn.text, calls, token)
                conversation.append(Message.tool_results(
                    ToolResultSegment(call.id, seg)
                    for call, seg in zip(record.tool_calls, record.results)
                ))
                metadata = metadata.with_directories(directories)
                rounds_log.append(record)
                self._notify_round(record)

                if token.is_cancelled:
                    state = OrchestratorState.CANCELLED
                    break
            else:
                logger.info(
                    "Round budget of %d exhausted with tool calls pending",
                    self._config.max_rounds,
                )
                state = OrchestratorState.EXHAUSTED
        except BaseException:
            self._state = OrchestratorState.FAILED
            raise

        self._state = state
        return RunResult(
            final_text=final_text,
            metadata=metadata,
            state=state,
            rounds=len(rounds_log),
            model_calls=model_calls,
            rounds_log=tuple(rounds_log),
            error=error,
        )

    def _execute_round(
        self,
        round_num: int,
        assistant_text: str,
        calls: list[ToolCallSegment],
        token: CancellationToken,
    ) -> tuple[RoundRecord, set[str]]:
        """Run every call of one round in order.

        Calls reached after cancellation are answered with a note instead
        of being run, so every call still gets exactly one result.
        """
        results: list[tuple[Segment, ...]] = []
        directories: set[str] = set()
        for call in calls:
            if token.is_cancelled:
                results.append((TextSegment(f"Cancelled: {call.name} was not run"),))
                continue
            segments = self._invoke(call, token)
            results.append(tuple(segments))
            tool = self._registry.get(call.name)
            if tool is not None:
                text = "".join(s.text for s in segments if isinstance(s, TextSegment))
                directories |= tool.side_effect_dirs(text)

        record = RoundRecord(
            round=round_num,
            assistant_text=assistant_text,
            tool_calls=tuple(calls),
            results=tuple(results),
        )
        return record, directories

    def _invoke(self, call: ToolCallSegment, token: CancellationToken) -> list[Segment]:
        self._emit_progress(f"Calling tool: {call.name}…")
        try:
            segments = self._invoker.invoke(call.name, call.input, token)
        except Exception as exc:
            logger.debug("Invoker raised for %s", call.name, exc_info=True)
            segments = [TextSegment(f"Error: {exc}")]
        if self._config.on_tool_result is not None:
            try:
                self._config.on_tool_result(call, segments)
            except Exception:
                logger.debug("on_tool_result callback error", exc_info=True)
        return segments

    def _emit_text(self, text: str) -> None:
        if self._config.on_text is None:
            return
        try:
            self._config.on_text(text)
        except Exception:
            logger.debug("on_text callback error", exc_info=True)

    def _emit_progress(self, text: str) -> None:
        if self._config.on_progress is None:
            return
        try:
            self._config.on_progress(text)
        except Exception:
            logger.debug("on_progress callback error", exc_info=True)

    def _notify_round(self, record: RoundRecord) -> None:
        if self._config.on_round is None:
            return
        try:
            self._config.on_round(record)
        except Exception:
            logger.debug("on_round callback error", exc_info=True)
