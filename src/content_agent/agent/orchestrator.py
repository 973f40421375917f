"""Multi-pass tool orchestration loop for one chat turn."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any

from content_agent.agent.guard import get_reference_scope_error
from content_agent.agent.prompts import CONTINUE_PROMPT, build_system_prompt
from content_agent.agent.registry import ChatToolInvocation, ToolRegistry
from content_agent.agent.tools import default_registry
from content_agent.config import AgentConfig
from content_agent.llm.provider import CompletionProvider
from content_agent.llm.stream import AccumulatedToolCall, StreamAccumulator
from content_agent.obs.tracing import Timer, TraceStore, estimate_token_count
from content_agent.types import ChatMode, ReferenceScope, ToolExecutionResult, ToolTrace

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Any]
ToolExecutor = Callable[[ChatToolInvocation, str, "ProgressCallback | None"], Awaitable[ToolExecutionResult]]

PROVIDER_ERROR_MESSAGE = "I encountered an error while processing your request. Please try again."
TIMEOUT_ERROR_MESSAGE = (
    "This operation is taking longer than expected. "
    "Please try again or contact support if the issue persists."
)
MAX_ITERATIONS_MESSAGE = (
    "I've completed several operations, but reached the maximum number of tool calls. "
    "Is there anything else you'd like me to do?"
)

# Timed-out executor calls keep running; hold a reference until they settle.
_ABANDONED_TASKS: set[asyncio.Task[ToolExecutionResult]] = set()
_OBSERVER_TASKS: set[asyncio.Task[Any]] = set()


@dataclass(slots=True)
class AgentCallbacks:
    """Optional observers; each may be a plain function or a coroutine function."""

    on_llm_chunk: Callable[[str], Any] | None = None
    on_tool_preparing: Callable[[str, str], Any] | None = None
    on_tool_start: Callable[[str, str], Any] | None = None
    on_tool_progress: Callable[[str, str], Any] | None = None
    on_tool_complete: Callable[[str, str, ToolExecutionResult], Any] | None = None
    on_final_message: Callable[[str], Any] | None = None
    on_retry: Callable[[ChatToolInvocation, int], Any] | None = None


@dataclass(slots=True)
class ToolHistoryEntry:
    tool_name: str
    invocation: ChatToolInvocation
    result: ToolExecutionResult
    timestamp: datetime


@dataclass(slots=True)
class MultiPassAgentResult:
    final_message: str | None
    tool_history: list[ToolHistoryEntry]
    conversation_history: list[dict[str, Any]]
    rounds: int
    trace_id: str | None = None


@dataclass(slots=True)
class _TurnState:
    """Everything one turn mutates. Allocated per `run` call and never shared."""

    history: list[dict[str, Any]]
    tool_history: list[ToolHistoryEntry] = field(default_factory=list)
    retry_counts: dict[str, int] = field(default_factory=dict)
    tool_traces: list[ToolTrace] = field(default_factory=list)
    exhausted_tools: list[str] = field(default_factory=list)
    rounds: int = 0


class ChatAgent:
    """Drives bounded completion rounds and dispatches the model's tool calls.

    Each round streams one completion, executes the tool calls it produced in
    emission order, and feeds their outcomes back to the model. The turn ends
    when the model answers without tools, when a call exhausts its retry
    budget, when the provider fails, or after `max_tool_iterations` rounds.
    `run` never raises for provider or tool failures; they all end up as
    messages.
    """

    def __init__(
        self,
        *,
        provider: CompletionProvider,
        registry: ToolRegistry | None = None,
        config: AgentConfig | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.provider = provider
        self.registry = registry or default_registry()
        self.config = config or AgentConfig()
        self.trace_store = trace_store

    async def run(
        self,
        *,
        mode: ChatMode,
        user_message: str,
        execute_tool: ToolExecutor,
        conversation_history: Sequence[dict[str, Any]] = (),
        context_blocks: Sequence[str] = (),
        scope: ReferenceScope | None = None,
        callbacks: AgentCallbacks | None = None,
    ) -> MultiPassAgentResult:
        """Run one user turn.

        `scope` must be built from the mentions of `user_message` alone; when
        omitted, no mutating tool call can pass the reference check.
        """

        callbacks = callbacks or AgentCallbacks()
        state = _TurnState(history=[*conversation_history, {"role": "user", "content": user_message}])

        with Timer() as timer:
            final_message = await self._run_rounds(
                state,
                mode=mode,
                execute_tool=execute_tool,
                context_blocks=context_blocks,
                scope=scope or ReferenceScope(),
                callbacks=callbacks,
            )

        if final_message:
            await _notify(callbacks.on_final_message, final_message)

        trace_id = None
        if self.trace_store is not None:
            record = self.trace_store.create_record(
                mode=mode,
                user_message=user_message,
                final_message=final_message,
                rounds=state.rounds,
                tool_traces=state.tool_traces,
                exhausted_tools=state.exhausted_tools,
                input_tokens=estimate_token_count(user_message),
                output_tokens=estimate_token_count(final_message or ""),
                latency_ms=timer.elapsed_ms,
            )
            trace_id = record.trace_id

        return MultiPassAgentResult(
            final_message=final_message,
            tool_history=state.tool_history,
            conversation_history=state.history,
            rounds=state.rounds,
            trace_id=trace_id,
        )

    async def _run_rounds(
        self,
        state: _TurnState,
        *,
        mode: ChatMode,
        execute_tool: ToolExecutor,
        context_blocks: Sequence[str],
        scope: ReferenceScope,
        callbacks: AgentCallbacks,
    ) -> str | None:
        system_prompt = build_system_prompt(mode, context_blocks)
        tools = self.registry.tools_for_mode(mode)

        for round_number in range(1, self.config.max_tool_iterations + 1):
            state.rounds = round_number
            messages = [{"role": "system", "content": system_prompt}, *state.history]
            LOGGER.info(
                "Agent round %d (%s mode): %d messages, tools=%s",
                round_number,
                mode,
                len(messages),
                [tool["function"]["name"] for tool in tools],
            )

            accumulator = StreamAccumulator()
            try:
                await self._stream_round(messages, tools, accumulator, callbacks)
            except Exception as exc:
                LOGGER.error(
                    "Completion stream failed in round %d (%d chars, %d tool calls accumulated)",
                    round_number,
                    len(accumulator.content),
                    len(accumulator.tool_calls),
                    exc_info=True,
                )
                if not accumulator.is_empty():
                    state.history.append(accumulator.assistant_message())
                return self._provider_error_message(exc)

            state.history.append(accumulator.assistant_message())
            if not accumulator.tool_calls:
                return accumulator.content or None

            exhausted: list[tuple[AccumulatedToolCall, ChatToolInvocation]] = []
            for call in accumulator.tool_calls:
                invocation = self.registry.parse_tool_call(call.name, call.arguments)
                if invocation is None:
                    LOGGER.warning("Invalid tool call skipped: %s (%s)", call.id, call.name)
                    state.history.append(
                        _tool_message(call.id, f"Tool call {call.name} was skipped: its arguments were invalid.")
                    )
                    continue

                retry_count = state.retry_counts.get(invocation.fingerprint, 0)
                if retry_count >= self.config.max_tool_retries:
                    exhausted.append((call, invocation))
                    continue
                if retry_count > 0:
                    await _notify(callbacks.on_retry, invocation, retry_count)

                await self._execute_call(
                    state,
                    call,
                    invocation,
                    retry_count,
                    mode=mode,
                    scope=scope,
                    execute_tool=execute_tool,
                    callbacks=callbacks,
                )

            if exhausted:
                return await self._record_exhausted(state, exhausted, callbacks)

            state.history.append({"role": "user", "content": CONTINUE_PROMPT})

        LOGGER.warning("Agent stopped after %d rounds without a final answer", self.config.max_tool_iterations)
        return MAX_ITERATIONS_MESSAGE

    async def _stream_round(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        accumulator: StreamAccumulator,
        callbacks: AgentCallbacks,
    ) -> None:
        async for chunk in self.provider.stream(messages=messages, tools=tools, tool_choice="auto"):
            accumulator.observe(chunk)
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                accumulator.add_content(delta.content)
                await _notify(callbacks.on_llm_chunk, delta.content)
            for tool_delta in delta.tool_calls or []:
                opened = accumulator.add_tool_call_delta(tool_delta)
                if opened is not None:
                    await _notify(callbacks.on_tool_preparing, opened.id, opened.name)

    async def _execute_call(
        self,
        state: _TurnState,
        call: AccumulatedToolCall,
        invocation: ChatToolInvocation,
        retry_count: int,
        *,
        mode: ChatMode,
        scope: ReferenceScope,
        execute_tool: ToolExecutor,
        callbacks: AgentCallbacks,
    ) -> None:
        await _notify(callbacks.on_tool_start, call.id, invocation.name)
        timestamp = datetime.now(timezone.utc)

        with Timer() as timer:
            rejection = get_reference_scope_error(invocation, mode=mode, scope=scope, registry=self.registry)
            if rejection is not None:
                LOGGER.warning("Rejected %s before execution: %s", invocation.name, rejection)
                result = ToolExecutionResult(success=False, error=rejection)
            else:
                result = await self._execute_with_timeout(invocation, call.id, execute_tool, callbacks)

        await _notify(callbacks.on_tool_complete, call.id, invocation.name, result)
        state.tool_history.append(
            ToolHistoryEntry(tool_name=invocation.name, invocation=invocation, result=result, timestamp=timestamp)
        )
        state.tool_traces.append(
            ToolTrace(
                name=invocation.name,
                input_payload=invocation.payload(),
                success=result.success,
                latency_ms=timer.elapsed_ms,
                error=result.error,
                attempt=retry_count + 1,
            )
        )

        if result.success:
            state.retry_counts.pop(invocation.fingerprint, None)
            summary = f"Tool {invocation.name} executed successfully."
            if result.result:
                summary += f" Result: {json.dumps(result.result, default=str)}"
        else:
            state.retry_counts[invocation.fingerprint] = retry_count + 1
            attempt = ""
            if retry_count > 0:
                attempt = f" (attempt {retry_count + 1}/{self.config.max_tool_retries + 1})"
            summary = f"Tool {invocation.name} failed{attempt}: {result.error or 'Unknown error'}"

        state.history.append(_tool_message(call.id, summary))

    async def _execute_with_timeout(
        self,
        invocation: ChatToolInvocation,
        call_id: str,
        execute_tool: ToolExecutor,
        callbacks: AgentCallbacks,
    ) -> ToolExecutionResult:
        timeout = self.config.timeout_for(invocation.name)
        on_progress = None
        if callbacks.on_tool_progress is not None:
            on_progress = partial(_forward_progress, callbacks.on_tool_progress, call_id)

        task = asyncio.ensure_future(execute_tool(invocation, call_id, on_progress))
        done, _ = await asyncio.wait({task}, timeout=timeout)

        if not done:
            # Stop waiting but let the executor finish on its own.
            LOGGER.error("Tool %s timed out after %.0fs", invocation.name, timeout)
            _ABANDONED_TASKS.add(task)
            task.add_done_callback(_release_abandoned_task)
            return ToolExecutionResult(success=False, error=TIMEOUT_ERROR_MESSAGE)

        try:
            result = task.result()
        except Exception as exc:
            LOGGER.error("Tool execution failed for %s", invocation.name, exc_info=True)
            return ToolExecutionResult(success=False, error=str(exc) or "Tool execution failed")

        if not isinstance(result, ToolExecutionResult):
            LOGGER.error("Executor for %s returned %r instead of a ToolExecutionResult", invocation.name, result)
            return ToolExecutionResult(success=False, error="Tool execution failed")
        return result

    async def _record_exhausted(
        self,
        state: _TurnState,
        exhausted: list[tuple[AccumulatedToolCall, ChatToolInvocation]],
        callbacks: AgentCallbacks,
    ) -> str:
        attempts = self.config.max_tool_retries + 1
        for call, invocation in exhausted:
            LOGGER.warning("Tool %s exhausted its retries", invocation.name)
            result = ToolExecutionResult(success=False, error=_kept_failing_message([invocation.name]))
            state.tool_history.append(
                ToolHistoryEntry(
                    tool_name=invocation.name,
                    invocation=invocation,
                    result=result,
                    timestamp=datetime.now(timezone.utc),
                )
            )
            await _notify(callbacks.on_tool_start, call.id, invocation.name)
            await _notify(callbacks.on_tool_complete, call.id, invocation.name, result)
            state.history.append(
                _tool_message(call.id, f"Tool {invocation.name} failed after {attempts} attempts: {result.error}")
            )

        names = list(dict.fromkeys(invocation.name for _, invocation in exhausted))
        state.exhausted_tools.extend(names)
        return _kept_failing_message(names)

    def _provider_error_message(self, exc: Exception) -> str:
        if self.config.expose_error_details and str(exc):
            return f"I encountered an error while processing your request: {exc}"
        return PROVIDER_ERROR_MESSAGE


def _kept_failing_message(names: list[str]) -> str:
    advice = "Please try a different approach or check if there's an issue with the input."
    if len(names) == 1:
        return f"I tried running {names[0]} multiple times but it kept failing. {advice}"
    return f"I tried running the following tools multiple times but they kept failing: {', '.join(names)}. {advice}"


def _tool_message(call_id: str, content: str) -> dict[str, Any]:
    return {"role": "tool", "tool_call_id": call_id, "content": content}


def _release_abandoned_task(task: asyncio.Task[ToolExecutionResult]) -> None:
    _ABANDONED_TASKS.discard(task)
    if not task.cancelled() and task.exception() is not None:
        LOGGER.warning("Timed-out tool call later failed", exc_info=task.exception())


async def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    try:
        outcome = callback(*args)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception:
        LOGGER.warning("Agent callback %r failed", callback, exc_info=True)


def _forward_progress(callback: Callable[[str, str], Any], call_id: str, message: str) -> None:
    """Progress hook handed to executors; async observers are scheduled, not awaited."""
    try:
        outcome = callback(call_id, message)
    except Exception:
        LOGGER.warning("Agent callback %r failed", callback, exc_info=True)
        return
    if inspect.isawaitable(outcome):
        task = asyncio.ensure_future(outcome)
        _OBSERVER_TASKS.add(task)
        task.add_done_callback(_release_observer_task)


def _release_observer_task(task: asyncio.Task[Any]) -> None:
    _OBSERVER_TASKS.discard(task)
    if not task.cancelled() and task.exception() is not None:
        LOGGER.warning("Agent callback failed", exc_info=task.exception())
