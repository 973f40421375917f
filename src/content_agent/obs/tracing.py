"""Per-turn trace records for the agent loop."""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from content_agent.types import ChatMode, ToolTrace

_WORD_OR_SYMBOL = re.compile(r"\w+|[^\w\s]")


@dataclass(slots=True)
class TurnTrace:
    """What one chat turn did: rounds, every tool attempt, and how it ended."""

    trace_id: str
    timestamp_utc: str
    mode: ChatMode
    user_message: str
    final_message: str | None
    rounds: int
    tool_traces: list[ToolTrace]
    exhausted_tools: list[str] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0.0

    @property
    def failed_tool_calls(self) -> int:
        return sum(1 for trace in self.tool_traces if not trace.success)

    @property
    def retried_tool_calls(self) -> int:
        return sum(1 for trace in self.tool_traces if trace.attempt > 1)


class TraceStore:
    """Keeps completed turns in memory, keyed by trace ID."""

    def __init__(self) -> None:
        self._records: dict[str, TurnTrace] = {}

    def create_record(
        self,
        *,
        mode: ChatMode,
        user_message: str,
        final_message: str | None,
        rounds: int,
        tool_traces: list[ToolTrace],
        exhausted_tools: list[str],
        input_tokens: int,
        output_tokens: int,
        latency_ms: float,
    ) -> TurnTrace:
        record = TurnTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            mode=mode,
            user_message=user_message,
            final_message=final_message,
            rounds=rounds,
            tool_traces=list(tool_traces),
            exhausted_tools=list(exhausted_tools),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
        )
        self._records[record.trace_id] = record
        return record

    def get(self, trace_id: str) -> TurnTrace:
        try:
            return self._records[trace_id]
        except KeyError:
            raise KeyError(f"Trace not found: {trace_id}") from None


class Timer:
    """Wall-clock timer for a `with` block, in milliseconds."""

    def __init__(self) -> None:
        self.elapsed_ms = 0.0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000.0


def estimate_token_count(text: str) -> int:
    """Rough token estimate: words and standalone punctuation marks."""
    return len(_WORD_OR_SYMBOL.findall(text))
