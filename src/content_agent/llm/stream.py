"""Streaming chat-completion chunks and partial tool-call accumulation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class FunctionDelta:
    name: str | None = None
    arguments: str | None = None


@dataclass(slots=True)
class ToolCallDelta:
    index: int = 0
    id: str | None = None
    function: FunctionDelta = field(default_factory=FunctionDelta)


@dataclass(slots=True)
class ChoiceDelta:
    content: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


@dataclass(slots=True)
class StreamChoice:
    delta: ChoiceDelta


@dataclass(slots=True)
class StreamChunk:
    """One streamed completion chunk: `{id, model, choices: [{delta}]}`."""

    id: str = ""
    model: str = ""
    choices: list[StreamChoice] = field(default_factory=list)


@dataclass(slots=True)
class AccumulatedToolCall:
    id: str
    name: str
    arguments: str = ""

    def as_message_part(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class StreamAccumulator:
    """Merges streamed deltas into a content buffer and indexed tool calls.

    The first delta seen for a stream index seeds the call with its `id` and
    `name`; later deltas for the same index only extend `arguments`.
    """

    def __init__(self) -> None:
        self.content = ""
        self.response_id = ""
        self.model = ""
        self._calls: dict[int, AccumulatedToolCall] = {}

    @property
    def tool_calls(self) -> list[AccumulatedToolCall]:
        return [self._calls[index] for index in sorted(self._calls)]

    def add_content(self, text: str) -> None:
        self.content += text

    def add_tool_call_delta(self, delta: ToolCallDelta) -> AccumulatedToolCall | None:
        """Apply one delta; returns the call when this delta opened it."""
        call = self._calls.get(delta.index)
        if call is None:
            call = AccumulatedToolCall(
                id=delta.id or f"call_{delta.index}",
                name=delta.function.name or "",
                arguments=delta.function.arguments or "",
            )
            self._calls[delta.index] = call
            return call
        if delta.function.arguments:
            call.arguments += delta.function.arguments
        return None

    def observe(self, chunk: StreamChunk) -> None:
        self.response_id = chunk.id or self.response_id
        self.model = chunk.model or self.model

    def is_empty(self) -> bool:
        return not self.content and not self._calls

    def assistant_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self._calls:
            message["tool_calls"] = [call.as_message_part() for call in self.tool_calls]
        return message
