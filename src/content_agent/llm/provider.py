"""Streaming completion providers."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.messages.tool import invalid_tool_call, tool_call

from content_agent.config import ProviderConfig
from content_agent.llm.stream import ChoiceDelta, FunctionDelta, StreamChoice, StreamChunk, ToolCallDelta

LOGGER = logging.getLogger(__name__)


class CompletionProvider(Protocol):
    """Minimal streaming chat-completion contract used by the agent loop."""

    def stream(
        self,
        *,
        messages: Sequence[dict[str, Any]],
        tools: Sequence[dict[str, Any]],
        tool_choice: str = "auto",
    ) -> AsyncIterator[StreamChunk]:
        """Yield completion chunks for `messages` with `tools` on offer."""


class LangChainCompletionProvider:
    """Adapts any LangChain chat model to the chunk stream the loop consumes."""

    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    async def stream(
        self,
        *,
        messages: Sequence[dict[str, Any]],
        tools: Sequence[dict[str, Any]],
        tool_choice: str = "auto",
    ) -> AsyncIterator[StreamChunk]:
        runnable: Any = self.llm.bind_tools(list(tools), tool_choice=tool_choice) if tools else self.llm
        async for message_chunk in runnable.astream(to_langchain_messages(messages)):
            yield _to_stream_chunk(message_chunk)


def create_completion_provider(config: ProviderConfig | None = None) -> LangChainCompletionProvider | None:
    """Build an OpenAI-backed provider, or None when no API key is configured."""
    if not os.getenv("OPENAI_API_KEY"):
        return None

    from langchain_openai import ChatOpenAI

    config = config or ProviderConfig.from_env()
    llm = ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        streaming=True,
    )
    return LangChainCompletionProvider(llm)


def to_langchain_messages(messages: Sequence[dict[str, Any]]) -> list[BaseMessage]:
    """Convert OpenAI-style message dicts into LangChain message objects."""
    converted: list[BaseMessage] = []
    for message in messages:
        role = message.get("role")
        content = message.get("content") or ""
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role == "user":
            converted.append(HumanMessage(content=content))
        elif role == "tool":
            converted.append(ToolMessage(content=content, tool_call_id=message.get("tool_call_id", "")))
        elif role == "assistant":
            converted.append(_assistant_message(content, message.get("tool_calls") or []))
        else:
            raise ValueError(f"Unsupported message role: {role!r}")
    return converted


def _assistant_message(content: str, tool_calls: list[dict[str, Any]]) -> AIMessage:
    parsed = []
    invalid = []
    for call in tool_calls:
        function = call.get("function", {})
        raw_args = function.get("arguments") or ""
        try:
            args = json.loads(raw_args) if raw_args else {}
        except json.JSONDecodeError as exc:
            invalid.append(
                invalid_tool_call(name=function.get("name"), args=raw_args, id=call.get("id"), error=str(exc))
            )
            continue
        if not isinstance(args, dict):
            invalid.append(
                invalid_tool_call(name=function.get("name"), args=raw_args, id=call.get("id"), error="not an object")
            )
            continue
        parsed.append(tool_call(name=function.get("name", ""), args=args, id=call.get("id")))
    return AIMessage(content=content, tool_calls=parsed, invalid_tool_calls=invalid)


def _to_stream_chunk(message_chunk: Any) -> StreamChunk:
    content = message_chunk.content
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )

    deltas: list[ToolCallDelta] = []
    for position, chunk in enumerate(getattr(message_chunk, "tool_call_chunks", None) or []):
        index = chunk.get("index")
        deltas.append(
            ToolCallDelta(
                index=index if index is not None else position,
                id=chunk.get("id"),
                function=FunctionDelta(name=chunk.get("name"), arguments=chunk.get("args")),
            )
        )

    metadata = getattr(message_chunk, "response_metadata", None) or {}
    return StreamChunk(
        id=getattr(message_chunk, "id", None) or "",
        model=metadata.get("model_name", ""),
        choices=[StreamChoice(delta=ChoiceDelta(content=content or None, tool_calls=deltas or None))],
    )
