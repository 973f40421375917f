"""Tool registry built on Pydantic v2 models."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from content_agent.types import ChatMode

LOGGER = logging.getLogger(__name__)

ToolKind = Literal["read", "write", "ingest"]
_MUTATING_KINDS: frozenset[str] = frozenset({"write", "ingest"})


class ToolSpec(BaseModel):
    """Declarative tool specification: model-facing definition plus argument schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ToolKind
    description: str
    args_schema: type[BaseModel]
    tags: list[str] = Field(default_factory=list)

    def definition(self) -> dict[str, Any]:
        """OpenAI-style function definition advertised to the model."""
        parameters = self.args_schema.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        for prop in parameters.get("properties", {}).values():
            prop.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def validate_arguments(self, payload: dict[str, Any]) -> BaseModel:
        return self.args_schema.model_validate(payload)


@dataclass(frozen=True, slots=True)
class ChatToolInvocation:
    """A model-issued tool call whose arguments passed schema validation."""

    name: str
    arguments: BaseModel

    def payload(self) -> dict[str, Any]:
        return self.arguments.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def fingerprint(self) -> str:
        """Identity used for retry counting: name plus canonical arguments."""
        canonical = json.dumps(self.payload(), sort_keys=True, separators=(",", ":"))
        return f"{self.name}:{canonical}"


class ToolRegistry:
    """Stores tool specs and filters them by kind and chat mode."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def get(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise KeyError(f"Unknown tool: {name}")
        return spec

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def get_tool_kind(self, name: str) -> ToolKind:
        # Unknown names are treated as mutating so they never slip through chat mode.
        spec = self._tools.get(name)
        return spec.kind if spec is not None else "write"

    def get_tool_definitions(self) -> list[dict[str, Any]]:
        return [spec.definition() for spec in self._tools.values()]

    def get_tools_by_kind(self, kind: ToolKind) -> list[dict[str, Any]]:
        return [spec.definition() for spec in self._tools.values() if spec.kind == kind]

    def tools_for_mode(self, mode: ChatMode) -> list[dict[str, Any]]:
        """Tools exposed to the model: read tools in chat mode, everything in agent mode."""
        if mode == "chat":
            return self.get_tools_by_kind("read")
        return self.get_tool_definitions()

    def is_tool_allowed_in_mode(self, name: str, mode: ChatMode) -> bool:
        return not (mode == "chat" and self.get_tool_kind(name) in _MUTATING_KINDS)

    def parse_tool_call(self, name: str, raw_arguments: str | None) -> ChatToolInvocation | None:
        """Parse a streamed tool call; returns None for unknown tools or bad arguments."""
        spec = self._tools.get(name)
        if spec is None:
            LOGGER.warning("Model called unknown tool %r", name)
            return None

        try:
            payload = json.loads(raw_arguments) if raw_arguments else {}
        except json.JSONDecodeError:
            LOGGER.warning("Failed to parse arguments for tool %s", name, exc_info=True)
            return None
        if not isinstance(payload, dict):
            LOGGER.warning("Arguments for tool %s are not a JSON object", name)
            return None

        payload.pop("type", None)
        try:
            arguments = spec.validate_arguments(payload)
        except ValidationError as exc:
            LOGGER.warning("Invalid arguments for tool %s: %s", name, exc)
            return None
        return ChatToolInvocation(name=spec.name, arguments=arguments)


def get_mode_enforcement_error(name: str) -> str:
    return (
        f'Tool "{name}" is not available in chat mode (it can modify content or ingest new data). '
        "Switch to agent mode."
    )
