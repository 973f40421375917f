"""Configuration models for the content agent."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    """Configures the multi-pass tool loop: round/retry bounds and tool timeouts."""

    max_tool_iterations: int = Field(default=5, ge=1)
    max_tool_retries: int = Field(default=2, ge=0)
    default_tool_timeout_seconds: float = Field(default=120.0, gt=0.0)
    tool_timeouts: dict[str, float] = Field(
        default_factory=lambda: {"content_write": 300.0, "source_ingest": 180.0}
    )
    expose_error_details: bool = False

    def timeout_for(self, tool_name: str) -> float:
        return self.tool_timeouts.get(tool_name, self.default_tool_timeout_seconds)


class ReferenceConfig(BaseModel):
    """Configures @mention lookup breadth and loaded-context size."""

    candidate_limit: int = Field(default=25, ge=1)
    max_candidates: int = Field(default=5, ge=1)
    max_text_chars: int = Field(default=20000, ge=1)


class ProviderConfig(BaseModel):
    """Configures the streaming chat completion model."""

    model: str = "gpt-4o-mini"
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        max_tokens = os.getenv("OPENAI_MAX_TOKENS")
        return cls(
            model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            temperature=float(os.getenv("OPENAI_TEMPERATURE", "1.0")),
            max_tokens=int(max_tokens) if max_tokens else None,
        )
