"""Content Agent package."""

from .config import AgentConfig, ProviderConfig, ReferenceConfig

__all__ = ["AgentConfig", "ProviderConfig", "ReferenceConfig"]
