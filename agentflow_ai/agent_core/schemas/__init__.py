"""Shared pydantic schemas for agentflow-ai."""

from .agent import AgentConfig, AgentEventConfiguration, AgentType, ToolConfiguration
from .base import BaseSchema

__all__ = [
    "AgentConfig",
    "AgentEventConfiguration",
    "AgentType",
    "BaseSchema",
    "ToolConfiguration",
]
