"""Agent configuration schemas.

An ``AgentConfig`` is the declarative description of an agent: its system
prompt, the tools it is allowed to use, its model settings and the flows it can
run. The flow executor reads ``prompt`` (system message) and
``settings["model"]`` from it when interpreting ``llmCall`` nodes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import BaseSchema


class AgentType(str, Enum):
    smart_assistant = "smart-assistant"
    survey_agent = "survey-agent"
    commerce_agent = "commerce-agent"
    flow = "flow"


class ToolConfiguration(BaseSchema):
    """Reference to a registered tool plus per-agent options."""

    tool: str
    description: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class AgentEventConfiguration(BaseSchema):
    """Event hook configuration (webhook URL or named handler)."""

    webhook: Optional[str] = None
    handler: Optional[str] = None


class AgentConfig(BaseSchema):
    id: Optional[str] = None
    name: str
    agent_type: AgentType = Field(default=AgentType.smart_assistant, alias="agentType")
    locale: Optional[str] = None
    prompt: Optional[str] = None
    expected_result: Optional[str] = Field(default=None, alias="expectedResult")
    tools: Dict[str, ToolConfiguration] = Field(default_factory=dict)
    # AgentFlow documents, kept loosely typed; validated when executed
    flows: List[Any] = Field(default_factory=list)
    events: Dict[str, AgentEventConfiguration] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def model(self) -> Optional[str]:
        """Model configured for this agent, if any."""
        value = self.settings.get("model")
        return str(value) if value else None
