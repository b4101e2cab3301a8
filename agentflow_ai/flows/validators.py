"""Structural validation of flow documents and agent definitions.

Both validators collect every problem instead of stopping at the first one and
accept either models or partially filled raw documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Set, Union

from .models import AgentFlow, FlowAgentDefinition


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def validate_flow(flow: Union[AgentFlow, Mapping[str, Any]]) -> ValidationResult:
    errors: List[str] = []

    if not _field(flow, "code"):
        errors.append("Flow code is required")
    if not _field(flow, "name"):
        errors.append("Flow name is required")

    input_names: Set[str] = set()
    for variable in _field(flow, "inputs") or []:
        name = _field(variable, "name")
        if not name:
            errors.append("Input variable name is required")
        else:
            if name in input_names:
                errors.append(f"Duplicate input variable name: {name}")
            input_names.add(name)
        if not _field(variable, "type"):
            errors.append(f"Input variable '{name}' must have a type")

    agent_names: Set[str] = set()
    for agent in _field(flow, "agents") or []:
        name = _field(agent, "name")
        if not name:
            errors.append("Agent name is required")
        else:
            if name in agent_names:
                errors.append(f"Duplicate agent name: {name}")
            agent_names.add(name)
        if not _field(agent, "model"):
            errors.append(f"Agent '{name}' must have a model specified")
        if not _field(agent, "system"):
            errors.append(f"Agent '{name}' must have a system prompt")

    return ValidationResult(valid=not errors, errors=errors)


def validate_agent_definition(agent: Union[FlowAgentDefinition, Mapping[str, Any]]) -> ValidationResult:
    errors: List[str] = []
    if not _field(agent, "name"):
        errors.append("Agent name is required")
    if not _field(agent, "model"):
        errors.append("Agent model is required")
    if not _field(agent, "system"):
        errors.append("Agent system prompt is required")
    return ValidationResult(valid=not errors, errors=errors)
