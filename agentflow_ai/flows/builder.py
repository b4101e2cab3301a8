"""Fluent builder for ``AgentFlow`` documents."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Union
from uuid import uuid4

from agentflow_ai.agent_core.errors import ValidationError

from .models import AgentFlow, FlowAgentDefinition, FlowInputVariable


class FlowBuilder:
    """Assemble an ``AgentFlow`` step by step.

    Example:
        >>> flow = (
        ...     FlowBuilder.create()
        ...     .set_code("greet")
        ...     .set_name("Greeting")
        ...     .add_input(FlowInputVariable(name="user", type="shortText", required=True))
        ...     .set_flow({"type": "return", "value": "$user"})
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._flow: Dict[str, Any] = {}

    def set_id(self, flow_id: str) -> "FlowBuilder":
        self._flow["id"] = flow_id
        return self

    def set_code(self, code: str) -> "FlowBuilder":
        self._flow["code"] = code
        return self

    def set_name(self, name: str) -> "FlowBuilder":
        self._flow["name"] = name
        return self

    def set_description(self, description: str) -> "FlowBuilder":
        self._flow["description"] = description
        return self

    def add_input(self, variable: Union[FlowInputVariable, Dict[str, Any]]) -> "FlowBuilder":
        self._flow.setdefault("inputs", []).append(variable)
        return self

    def set_inputs(self, inputs: List[Union[FlowInputVariable, Dict[str, Any]]]) -> "FlowBuilder":
        self._flow["inputs"] = list(inputs)
        return self

    def set_flow(self, flow: Any) -> "FlowBuilder":
        self._flow["flow"] = flow
        return self

    def add_agent(self, agent: Union[FlowAgentDefinition, Dict[str, Any]]) -> "FlowBuilder":
        self._flow.setdefault("agents", []).append(agent)
        return self

    def set_agents(self, agents: List[Union[FlowAgentDefinition, Dict[str, Any]]]) -> "FlowBuilder":
        self._flow["agents"] = list(agents)
        return self

    def build(self) -> AgentFlow:
        """Validate and return the flow; a missing id is filled with a fresh uuid.

        Raises:
            ValidationError: If code or name is missing, or input names are missing or duplicated.
        """
        self._validate()
        return AgentFlow(
            id=self._flow.get("id") or uuid4().hex,
            code=self._flow["code"],
            name=self._flow["name"],
            description=self._flow.get("description"),
            inputs=self._flow.get("inputs") or [],
            flow=self._flow.get("flow"),
            agents=self._flow.get("agents") or [],
        )

    def _validate(self) -> None:
        if not self._flow.get("code"):
            raise ValidationError("Flow code is required", errors={"code": ["required"]})
        if not self._flow.get("name"):
            raise ValidationError("Flow name is required", errors={"name": ["required"]})

        names: Set[str] = set()
        for variable in self._flow.get("inputs") or []:
            name: Optional[str] = variable.get("name") if isinstance(variable, dict) else variable.name
            if not name:
                raise ValidationError("Input variable name is required", errors={"inputs": ["name required"]})
            if name in names:
                raise ValidationError(f"Duplicate input variable name: {name}", errors={"inputs": [f"duplicate: {name}"]})
            names.add(name)

    @classmethod
    def from_flow(cls, flow: AgentFlow) -> "FlowBuilder":
        builder = cls()
        builder._flow = flow.model_dump(exclude_none=True)
        builder._flow["flow"] = flow.flow
        return builder

    @classmethod
    def create(cls) -> "FlowBuilder":
        return cls()
