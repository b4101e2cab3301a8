"""Conversion between the editor form and the generic form of a flow tree.

``to_generic`` and ``from_generic`` are total and recursive. Round trips are
lossless except for:

- ``condition``: becomes a two-branch ``oneOfAgent`` with conditions
  ``[cond, "!(cond)"]`` and comes back as a ``oneOf`` step;
- ``loop``: becomes a ``forEachAgent`` over ``"iteration"`` (keeping
  ``maxIterations`` and ``condition``) and comes back as a ``forEach`` step;
- ``tool`` / ``uiComponent``: their payload is a JSON string inside ``input``;
  a payload that does not parse degrades to a plain ``step`` instead of raising.

Every generic node produced gets a fresh id.
"""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Union
from uuid import uuid4

from agentflow_ai.core.logging_config import get_logger

from .models import (
    AgentStep,
    BestOfAllStep,
    ConditionStep,
    EditorStepBase,
    EvaluatorStep,
    ForEachStep,
    GenericAgent,
    GenericFlowNode,
    LoopStep,
    OneOfBranch,
    OneOfStep,
    ParallelStep,
    SequenceStep,
    ToolStep,
    UIComponentStep,
    parse_editor_step,
)

logger = get_logger(__name__)


def _new_id() -> str:
    return uuid4().hex


def to_generic(step: Union[EditorStepBase, Mapping[str, Any]]) -> GenericFlowNode:
    """Convert an editor step tree into the generic form."""
    if isinstance(step, Mapping):
        step = parse_editor_step(step)

    if isinstance(step, AgentStep):
        return GenericFlowNode(id=_new_id(), agent=step.agent, input=step.input)
    if isinstance(step, SequenceStep):
        return GenericFlowNode(id=_new_id(), agent=GenericAgent.sequence.value, input=[to_generic(s) for s in step.steps])
    if isinstance(step, ParallelStep):
        return GenericFlowNode(id=_new_id(), agent=GenericAgent.parallel.value, input=[to_generic(s) for s in step.steps])
    if isinstance(step, OneOfStep):
        return GenericFlowNode(
            id=_new_id(),
            agent=GenericAgent.one_of.value,
            input=[to_generic(branch.flow) for branch in step.branches],
            conditions=[branch.when for branch in step.branches],
        )
    if isinstance(step, ForEachStep):
        return GenericFlowNode(
            id=_new_id(), agent=GenericAgent.for_each.value, item=step.item, input=to_generic(step.input_flow)
        )
    if isinstance(step, EvaluatorStep):
        return GenericFlowNode(
            id=_new_id(),
            agent=GenericAgent.optimize.value,
            criteria=step.criteria,
            max_iterations=step.max_iterations,
            input=to_generic(step.sub_flow),
        )
    if isinstance(step, BestOfAllStep):
        return GenericFlowNode(
            id=_new_id(),
            agent=GenericAgent.best_of_all.value,
            criteria=step.criteria,
            input=[to_generic(s) for s in step.steps],
        )
    if isinstance(step, ToolStep):
        payload = json.dumps({"toolName": step.tool_name, "toolOptions": step.tool_options})
        return GenericFlowNode(id=_new_id(), agent=GenericAgent.tool.value, input=payload)
    if isinstance(step, UIComponentStep):
        payload = json.dumps({"componentName": step.component_name, "componentProps": step.component_props})
        return GenericFlowNode(id=_new_id(), agent=GenericAgent.ui_component.value, input=payload)
    if isinstance(step, ConditionStep):
        return GenericFlowNode(
            id=_new_id(),
            agent=GenericAgent.one_of.value,
            input=[to_generic(step.true_flow), to_generic(step.false_flow)],
            conditions=[step.condition, f"!({step.condition})"],
        )
    if isinstance(step, LoopStep):
        return GenericFlowNode(
            id=_new_id(),
            agent=GenericAgent.for_each.value,
            item="iteration",
            input=to_generic(step.loop_flow),
            loop_max_iterations=step.max_iterations,
            condition=step.condition,
        )

    logger.warning(f"Unknown editor step {type(step).__name__}; converting to {GenericAgent.unknown.value}")
    return GenericFlowNode(id=_new_id(), agent=GenericAgent.unknown.value, input="")


def _as_node(value: Any) -> GenericFlowNode:
    if isinstance(value, GenericFlowNode):
        return value
    if isinstance(value, Mapping):
        return GenericFlowNode.model_validate(dict(value))
    return GenericFlowNode(input=value)


def _child_list(node: GenericFlowNode) -> List[GenericFlowNode]:
    if not isinstance(node.input, list):
        return []
    return [_as_node(child) for child in node.input]


def _parse_payload(node: GenericFlowNode) -> Any:
    if not isinstance(node.input, str):
        return None
    try:
        payload = json.loads(node.input)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, GenericFlowNode):
        return json.dumps(value.to_wire(), default=str)
    if isinstance(value, list):
        return json.dumps([v.to_wire() if isinstance(v, GenericFlowNode) else v for v in value], default=str)
    return json.dumps(value, default=str)


def from_generic(node: Union[GenericFlowNode, Mapping[str, Any]]) -> EditorStepBase:
    """Convert a generic tree back into the editor form."""
    node = _as_node(node)
    agent = node.agent

    if agent == GenericAgent.sequence:
        return SequenceStep(steps=[from_generic(child) for child in _child_list(node)])
    if agent == GenericAgent.parallel:
        return ParallelStep(steps=[from_generic(child) for child in _child_list(node)])
    if agent == GenericAgent.one_of:
        conditions = node.conditions or []
        return OneOfStep(
            branches=[
                OneOfBranch(when=conditions[i] if i < len(conditions) else "", flow=from_generic(child))
                for i, child in enumerate(_child_list(node))
            ]
        )
    if agent == GenericAgent.for_each:
        return ForEachStep(item=node.item or "", input_flow=from_generic(_as_node(node.input)))
    if agent == GenericAgent.optimize:
        return EvaluatorStep(
            criteria=node.criteria or "",
            max_iterations=node.max_iterations,
            sub_flow=from_generic(_as_node(node.input)),
        )
    if agent == GenericAgent.best_of_all:
        return BestOfAllStep(criteria=node.criteria or "", steps=[from_generic(child) for child in _child_list(node)])
    if agent == GenericAgent.tool:
        payload = _parse_payload(node)
        if payload is None:
            return AgentStep(agent=agent, input=_stringify(node.input))
        return ToolStep(tool_name=payload.get("toolName") or "", tool_options=payload.get("toolOptions") or {})
    if agent == GenericAgent.ui_component:
        payload = _parse_payload(node)
        if payload is None:
            return AgentStep(agent=agent, input=_stringify(node.input))
        return UIComponentStep(
            component_name=payload.get("componentName") or "",
            component_props=payload.get("componentProps") or {},
        )

    return AgentStep(agent=agent or "defaultAgent", input=_stringify(node.input))
