"""Execution-form flow nodes.

These models are the instruction set of ``FlowExecutor``. Each node is
discriminated by its ``type`` tag. Child slots (``steps``, ``step``,
``options[].step``) accept either node models or raw ``dict`` documents; raw
children are only coerced when the executor reaches them, so an unknown
``type`` deep in a tree fails on that node during execution instead of
failing validation of the whole document up front.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Type, Union

from pydantic import ConfigDict, Field, TypeAdapter

from agentflow_ai.agent_core.schemas.base import BaseSchema

from .errors import UnknownNodeTypeError


class FlowNodeBase(BaseSchema):
    # Flow documents carry editor annotations (labels, positions); unknown keys are dropped.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class SequenceNode(FlowNodeBase):
    type: Literal["sequence"] = "sequence"
    steps: List[Any] = Field(default_factory=list)


class ParallelNode(FlowNodeBase):
    type: Literal["parallel"] = "parallel"
    steps: List[Any] = Field(default_factory=list)


class OneOfOption(BaseSchema):
    """A branch of a ``oneOf`` node; an option without ``condition`` always matches."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    condition: Optional[str] = None
    step: Any


class OneOfNode(FlowNodeBase):
    type: Literal["oneOf"] = "oneOf"
    options: List[OneOfOption] = Field(default_factory=list)


class ForEachNode(FlowNodeBase):
    """Run ``step`` once per item; ``items`` is a literal list or a ``"$name"`` reference.

    Without a ``step`` the loop still binds its variables and emits one
    ``loop-iteration`` event per item, and returns an empty list.
    """

    type: Literal["forEach"] = "forEach"
    items: Any = None
    item_variable: str = Field(default="item", alias="itemVariable")
    index_variable: str = Field(default="index", alias="indexVariable")
    step: Any = None


class EvaluatorNode(FlowNodeBase):
    type: Literal["evaluator"] = "evaluator"
    expression: str


class LLMCallNode(FlowNodeBase):
    type: Literal["llmCall"] = "llmCall"
    prompt: str = ""
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens")
    output_variable: Optional[str] = Field(default=None, alias="outputVariable")


class ToolCallNode(FlowNodeBase):
    type: Literal["toolCall"] = "toolCall"
    tool: str = ""
    arguments: Dict[str, Any] = Field(default_factory=dict)
    output_variable: Optional[str] = Field(default=None, alias="outputVariable")


class SetVariableNode(FlowNodeBase):
    type: Literal["setVariable"] = "setVariable"
    variable: str = ""
    value: Any = None


class ReturnNode(FlowNodeBase):
    type: Literal["return"] = "return"
    value: Any = None


class EndNode(FlowNodeBase):
    type: Literal["end"] = "end"
    value: Any = None


class ThrowNode(FlowNodeBase):
    type: Literal["throw"] = "throw"
    message: str = "Flow error"


FlowNode = Annotated[
    Union[
        SequenceNode,
        ParallelNode,
        OneOfNode,
        ForEachNode,
        EvaluatorNode,
        LLMCallNode,
        ToolCallNode,
        SetVariableNode,
        ReturnNode,
        EndNode,
        ThrowNode,
    ],
    Field(discriminator="type"),
]

NODE_TYPES: Dict[str, Type[FlowNodeBase]] = {
    "sequence": SequenceNode,
    "parallel": ParallelNode,
    "oneOf": OneOfNode,
    "forEach": ForEachNode,
    "evaluator": EvaluatorNode,
    "llmCall": LLMCallNode,
    "toolCall": ToolCallNode,
    "setVariable": SetVariableNode,
    "return": ReturnNode,
    "end": EndNode,
    "throw": ThrowNode,
}

_node_adapter: TypeAdapter = TypeAdapter(FlowNode)


def parse_node(data: Mapping[str, Any]) -> FlowNodeBase:
    """Validate a raw node document eagerly (top level only; children stay raw)."""
    return _node_adapter.validate_python(dict(data))


def node_type_of(node: Any) -> Optional[str]:
    if isinstance(node, FlowNodeBase):
        return getattr(node, "type", None)
    if isinstance(node, Mapping):
        value = node.get("type")
        return str(value) if value is not None else None
    return None


def node_id_of(node: Any) -> Optional[str]:
    if isinstance(node, FlowNodeBase):
        return node.id
    if isinstance(node, Mapping):
        value = node.get("id")
        return str(value) if value else None
    return None


def coerce_node(node: Any) -> FlowNodeBase:
    """Return ``node`` as a node model.

    Raises:
        UnknownNodeTypeError: If ``node`` is not a model and its ``type`` tag is not a known node type.
    """
    if isinstance(node, FlowNodeBase):
        return node
    node_type = node_type_of(node)
    node_cls = NODE_TYPES.get(node_type or "")
    if node_cls is None:
        raise UnknownNodeTypeError(node_type)
    return node_cls.model_validate(dict(node))
