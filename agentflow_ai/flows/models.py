"""Flow document models.

Three representations of a flow tree exist:

- the **editor form** (``EditorStep`` and its variants), produced by the visual
  flow editor and stored in ``AgentFlow.flow``;
- the **generic form** (``GenericFlowNode``), where every node is an
  ``{id, agent, input, ...}`` record and structural nodes are marked by a
  sentinel ``agent`` name (see ``GenericAgent``);
- the **execution form** (``agentflow_ai.flows.nodes``) interpreted by
  ``FlowExecutor``.

Editor and generic forms are mapped onto each other by
``agentflow_ai.flows.converters``. Field names follow the camelCase wire names
of flow documents through aliases; dump with ``by_alias=True``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter, field_validator

from agentflow_ai.agent_core.schemas.base import BaseSchema

# =====================================================================
# Inputs and agents
# =====================================================================


class FlowInputType(str, Enum):
    short_text = "shortText"
    url = "url"
    long_text = "longText"
    number = "number"
    json = "json"
    file_base64 = "fileBase64"


class FlowInputVariable(BaseSchema):
    name: str
    type: Optional[FlowInputType] = None
    required: bool = False
    description: Optional[str] = None


class FlowToolSetting(BaseSchema):
    name: str
    options: Any = None


class FlowAgentDefinition(BaseSchema):
    name: str
    id: Optional[str] = None
    model: str = ""
    system: str = ""
    tools: List[FlowToolSetting] = Field(default_factory=list)


# =====================================================================
# Editor form
# =====================================================================


class EditorStepBase(BaseSchema):
    def to_wire(self) -> Dict[str, Any]:
        """Dump with the editor's camelCase field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class AgentStep(EditorStepBase):
    type: Literal["step"] = "step"
    agent: str
    input: str = ""


class SequenceStep(EditorStepBase):
    type: Literal["sequence"] = "sequence"
    steps: List[EditorStep] = Field(default_factory=list)


class ParallelStep(EditorStepBase):
    type: Literal["parallel"] = "parallel"
    steps: List[EditorStep] = Field(default_factory=list)


class OneOfBranch(BaseSchema):
    when: str = ""
    flow: EditorStep


class OneOfStep(EditorStepBase):
    type: Literal["oneOf"] = "oneOf"
    branches: List[OneOfBranch] = Field(default_factory=list)


class ForEachStep(EditorStepBase):
    type: Literal["forEach"] = "forEach"
    item: str = ""
    input_flow: EditorStep = Field(alias="inputFlow")


class EvaluatorStep(EditorStepBase):
    type: Literal["evaluator"] = "evaluator"
    criteria: str = ""
    max_iterations: Optional[int] = None
    sub_flow: EditorStep = Field(alias="subFlow")


class BestOfAllStep(EditorStepBase):
    type: Literal["bestOfAll"] = "bestOfAll"
    criteria: str = ""
    steps: List[EditorStep] = Field(default_factory=list)


class ToolStep(EditorStepBase):
    type: Literal["tool"] = "tool"
    tool_name: str = Field(default="", alias="toolName")
    tool_options: Dict[str, Any] = Field(default_factory=dict, alias="toolOptions")


class UIComponentStep(EditorStepBase):
    type: Literal["uiComponent"] = "uiComponent"
    component_name: str = Field(default="", alias="componentName")
    component_props: Dict[str, Any] = Field(default_factory=dict, alias="componentProps")


class ConditionStep(EditorStepBase):
    type: Literal["condition"] = "condition"
    condition: str
    true_flow: EditorStep = Field(alias="trueFlow")
    false_flow: EditorStep = Field(alias="falseFlow")


class LoopStep(EditorStepBase):
    type: Literal["loop"] = "loop"
    condition: str
    max_iterations: int = Field(alias="maxIterations")
    loop_flow: EditorStep = Field(alias="loopFlow")


EditorStep = Annotated[
    Union[
        AgentStep,
        SequenceStep,
        ParallelStep,
        OneOfStep,
        ForEachStep,
        EvaluatorStep,
        BestOfAllStep,
        ToolStep,
        UIComponentStep,
        ConditionStep,
        LoopStep,
    ],
    Field(discriminator="type"),
]

for _step_model in (SequenceStep, ParallelStep, OneOfBranch, ForEachStep, EvaluatorStep, BestOfAllStep, ConditionStep, LoopStep):
    _step_model.model_rebuild()

_editor_step_adapter: TypeAdapter = TypeAdapter(EditorStep)


def parse_editor_step(data: Mapping[str, Any]) -> EditorStepBase:
    """Validate a raw editor step tree."""
    return _editor_step_adapter.validate_python(dict(data))


# =====================================================================
# Generic form
# =====================================================================


class GenericAgent(str, Enum):
    sequence = "sequenceAgent"
    parallel = "parallelAgent"
    one_of = "oneOfAgent"
    for_each = "forEachAgent"
    optimize = "optimizeAgent"
    best_of_all = "bestOfAllAgent"
    tool = "toolAgent"
    ui_component = "uiComponentAgent"
    unknown = "unknownAgent"


def _is_generic_document(value: Any) -> bool:
    return isinstance(value, Mapping) and "agent" in value


class GenericFlowNode(BaseSchema):
    """A node of the generic form.

    ``input`` is a literal payload (usually a string) for leaf agents, a single
    child node for ``forEachAgent`` / ``optimizeAgent`` and a list of child nodes
    for the other container agents. Raw child documents (mappings with an
    ``agent`` key) are validated into ``GenericFlowNode`` instances.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    name: Optional[str] = None
    agent: str = ""
    input: Any = None
    conditions: Optional[List[str]] = None
    criteria: Optional[str] = None
    item: Optional[str] = None
    max_iterations: Optional[int] = None
    loop_max_iterations: Optional[int] = Field(default=None, alias="maxIterations")
    condition: Optional[str] = None

    @field_validator("input", mode="before")
    @classmethod
    def _coerce_children(cls, value: Any) -> Any:
        if _is_generic_document(value):
            return cls.model_validate(value)
        if isinstance(value, list) and value and all(_is_generic_document(v) or isinstance(v, GenericFlowNode) for v in value):
            return [v if isinstance(v, GenericFlowNode) else cls.model_validate(v) for v in value]
        return value

    def children(self) -> List[GenericFlowNode]:
        if isinstance(self.input, GenericFlowNode):
            return [self.input]
        if isinstance(self.input, list):
            return [child for child in self.input if isinstance(child, GenericFlowNode)]
        return []

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =====================================================================
# Flow document
# =====================================================================


class AgentFlow(BaseSchema):
    """A named, reusable flow.

    ``flow`` holds the root node. ``FlowExecutor`` runs execution-form nodes
    (models from ``agentflow_ai.flows.nodes`` or their raw dict documents); an
    editor-form tree has to be converted by the caller first.
    """

    id: Optional[str] = None
    code: str = ""
    name: str = ""
    description: Optional[str] = None
    inputs: List[FlowInputVariable] = Field(default_factory=list)
    flow: Any = None
    agents: List[FlowAgentDefinition] = Field(default_factory=list)
