"""Flow execution engine.

A flow is a tree of nodes interpreted recursively by ``FlowExecutor``:
``sequence`` / ``parallel`` / ``oneOf`` / ``forEach`` structure the tree,
``llmCall`` / ``toolCall`` / ``evaluator`` do work at the leaves, and
``setVariable`` / ``return`` / ``end`` / ``throw`` manipulate state and control
flow. Every action is recorded in an ordered event trace.

Subpackage layout
-----------------

- ``nodes``: execution-form node models.
- ``models``: flow documents, editor-form and generic-form trees.
- ``executor``: ``FlowExecutor``, ``FlowExecutionContext``, ``FlowExecutionResult``.
- ``variables`` / ``expressions``: interpolation and sandboxed evaluation.
- ``events``: the event trace.
- ``converters``: editor form <-> generic form.
- ``inputs`` / ``validators`` / ``builder``: flow inputs, structural checks, fluent construction.
"""

from .builder import FlowBuilder
from .converters import from_generic, to_generic
from .errors import (
    ExpressionEvaluationError,
    FlowDepthExceededError,
    FlowThrowError,
    ToolNotFoundError,
    ToolRegistryUnavailableError,
    UnknownNodeTypeError,
)
from .events import EventTrace, FlowEventType, FlowExecutionEvent
from .executor import FlowExecutionContext, FlowExecutionResult, FlowExecutor
from .inputs import (
    INPUT_TYPE_LABELS,
    apply_input_transformation,
    create_input_model,
    extract_variable_names,
    inject_variables,
    replace_variables_in_string,
    validate_flow_input,
)
from .models import (
    AgentFlow,
    EditorStep,
    FlowAgentDefinition,
    FlowInputType,
    FlowInputVariable,
    FlowToolSetting,
    GenericAgent,
    GenericFlowNode,
    parse_editor_step,
)
from .nodes import FlowNode, parse_node
from .validators import validate_agent_definition, validate_flow

__all__ = [
    "AgentFlow",
    "EditorStep",
    "EventTrace",
    "ExpressionEvaluationError",
    "FlowAgentDefinition",
    "FlowBuilder",
    "FlowDepthExceededError",
    "FlowEventType",
    "FlowExecutionContext",
    "FlowExecutionEvent",
    "FlowExecutionResult",
    "FlowExecutor",
    "FlowInputType",
    "FlowInputVariable",
    "FlowNode",
    "FlowThrowError",
    "FlowToolSetting",
    "GenericAgent",
    "GenericFlowNode",
    "INPUT_TYPE_LABELS",
    "ToolNotFoundError",
    "ToolRegistryUnavailableError",
    "UnknownNodeTypeError",
    "apply_input_transformation",
    "create_input_model",
    "extract_variable_names",
    "from_generic",
    "inject_variables",
    "parse_editor_step",
    "parse_node",
    "replace_variables_in_string",
    "to_generic",
    "validate_agent_definition",
    "validate_flow",
    "validate_flow_input",
]
