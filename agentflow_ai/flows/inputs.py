"""Flow input handling.

Flows declare their inputs as ``FlowInputVariable`` entries. This module
validates caller input against those declarations, builds a matching pydantic
model, and substitutes ``@name`` input references inside generic-form flow
definitions.
"""

from __future__ import annotations

import asyncio
import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, Field, create_model

from .models import FlowInputType, FlowInputVariable, GenericAgent, GenericFlowNode

INPUT_REFERENCE_PATTERN = re.compile(r"@([a-zA-Z0-9_]+)")

INPUT_TYPE_LABELS: Dict[FlowInputType, str] = {
    FlowInputType.short_text: "Short text",
    FlowInputType.url: "URL",
    FlowInputType.long_text: "Long text",
    FlowInputType.number: "Number",
    FlowInputType.json: "JSON Object",
    FlowInputType.file_base64: "File (Base64)",
}

_TEXT_TYPES = (FlowInputType.short_text, FlowInputType.long_text, FlowInputType.url, FlowInputType.file_base64)

# Agents whose ``input`` is a list of child nodes / a single child node.
_LIST_CONTAINERS = (GenericAgent.sequence, GenericAgent.parallel, GenericAgent.best_of_all, GenericAgent.one_of)
_SINGLE_CONTAINERS = (GenericAgent.for_each, GenericAgent.optimize)

GenericLike = Union[GenericFlowNode, Dict[str, Any]]
TransformFn = Callable[[GenericLike], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class InputValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def extract_variable_names(text: str) -> List[str]:
    """Return the names of all ``@name`` references in ``text``, in order of appearance."""
    return INPUT_REFERENCE_PATTERN.findall(text)


def replace_variables_in_string(text: str, values: Mapping[str, str]) -> str:
    result = text
    for name, value in values.items():
        result = re.sub(f"@{re.escape(name)}", lambda _m, v=str(value): v, result)
    return result


def _get(node: GenericLike, key: str) -> Any:
    if isinstance(node, GenericFlowNode):
        return getattr(node, key, None)
    return node.get(key)


def _set(node: GenericLike, key: str, value: Any) -> None:
    if isinstance(node, GenericFlowNode):
        setattr(node, key, value)
    else:
        node[key] = value


def _children(node: GenericLike) -> List[GenericLike]:
    agent = _get(node, "agent")
    payload = _get(node, "input")
    if agent in _LIST_CONTAINERS and isinstance(payload, list):
        return [child for child in payload if isinstance(child, (GenericFlowNode, dict))]
    if agent in _SINGLE_CONTAINERS and isinstance(payload, (GenericFlowNode, dict)):
        return [payload]
    return []


def inject_variables(flow_def: GenericLike, values: Mapping[str, str]) -> GenericLike:
    """Substitute ``@name`` references in ``input``, ``conditions`` and ``criteria`` throughout a generic tree.

    The tree is modified in place and returned.
    """
    payload = _get(flow_def, "input")
    if isinstance(payload, str):
        _set(flow_def, "input", replace_variables_in_string(payload, values))

    conditions = _get(flow_def, "conditions")
    if isinstance(conditions, list):
        _set(flow_def, "conditions", [replace_variables_in_string(c, values) for c in conditions])

    criteria = _get(flow_def, "criteria")
    if isinstance(criteria, str):
        _set(flow_def, "criteria", replace_variables_in_string(criteria, values))

    for child in _children(flow_def):
        inject_variables(child, values)
    return flow_def


async def apply_input_transformation(flow_def: GenericLike, transform: TransformFn) -> None:
    """Replace every node's ``input`` with ``transform(node)``, top-down.

    ``transform`` may be sync or async. Nodes without a ``name`` are named after
    their agent. Children of list containers are transformed concurrently.
    Children are collected after the parent's transform, so a transform that
    replaces a container's child list decides what gets visited.
    """
    new_input = transform(flow_def)
    if inspect.isawaitable(new_input):
        new_input = await new_input
    _set(flow_def, "input", new_input)

    if not _get(flow_def, "name"):
        _set(flow_def, "name", _get(flow_def, "agent"))

    children = _children(flow_def)
    if _get(flow_def, "agent") in _LIST_CONTAINERS:
        await asyncio.gather(*(apply_input_transformation(child, transform) for child in children))
    else:
        for child in children:
            await apply_input_transformation(child, transform)


def _python_type(input_type: Optional[FlowInputType]) -> Type[Any]:
    if input_type == FlowInputType.number:
        return float
    if input_type == FlowInputType.json:
        return Any  # type: ignore[return-value]
    return str


def create_input_model(inputs: Sequence[FlowInputVariable], model_name: str = "FlowInput") -> Type[BaseModel]:
    """Build a pydantic model describing the declared inputs.

    Text-like types map to ``str``, ``number`` to ``float`` and ``json`` to
    ``Any``. Inputs that are not required become optional.
    """
    fields: Dict[str, Tuple[Any, Any]] = {}
    for variable in inputs:
        annotation = _python_type(variable.type)
        description = variable.description or variable.name
        if variable.required:
            fields[variable.name] = (annotation, Field(..., description=description))
        else:
            fields[variable.name] = (Optional[annotation], Field(default=None, description=description))
    return create_model(model_name, **fields)  # type: ignore[call-overload]


def validate_flow_input(values: Mapping[str, Any], inputs: Sequence[FlowInputVariable]) -> InputValidationResult:
    """Check caller input against the declared inputs.

    ``None`` counts as missing. Numbers must be ``int``/``float`` (not ``bool``);
    text-like inputs must be strings; ``json`` accepts anything.
    """
    errors: List[str] = []
    for variable in inputs:
        value = values.get(variable.name)
        if value is None:
            if variable.required:
                errors.append(f"Required input variable '{variable.name}' is missing")
            continue

        if variable.type == FlowInputType.number:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"Input variable '{variable.name}' must be a number")
        elif variable.type in _TEXT_TYPES:
            if not isinstance(value, str):
                errors.append(f"Input variable '{variable.name}' must be a string")

    return InputValidationResult(valid=not errors, errors=errors)
