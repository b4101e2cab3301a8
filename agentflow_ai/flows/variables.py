"""Variable environment helpers.

A flow's variables are a plain ``dict`` shared by reference across the whole
execution tree. This module holds the read-side helpers the executor uses on
it:

- ``interpolate`` replaces ``{{name}}`` placeholders in a template string.
- ``interpolate_object`` applies ``interpolate`` to every string inside a nested
  structure of dicts and lists.
- ``resolve_value`` turns a ``"$name"`` reference into the bound value and
  passes any other value through untouched.

Interpolation rendering rules: an unbound name (or one bound to ``None``)
renders as the empty string, strings render as-is, booleans as ``true`` /
``false``, dicts and lists as JSON, anything else through ``str()``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")
REFERENCE_PREFIX = "$"


def render_value(value: Any) -> str:
    """Render a variable value for insertion into a template."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def interpolate(template: str, variables: Mapping[str, Any]) -> str:
    """Replace every ``{{name}}`` in ``template`` with the rendered variable value."""
    return PLACEHOLDER_PATTERN.sub(lambda match: render_value(variables.get(match.group(1))), template)


def interpolate_object(obj: Any, variables: Mapping[str, Any]) -> Any:
    """Recursively interpolate all strings in ``obj``, returning a new structure."""
    if isinstance(obj, str):
        return interpolate(obj, variables)
    if isinstance(obj, (list, tuple)):
        return [interpolate_object(item, variables) for item in obj]
    if isinstance(obj, dict):
        return {key: interpolate_object(value, variables) for key, value in obj.items()}
    return obj


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


def resolve_value(value: Any, variables: Mapping[str, Any]) -> Any:
    """Resolve ``"$name"`` to ``variables["name"]`` (``None`` when unbound); return anything else unchanged."""
    if is_reference(value):
        return variables.get(value[len(REFERENCE_PREFIX):])
    return value
