"""Sandboxed expression evaluation for flow conditions and ``evaluator`` nodes.

Expressions are interpolated first (``{{name}}`` placeholders), then evaluated
with ``simpleeval`` instead of a host-language ``eval``. The evaluator only
understands arithmetic, comparisons, boolean operators, container literals,
subscript/attribute access, variable names and a small whitelist of pure
functions.

Flows are usually authored with JavaScript-style operators, so ``&&``, ``||``,
``!``, ``===``, ``!==`` and the ``true`` / ``false`` / ``null`` / ``undefined``
literals are accepted and translated to their Python equivalents. String
literals are left untouched by that translation.

Variables are exposed to the evaluator as names, so ``score >= 90`` and
``{{score}} >= 90`` are equivalent for numeric values.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping

from simpleeval import EvalWithCompoundTypes

from agentflow_ai.core.logging_config import get_logger

from .errors import ExpressionEvaluationError
from .variables import interpolate

logger = get_logger(__name__)

SAFE_FUNCTIONS: Dict[str, Any] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "any": any,
    "all": all,
}

LITERAL_NAMES: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

# String literals come first so operators inside quotes are skipped.
_TOKEN_PATTERN = re.compile(
    r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')|(===|!==|&&|\|\||!(?!=))"""
)

_OPERATOR_MAP = {
    "===": "==",
    "!==": "!=",
    "&&": " and ",
    "||": " or ",
    "!": " not ",
}


def normalize_expression(expression: str) -> str:
    """Translate JavaScript-style operators into Python syntax."""

    def _replace(match: "re.Match[str]") -> str:
        if match.group(1) is not None:
            return match.group(1)
        return _OPERATOR_MAP[match.group(2)]

    return _TOKEN_PATTERN.sub(_replace, expression).strip()


def _build_evaluator(variables: Mapping[str, Any]) -> EvalWithCompoundTypes:
    names: Dict[str, Any] = dict(variables)
    names.update(LITERAL_NAMES)
    return EvalWithCompoundTypes(names=names, functions=SAFE_FUNCTIONS)


def evaluate_expression(expression: str, variables: Mapping[str, Any]) -> Any:
    """Interpolate and evaluate ``expression``, returning its value.

    Raises:
        ExpressionEvaluationError: If the expression cannot be parsed or evaluated.
            The error carries the original, un-interpolated expression text.
    """
    try:
        source = normalize_expression(interpolate(expression, variables))
        return _build_evaluator(variables).eval(source)
    except Exception as e:
        raise ExpressionEvaluationError(expression, cause=e) from e


def evaluate_condition(condition: str, variables: Mapping[str, Any]) -> bool:
    """Evaluate ``condition`` as a boolean; any evaluation failure yields ``False``."""
    try:
        return bool(evaluate_expression(condition, variables))
    except ExpressionEvaluationError as e:
        logger.warning("Condition %r evaluated to false after error: %s", condition, e.cause)
        return False
