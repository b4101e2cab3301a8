from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest

from agentflow_ai.agent_core.errors import ValidationError
from agentflow_ai.agent_core.providers.mock import MockLLMProvider, MockProviderConfig
from agentflow_ai.agent_core.schemas.agent import AgentConfig
from agentflow_ai.agent_core.tools.definitions import ToolDescriptor, ToolInvocationContext, ToolSpec
from agentflow_ai.core.config import get_settings
from agentflow_ai.flows.errors import (
    ExpressionEvaluationError,
    FlowDepthExceededError,
    FlowThrowError,
    ToolNotFoundError,
    ToolRegistryUnavailableError,
    UnknownNodeTypeError,
)
from agentflow_ai.flows.events import FlowEventType, FlowExecutionEvent
from agentflow_ai.flows.executor import FlowExecutor
from agentflow_ai.flows.models import AgentFlow, FlowInputType, FlowInputVariable
from agentflow_ai.flows.nodes import LLMCallNode, ReturnNode, SequenceNode, SetVariableNode


def _types(events: List[FlowExecutionEvent]) -> List[FlowEventType]:
    return [e.type for e in events]


def _nested_sequence(depth: int) -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": "return", "value": "bottom"}
    for _ in range(depth):
        node = {"type": "sequence", "steps": [node]}
    return node


# =====================================================================
# Structural nodes
# =====================================================================


@pytest.mark.asyncio
async def test_sequence_returns_last_child_result(make_context) -> None:
    flow = {
        "type": "sequence",
        "steps": [
            {"type": "return", "value": "first"},
            {"type": "return", "value": "second"},
            {"type": "return", "value": "third"},
        ],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == "third"
    assert result.steps == 4
    starts = [e for e in result.events if e.type == FlowEventType.step_start]
    completes = [e for e in result.events if e.type == FlowEventType.step_complete]
    assert len(starts) == len(completes) == 4
    assert [e.data for e in completes] == ["first", "second", "third", "third"]


@pytest.mark.asyncio
async def test_empty_sequence_returns_none(make_context) -> None:
    result = await FlowExecutor.execute(SequenceNode(steps=[]), make_context())

    assert result.success is True
    assert result.output is None


@pytest.mark.asyncio
async def test_parallel_results_follow_declaration_order(make_context, tool_registry) -> None:
    async def _sleepy(args: Dict[str, Any], context: ToolInvocationContext) -> Any:
        await asyncio.sleep(args["delay"])
        return args["value"]

    tool_registry.register("sleepy", ToolDescriptor(display_name="Sleepy", tool=ToolSpec(description="", handler=_sleepy)))
    flow = {
        "type": "parallel",
        "steps": [
            {"type": "toolCall", "tool": "sleepy", "arguments": {"value": "result1", "delay": 0.05}},
            {"type": "toolCall", "tool": "sleepy", "arguments": {"value": "result2", "delay": 0.02}},
            {"type": "toolCall", "tool": "sleepy", "arguments": {"value": "result3", "delay": 0.0}},
        ],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == ["result1", "result2", "result3"]
    tool_results = [e.data["result"] for e in result.events if e.type == FlowEventType.tool_result]
    assert tool_results == ["result3", "result2", "result1"]


@pytest.mark.asyncio
async def test_parallel_of_returns(make_context) -> None:
    flow = {"type": "parallel", "steps": [{"type": "return", "value": f"result{i}"} for i in (1, 2, 3)]}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.output == ["result1", "result2", "result3"]


@pytest.mark.asyncio
async def test_parallel_fails_when_one_child_fails(make_context) -> None:
    flow = {
        "type": "parallel",
        "steps": [{"type": "return", "value": 1}, {"type": "throw", "message": "branch failed"}],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is False
    assert isinstance(result.error, FlowThrowError)
    assert str(result.error) == "branch failed"


@pytest.mark.asyncio
async def test_failed_parallel_settles_siblings_before_flow_error(make_context) -> None:
    slow_provider = MockLLMProvider(MockProviderConfig(name="mock", delay=0.05))
    flow = {
        "type": "parallel",
        "steps": [
            {"type": "throw", "message": "branch failed"},
            {"type": "llmCall", "prompt": "slow", "outputVariable": "late"},
        ],
    }
    seen: List[str] = []

    result = await FlowExecutor.execute(flow, make_context(provider=slow_provider), on_event=lambda e: seen.append(e.type))
    await asyncio.sleep(0.2)

    assert result.success is False
    assert seen[-1] == FlowEventType.flow_error
    assert "late" not in result.variables
    assert FlowEventType.llm_response not in seen


@pytest.mark.asyncio
async def test_parallel_branches_share_variables(make_context) -> None:
    flow = {
        "type": "sequence",
        "steps": [
            {
                "type": "parallel",
                "steps": [
                    {"type": "setVariable", "variable": "a", "value": 1},
                    {"type": "setVariable", "variable": "b", "value": 2},
                ],
            },
            {"type": "evaluator", "expression": "a + b"},
        ],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.output == 3
    assert result.variables["a"] == 1
    assert result.variables["b"] == 2


def _grading_flow(condition_a: str, condition_b: str) -> Dict[str, Any]:
    return {
        "type": "oneOf",
        "options": [
            {"condition": condition_a, "step": {"type": "return", "value": "A"}},
            {"condition": condition_b, "step": {"type": "return", "value": "B"}},
            {"step": {"type": "return", "value": "F"}},
        ],
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "condition_a,condition_b",
    [
        ("{{score}} >= 90", "{{score}} >= 80"),
        ("score >= 90", "score >= 80"),
    ],
)
@pytest.mark.parametrize("score,expected", [(95, "A"), (85, "B"), (50, "F")])
async def test_one_of_picks_first_matching_option(make_context, condition_a, condition_b, score, expected) -> None:
    result = await FlowExecutor.execute(_grading_flow(condition_a, condition_b), make_context({"score": score}))

    assert result.success is True
    assert result.output == expected


@pytest.mark.asyncio
async def test_one_of_emits_condition_events_until_match(make_context) -> None:
    result = await FlowExecutor.execute(_grading_flow("score >= 90", "score >= 80"), make_context({"score": 85}))

    evaluated = [e.data for e in result.events if e.type == FlowEventType.condition_evaluated]
    assert evaluated == [
        {"condition": "score >= 90", "result": False},
        {"condition": "score >= 80", "result": True},
    ]


@pytest.mark.asyncio
async def test_one_of_without_match_returns_none(make_context) -> None:
    flow = {"type": "oneOf", "options": [{"condition": "false", "step": {"type": "return", "value": "x"}}]}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output is None


@pytest.mark.asyncio
async def test_one_of_condition_error_counts_as_false(make_context) -> None:
    flow = {
        "type": "oneOf",
        "options": [
            {"condition": "missing_name > 1", "step": {"type": "return", "value": "bad"}},
            {"step": {"type": "return", "value": "fallback"}},
        ],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == "fallback"


@pytest.mark.asyncio
async def test_for_each_collects_results_and_binds_variables(make_context) -> None:
    flow = {
        "type": "forEach",
        "items": [1, 2, 3],
        "itemVariable": "num",
        "step": {"type": "return", "value": "$num"},
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == [1, 2, 3]
    assert result.variables["num"] == 3
    assert result.variables["index"] == 2
    iterations = [e.data for e in result.events if e.type == FlowEventType.loop_iteration]
    assert iterations == [{"item": 1, "index": 0}, {"item": 2, "index": 1}, {"item": 3, "index": 2}]


@pytest.mark.asyncio
async def test_for_each_resolves_items_reference(make_context) -> None:
    flow = {
        "type": "forEach",
        "items": "$names",
        "indexVariable": "i",
        "step": {"type": "evaluator", "expression": "'{{item}}' + str(i)"},
    }

    result = await FlowExecutor.execute(flow, make_context({"names": ["ann", "bob"]}))

    assert result.output == ["ann0", "bob1"]


@pytest.mark.asyncio
async def test_for_each_over_unbound_items_is_empty(make_context) -> None:
    flow = {"type": "forEach", "items": "$nothing", "step": {"type": "return", "value": 1}}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == []


@pytest.mark.asyncio
async def test_for_each_rejects_non_list_items(make_context) -> None:
    flow = {"type": "forEach", "items": 5, "step": {"type": "return", "value": 1}}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is False
    assert "must resolve to a list" in str(result.error)


@pytest.mark.asyncio
async def test_for_each_without_step_still_iterates(make_context) -> None:
    flow = {"type": "forEach", "items": ["a", "b"], "itemVariable": "letter"}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == []
    assert result.variables["letter"] == "b"
    assert [e.type for e in result.events].count(FlowEventType.loop_iteration) == 2


@pytest.mark.asyncio
async def test_annotated_nodes_execute(make_context) -> None:
    flow = {
        "type": "sequence",
        "label": "main",
        "steps": [{"type": "return", "value": 1, "label": "done", "position": {"x": 10, "y": 20}}],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is True
    assert result.output == 1


# =====================================================================
# Depth guard
# =====================================================================


@pytest.mark.asyncio
async def test_depth_guard_fails_deep_flows(make_context) -> None:
    result = await FlowExecutor.execute(_nested_sequence(15), make_context(max_depth=10))

    assert result.success is False
    assert isinstance(result.error, FlowDepthExceededError)
    assert "Maximum flow depth 10 exceeded" in str(result.error)
    assert result.events[-1].type == FlowEventType.flow_error


@pytest.mark.asyncio
async def test_depth_guard_allows_flows_at_the_limit(make_context) -> None:
    result = await FlowExecutor.execute(_nested_sequence(10), make_context(max_depth=10))

    assert result.success is True
    assert result.output == "bottom"


def test_default_max_depth_comes_from_flow_settings(make_context) -> None:
    assert make_context().max_depth == get_settings().flow.max_depth


# =====================================================================
# Leaf nodes
# =====================================================================


@pytest.mark.asyncio
async def test_set_variable_then_return_reference(make_context) -> None:
    flow = SequenceNode(
        steps=[
            SetVariableNode(variable="greeting", value="hi"),
            ReturnNode(value="$greeting"),
        ]
    )

    result = await FlowExecutor.execute(flow, make_context())

    assert result.output == "hi"
    assert result.variables["greeting"] == "hi"
    variable_events = [e.data for e in result.events if e.type == FlowEventType.variable_set]
    assert variable_events == [{"variable": "greeting", "value": "hi"}]


@pytest.mark.asyncio
async def test_set_variable_copies_other_variable(make_context) -> None:
    flow = {"type": "setVariable", "variable": "copy", "value": "$original"}

    result = await FlowExecutor.execute(flow, make_context({"original": [1, 2]}))

    assert result.variables["copy"] == [1, 2]


@pytest.mark.asyncio
async def test_end_node_returns_value(make_context) -> None:
    result = await FlowExecutor.execute({"type": "end", "value": 42}, make_context())

    assert result.output == 42


@pytest.mark.asyncio
async def test_throw_fails_with_interpolated_message(make_context) -> None:
    flow = {"type": "sequence", "steps": [{"type": "throw", "message": "Invalid order {{order_id}}"}]}

    result = await FlowExecutor.execute(flow, make_context({"order_id": 7}))

    assert result.success is False
    assert result.output is None
    assert isinstance(result.error, FlowThrowError)
    assert str(result.error) == "Invalid order 7"
    errors = [e for e in result.events if e.type == FlowEventType.step_error]
    assert len(errors) == 2
    assert all(e.error is result.error for e in errors)


@pytest.mark.asyncio
async def test_throw_uses_default_message(make_context) -> None:
    result = await FlowExecutor.execute({"type": "throw"}, make_context())

    assert str(result.error) == "Flow error"


@pytest.mark.asyncio
async def test_evaluator_returns_expression_value(make_context) -> None:
    flow = {"type": "evaluator", "expression": "{{a}} * {{b}} + 1"}

    result = await FlowExecutor.execute(flow, make_context({"a": 3, "b": 4}))

    assert result.output == 13


@pytest.mark.asyncio
async def test_evaluator_failure_is_fatal(make_context) -> None:
    flow = {"type": "evaluator", "expression": "1 +"}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is False
    assert isinstance(result.error, ExpressionEvaluationError)
    assert result.error.expression == "1 +"


@pytest.mark.asyncio
async def test_llm_call_uses_agent_model_and_system_prompt(make_context, mock_provider) -> None:
    flow = {"type": "llmCall", "prompt": "Greet {{user}}", "outputVariable": "greeting", "temperature": 0.2}

    result = await FlowExecutor.execute(flow, make_context({"user": "Ada"}))

    assert result.success is True
    assert result.output == "Hello from LLM"
    assert result.variables["greeting"] == "Hello from LLM"

    options = mock_provider.calls[0]
    assert options.model == "mock-model-1"
    assert options.temperature == 0.2
    assert [m.role.value for m in options.messages] == ["system", "user"]
    assert options.messages[0].content == "You are a test assistant."
    assert options.messages[1].content == "Greet Ada"

    types = _types(result.events)
    assert types.index(FlowEventType.llm_call) < types.index(FlowEventType.llm_response)
    assert types.index(FlowEventType.llm_response) < types.index(FlowEventType.variable_set)
    response = next(e for e in result.events if e.type == FlowEventType.llm_response)
    assert response.data["text"] == "Hello from LLM"
    assert response.data["usage"]["total_tokens"] > 0


@pytest.mark.asyncio
async def test_llm_call_node_model_wins(make_context, mock_provider) -> None:
    await FlowExecutor.execute(LLMCallNode(prompt="hi", model="mock-model-2"), make_context())

    assert mock_provider.calls[0].model == "mock-model-2"


@pytest.mark.asyncio
async def test_llm_call_falls_back_to_default_model(make_context, mock_provider) -> None:
    bare_agent = AgentConfig(name="bare")

    result = await FlowExecutor.execute({"type": "llmCall", "prompt": "hi"}, make_context(agent=bare_agent))

    assert result.success is True
    assert mock_provider.calls[0].model == get_settings().flow.default_model
    assert [m.role.value for m in mock_provider.calls[0].messages] == ["user"]


@pytest.mark.asyncio
async def test_sequential_llm_calls_cycle_responses(make_context) -> None:
    flow = {
        "type": "sequence",
        "steps": [
            {"type": "llmCall", "prompt": "one", "outputVariable": "first"},
            {"type": "llmCall", "prompt": "two", "outputVariable": "second"},
        ],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.variables["first"] == "Hello from LLM"
    assert result.variables["second"] == "Another response"


@pytest.mark.asyncio
async def test_tool_call_interpolates_arguments_and_binds_output(make_context) -> None:
    flow = {
        "type": "toolCall",
        "tool": "testTool",
        "arguments": {"query": "orders of {{customer}}", "nested": {"items": ["{{customer}}", 3]}},
        "outputVariable": "lookup",
    }

    result = await FlowExecutor.execute(flow, make_context({"customer": "acme"}))

    expected_args = {"query": "orders of acme", "nested": {"items": ["acme", 3]}}
    assert result.success is True
    assert result.output == {"success": True, "input": expected_args}
    assert result.variables["lookup"] == result.output
    call = next(e for e in result.events if e.type == FlowEventType.tool_call)
    assert call.data == {"tool": "testTool", "arguments": expected_args}


@pytest.mark.asyncio
async def test_tool_call_unknown_tool_never_touches_provider(make_context, mock_provider) -> None:
    result = await FlowExecutor.execute({"type": "toolCall", "tool": "nope", "arguments": {}}, make_context())

    assert result.success is False
    assert isinstance(result.error, ToolNotFoundError)
    assert "not found" in str(result.error)
    assert mock_provider.calls == []


@pytest.mark.asyncio
async def test_tool_call_without_tool_name_is_not_found(make_context) -> None:
    result = await FlowExecutor.execute({"type": "toolCall", "arguments": {}}, make_context())

    assert result.success is False
    assert isinstance(result.error, ToolNotFoundError)
    assert str(result.error) == "Tool '' not found"


@pytest.mark.asyncio
async def test_tool_call_without_registry_fails(make_context) -> None:
    result = await FlowExecutor.execute({"type": "toolCall", "tool": "testTool"}, make_context(tool_registry=None))

    assert result.success is False
    assert isinstance(result.error, ToolRegistryUnavailableError)


@pytest.mark.asyncio
async def test_tool_errors_pass_through_unchanged(make_context, tool_registry) -> None:
    def _broken(args: Dict[str, Any], context: ToolInvocationContext) -> Any:
        raise KeyError("boom")

    tool_registry.register("broken", ToolDescriptor(display_name="Broken", tool=ToolSpec(description="", handler=_broken)))

    result = await FlowExecutor.execute({"type": "toolCall", "tool": "broken"}, make_context())

    assert result.success is False
    assert isinstance(result.error, KeyError)


# =====================================================================
# Unknown nodes, ids, events
# =====================================================================


@pytest.mark.asyncio
async def test_unknown_node_type_fails_after_step_start(make_context) -> None:
    flow = {"type": "sequence", "steps": [{"id": "weird", "type": "teleport"}]}

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is False
    assert isinstance(result.error, UnknownNodeTypeError)
    assert "Unknown node type: teleport" in str(result.error)
    weird = [e.type for e in result.events if e.step_id == "weird"]
    assert weird == [FlowEventType.step_start, FlowEventType.step_error]


@pytest.mark.asyncio
async def test_fallback_step_ids_are_unique(make_context) -> None:
    flow = {"type": "sequence", "steps": [{"type": "return", "value": 1}, {"type": "return", "value": 2}]}

    result = await FlowExecutor.execute(flow, make_context())

    ids = [e.step_id for e in result.events if e.type == FlowEventType.step_start]
    assert len(ids) == len(set(ids)) == 3
    assert all(step_id for step_id in ids)


@pytest.mark.asyncio
async def test_node_ids_are_used_as_step_ids(make_context) -> None:
    result = await FlowExecutor.execute({"id": "root", "type": "return", "value": 1}, make_context())

    assert [e.step_id for e in result.events if e.type == FlowEventType.step_start] == ["root"]


@pytest.mark.asyncio
async def test_event_trace_is_framed_by_flow_events(make_context) -> None:
    flow = AgentFlow(code="demo", name="Demo", flow={"type": "return", "value": "ok"})

    result = await FlowExecutor.execute(flow, make_context())

    assert _types(result.events) == [
        FlowEventType.flow_start,
        FlowEventType.step_start,
        FlowEventType.step_complete,
        FlowEventType.flow_complete,
    ]
    assert result.events[0].data == {"flow_code": "demo", "flow_name": "Demo"}
    assert result.events[-1].data == {"output": "ok", "steps": 1}
    assert result.events[-1].variables == {}


@pytest.mark.asyncio
async def test_sink_sees_every_event_in_order(make_context) -> None:
    seen: List[FlowExecutionEvent] = []

    result = await FlowExecutor.execute(_grading_flow("score >= 90", "score >= 80"), make_context({"score": 85}), seen.append)

    assert seen == result.events


@pytest.mark.asyncio
async def test_runs_with_fresh_seeds_produce_identical_traces(make_context) -> None:
    flow = {
        "type": "sequence",
        "steps": [
            {"type": "setVariable", "variable": "x", "value": 1},
            {"type": "forEach", "items": [1, 2], "step": {"type": "llmCall", "prompt": "{{item}}"}},
            {"type": "toolCall", "tool": "testTool", "arguments": {"x": "{{x}}"}},
        ],
    }

    first = await FlowExecutor.execute(flow, make_context())
    second = await FlowExecutor.execute(flow, make_context())

    assert _types(first.events) == _types(second.events)


@pytest.mark.asyncio
async def test_caller_variables_are_not_mutated(make_context) -> None:
    seed = {"keep": True}
    context = make_context(seed)

    result = await FlowExecutor.execute({"type": "setVariable", "variable": "new", "value": 1}, context)

    assert result.variables == {"keep": True, "new": 1}
    assert context.variables == {"keep": True}


@pytest.mark.asyncio
async def test_partial_variables_survive_failure(make_context) -> None:
    flow = {
        "type": "sequence",
        "steps": [{"type": "setVariable", "variable": "done", "value": "step1"}, {"type": "throw", "message": "stop"}],
    }

    result = await FlowExecutor.execute(flow, make_context())

    assert result.success is False
    assert result.variables["done"] == "step1"


@pytest.mark.asyncio
async def test_flow_without_root_fails(make_context) -> None:
    result = await FlowExecutor.execute(AgentFlow(code="empty", name="Empty"), make_context())

    assert result.success is False
    assert "no root node" in str(result.error)
    assert result.error.flow_code == "empty"


# =====================================================================
# Flow inputs
# =====================================================================


def _input_flow() -> AgentFlow:
    return AgentFlow(
        code="greet",
        name="Greet",
        inputs=[FlowInputVariable(name="user", type=FlowInputType.short_text, required=True)],
        flow={"type": "evaluator", "expression": "'Hi ' + user"},
    )


@pytest.mark.asyncio
async def test_execute_flow_seeds_inputs(make_context) -> None:
    result = await FlowExecutor.execute_flow(_input_flow(), make_context(), {"user": "Ada"})

    assert result.success is True
    assert result.output == "Hi Ada"


@pytest.mark.asyncio
async def test_execute_flow_rejects_invalid_inputs(make_context) -> None:
    result = await FlowExecutor.execute_flow(_input_flow(), make_context(), {"user": 5})

    assert result.success is False
    assert isinstance(result.error, ValidationError)
    assert "Input variable 'user' must be a string" in str(result.error)
    assert _types(result.events) == [FlowEventType.flow_error]
