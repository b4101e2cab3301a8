from __future__ import annotations

"""Flow execution engine.

``FlowExecutor`` interprets an execution-form flow tree (see
``agentflow_ai.flows.nodes``).

Execution model
---------------

- ``execute_node`` is a recursive, variant-dispatched interpreter. Every call
  first checks the depth guard, then emits ``step-start``, runs the node's
  handler and emits ``step-complete`` (or ``step-error`` before re-raising).
- Children run with a shallow copy of the context whose ``current_depth`` is one
  higher. The variable dict is *not* copied: the whole tree, including parallel
  siblings and loop iterations, reads and writes the same dict.
- ``parallel`` launches all children before awaiting any; results come back in
  declaration order. The first failure fails the node: the other branches are
  cancelled and awaited before the error propagates, so nothing runs after
  ``flow-error``.

Error boundary
--------------

``execute`` is the only place where exceptions become values. It wraps the run
in ``flow-start`` / ``flow-complete`` (or ``flow-error``) events and returns a
``FlowExecutionResult``; node failures never escape it.
"""

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from agentflow_ai.agent_core.errors import FlowExecutionError, ValidationError
from agentflow_ai.agent_core.providers.base import GenerateOptions, LLMProvider, Message, MessageRole
from agentflow_ai.agent_core.schemas.agent import AgentConfig
from agentflow_ai.agent_core.tools.definitions import ToolInvocationContext
from agentflow_ai.agent_core.tools.registry import ToolRegistry
from agentflow_ai.core.config import get_settings
from agentflow_ai.core.logging_config import get_logger

from .errors import FlowDepthExceededError, FlowThrowError, ToolNotFoundError, ToolRegistryUnavailableError
from .events import EventSink, EventTrace, FlowEventType, FlowExecutionEvent
from .expressions import evaluate_condition, evaluate_expression
from .inputs import validate_flow_input
from .models import AgentFlow
from .nodes import (
    EndNode,
    EvaluatorNode,
    FlowNodeBase,
    ForEachNode,
    LLMCallNode,
    OneOfNode,
    ParallelNode,
    ReturnNode,
    SequenceNode,
    SetVariableNode,
    ThrowNode,
    ToolCallNode,
    coerce_node,
    node_id_of,
    node_type_of,
)
from .variables import interpolate, interpolate_object, resolve_value

logger = get_logger(__name__)

FlowLike = Union[AgentFlow, FlowNodeBase, Mapping[str, Any]]


def _default_max_depth() -> int:
    return get_settings().flow.max_depth


@dataclass(frozen=True)
class FlowExecutionContext:
    """Everything a node needs while executing.

    Attributes:
        agent: Agent whose system prompt and model settings ``llmCall`` nodes use.
        variables: The shared variable map.
        provider: LLM provider used by ``llmCall`` nodes.
        tool_registry: Registry used by ``toolCall`` nodes.
        session: Opaque caller session, forwarded to tools.
        memory: Opaque conversation memory, carried along unchanged.
        max_depth: Deepest ``current_depth`` allowed.
        current_depth: Depth of the node being executed (root is 0).
    """

    agent: AgentConfig
    variables: Dict[str, Any]
    provider: LLMProvider
    tool_registry: Optional[ToolRegistry] = None
    session: Any = None
    memory: List[Any] = field(default_factory=list)
    max_depth: int = field(default_factory=_default_max_depth)
    current_depth: int = 0

    def child(self) -> "FlowExecutionContext":
        return replace(self, current_depth=self.current_depth + 1)


@dataclass(frozen=True)
class FlowExecutionResult:
    success: bool
    output: Any
    variables: Dict[str, Any]
    steps: int
    events: List[FlowExecutionEvent]
    error: Optional[BaseException] = None


NodeHandler = Callable[[Any, FlowExecutionContext, str], Awaitable[Any]]


class FlowExecutor:
    """Interpreter for execution-form flow trees.

    An instance holds the state of one execution: its event trace and the
    counter used for fallback step ids. Use the ``execute`` / ``execute_flow``
    class methods to run a flow; ``execute_node`` is public for embedding the
    interpreter in a larger run.
    """

    def __init__(self, on_event: Optional[EventSink] = None) -> None:
        self._trace = EventTrace(on_event)
        self._step_counter = itertools.count(1)
        self._handlers: Dict[str, NodeHandler] = {
            "sequence": self._execute_sequence,
            "parallel": self._execute_parallel,
            "oneOf": self._execute_one_of,
            "forEach": self._execute_for_each,
            "evaluator": self._execute_evaluator,
            "llmCall": self._execute_llm_call,
            "toolCall": self._execute_tool_call,
            "setVariable": self._execute_set_variable,
            "return": self._execute_return,
            "end": self._execute_return,
            "throw": self._execute_throw,
        }

    @property
    def trace(self) -> EventTrace:
        return self._trace

    # =====================================================================
    # Top-level entry points
    # =====================================================================

    @classmethod
    async def execute(
        cls,
        flow: FlowLike,
        context: FlowExecutionContext,
        on_event: Optional[EventSink] = None,
    ) -> FlowExecutionResult:
        """Run a flow and package the outcome; never raises for node failures.

        Args:
            flow: An ``AgentFlow`` or a bare root node (model or raw dict).
            context: Execution context. Its variable dict is copied once; the
                caller's dict is left untouched.
            on_event: Optional synchronous sink called once per event, in order.

        Returns:
            A ``FlowExecutionResult`` with the output, a snapshot of the final
            variables, the number of completed steps and the full event trace.
        """
        executor = cls(on_event)
        root, flow_code, flow_name = cls._resolve_root(flow)
        variables: Dict[str, Any] = dict(context.variables)
        run_context = replace(context, variables=variables, current_depth=0)

        executor._trace.emit(FlowEventType.flow_start, data={"flow_code": flow_code, "flow_name": flow_name})
        logger.info(f"Flow started: code={flow_code} name={flow_name}")

        try:
            if root is None:
                raise FlowExecutionError("Flow has no root node", flow_code=flow_code)
            output = await executor.execute_node(root, run_context)
        except Exception as e:
            if isinstance(e, FlowExecutionError) and e.flow_code is None:
                e.flow_code = flow_code
            logger.info(f"Flow failed: code={flow_code} error={e}")
            return executor._fail(e, variables)

        steps = executor._trace.count(FlowEventType.step_complete)
        executor._trace.emit(
            FlowEventType.flow_complete,
            data={"output": output, "steps": steps},
            variables=dict(variables),
        )
        logger.info(f"Flow completed: code={flow_code} steps={steps}")
        return FlowExecutionResult(
            success=True,
            output=output,
            variables=dict(variables),
            steps=steps,
            events=executor._trace.events,
        )

    @classmethod
    async def execute_flow(
        cls,
        flow: AgentFlow,
        context: FlowExecutionContext,
        inputs: Optional[Mapping[str, Any]] = None,
        on_event: Optional[EventSink] = None,
    ) -> FlowExecutionResult:
        """Validate ``inputs`` against ``flow.inputs``, seed them as variables and run the flow.

        Invalid input produces a failed result carrying a ``ValidationError``;
        the flow is not started.
        """
        values = dict(inputs or {})
        validation = validate_flow_input(values, flow.inputs)
        if not validation.valid:
            error = ValidationError(
                "Invalid flow input: " + "; ".join(validation.errors), errors={"inputs": validation.errors}
            )
            return cls(on_event)._fail(error, dict(context.variables))

        seeded = {**context.variables, **values}
        return await cls.execute(flow, replace(context, variables=seeded), on_event)

    @staticmethod
    def _resolve_root(flow: FlowLike) -> Tuple[Any, Optional[str], Optional[str]]:
        if isinstance(flow, AgentFlow):
            return flow.flow, flow.code or None, flow.name or None
        return flow, None, None

    def _fail(self, error: BaseException, variables: Dict[str, Any]) -> FlowExecutionResult:
        self._trace.emit(FlowEventType.flow_error, data={"message": str(error)}, error=error)
        return FlowExecutionResult(
            success=False,
            output=None,
            variables=dict(variables),
            steps=self._trace.count(FlowEventType.step_complete),
            events=self._trace.events,
            error=error,
        )

    # =====================================================================
    # Node interpreter
    # =====================================================================

    async def execute_node(self, node: Any, context: FlowExecutionContext) -> Any:
        """Execute one node (and, recursively, its children) and return its value.

        Raises:
            FlowDepthExceededError: If ``context.current_depth`` exceeds ``context.max_depth``.
                The node is not started.
            Exception: Whatever the node or its children raise, after ``step-error`` is emitted.
        """
        if context.current_depth > context.max_depth:
            raise FlowDepthExceededError(context.max_depth)

        step_id = node_id_of(node) or f"step-{next(self._step_counter)}"
        step_type = node_type_of(node)
        self._trace.emit(FlowEventType.step_start, step_id=step_id, step_type=step_type)
        logger.debug(f"Executing node {step_id} ({step_type}) at depth {context.current_depth}")

        try:
            model = coerce_node(node)
            result = await self._handlers[model.type](model, context, step_id)
        except Exception as e:
            logger.debug(f"Node {step_id} ({step_type}) failed: {e}")
            self._trace.emit(FlowEventType.step_error, step_id=step_id, step_type=step_type, error=e)
            raise

        self._trace.emit(FlowEventType.step_complete, step_id=step_id, step_type=step_type, data=result)
        return result

    def _emit(self, event_type: FlowEventType, node: FlowNodeBase, step_id: str, **fields: Any) -> None:
        self._trace.emit(event_type, step_id=step_id, step_type=getattr(node, "type", None), **fields)

    def _bind(self, node: FlowNodeBase, context: FlowExecutionContext, step_id: str, name: str, value: Any) -> None:
        context.variables[name] = value
        self._emit(FlowEventType.variable_set, node, step_id, data={"variable": name, "value": value})

    async def _execute_sequence(self, node: SequenceNode, context: FlowExecutionContext, step_id: str) -> Any:
        result = None
        for step in node.steps:
            result = await self.execute_node(step, context.child())
        return result

    async def _execute_parallel(self, node: ParallelNode, context: FlowExecutionContext, step_id: str) -> List[Any]:
        child = context.child()
        tasks = [asyncio.ensure_future(self.execute_node(step, child)) for step in node.steps]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # The first failure wins; siblings must be settled before it propagates.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return list(results)

    async def _execute_one_of(self, node: OneOfNode, context: FlowExecutionContext, step_id: str) -> Any:
        for option in node.options:
            if option.condition:
                matched = evaluate_condition(option.condition, context.variables)
                self._emit(
                    FlowEventType.condition_evaluated,
                    node,
                    step_id,
                    data={"condition": option.condition, "result": matched},
                )
                if not matched:
                    continue
            return await self.execute_node(option.step, context.child())
        return None

    async def _execute_for_each(self, node: ForEachNode, context: FlowExecutionContext, step_id: str) -> List[Any]:
        items = resolve_value(node.items, context.variables)
        if items is None:
            items = []
        if not isinstance(items, (list, tuple)):
            raise FlowExecutionError(f"forEach items must resolve to a list, got {type(items).__name__}")

        results: List[Any] = []
        for index, item in enumerate(items):
            context.variables[node.item_variable] = item
            context.variables[node.index_variable] = index
            self._emit(FlowEventType.loop_iteration, node, step_id, data={"item": item, "index": index})
            if node.step is not None:
                results.append(await self.execute_node(node.step, context.child()))
        return results

    async def _execute_evaluator(self, node: EvaluatorNode, context: FlowExecutionContext, step_id: str) -> Any:
        return evaluate_expression(node.expression, context.variables)

    async def _execute_llm_call(self, node: LLMCallNode, context: FlowExecutionContext, step_id: str) -> str:
        prompt = interpolate(node.prompt, context.variables)
        model = node.model or context.agent.model or get_settings().flow.default_model

        messages: List[Message] = []
        if context.agent.prompt:
            messages.append(Message(role=MessageRole.system, content=context.agent.prompt))
        messages.append(Message(role=MessageRole.user, content=prompt))

        self._emit(FlowEventType.llm_call, node, step_id, data={"model": model, "prompt": prompt})
        result = await context.provider.generate(
            GenerateOptions(
                model=model,
                messages=messages,
                temperature=node.temperature,
                max_tokens=node.max_tokens,
            )
        )
        self._emit(
            FlowEventType.llm_response,
            node,
            step_id,
            data={"text": result.text, "usage": result.usage.model_dump()},
        )

        if node.output_variable:
            self._bind(node, context, step_id, node.output_variable, result.text)
        return result.text

    async def _execute_tool_call(self, node: ToolCallNode, context: FlowExecutionContext, step_id: str) -> Any:
        if context.tool_registry is None:
            raise ToolRegistryUnavailableError()
        descriptor = context.tool_registry.get(node.tool)
        if descriptor is None:
            raise ToolNotFoundError(node.tool)

        arguments = interpolate_object(node.arguments, context.variables)
        self._emit(FlowEventType.tool_call, node, step_id, data={"tool": node.tool, "arguments": arguments})
        result = await descriptor.tool.execute(
            arguments,
            ToolInvocationContext(
                tool_name=node.tool,
                variables=context.variables,
                agent=context.agent,
                session=context.session,
            ),
        )
        self._emit(FlowEventType.tool_result, node, step_id, data={"tool": node.tool, "result": result})

        if node.output_variable:
            self._bind(node, context, step_id, node.output_variable, result)
        return result

    async def _execute_set_variable(self, node: SetVariableNode, context: FlowExecutionContext, step_id: str) -> Any:
        value = resolve_value(node.value, context.variables)
        self._bind(node, context, step_id, node.variable, value)
        return value

    async def _execute_return(self, node: Union[ReturnNode, EndNode], context: FlowExecutionContext, step_id: str) -> Any:
        return resolve_value(node.value, context.variables)

    async def _execute_throw(self, node: ThrowNode, context: FlowExecutionContext, step_id: str) -> Any:
        raise FlowThrowError(interpolate(node.message, context.variables))
