"""agentflow-ai.

An SDK for building AI agents: declarative agent configurations paired with an
execution engine that calls language models, invokes registered tools and runs
multi-step *flows*.

High-level architecture
-----------------------

- ``agentflow_ai.flows``: the flow execution engine. A recursive interpreter
  over a tree of nodes (sequence, parallel fan-out/fan-in, conditional
  branching, iteration, LLM and tool calls) that shares one variable map across
  the tree, records an ordered event trace and turns every run into a
  success/failure ``FlowExecutionResult``.
- ``agentflow_ai.agent_core``: what flows are built from. Agent configuration
  schemas, the ``LLMProvider`` abstraction (mock and Pydantic AI providers), the
  tool registry with built-in tools, the error hierarchy, and retry/circuit
  breaker helpers.
- ``agentflow_ai.core``: settings (environment / ``.env``) and logging setup.

Typical workflow
----------------

1. Describe the agent with ``AgentConfig`` and register tools in a ``ToolRegistry``.
2. Build a flow (``FlowBuilder`` or a raw node document).
3. Run it with ``FlowExecutor.execute(flow, FlowExecutionContext(...))`` and
   inspect ``result.output``, ``result.variables`` and ``result.events``.
"""
