from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

import httpx
import pytest

# Load dotenv files early so settings and fixtures can read them via os.getenv
try:  # pragma: no cover
    from dotenv import load_dotenv

    TEST_ROOT = Path(__file__).resolve().parent
    load_dotenv(TEST_ROOT / ".env", override=False)
    load_dotenv(TEST_ROOT / ".env.example", override=False)
except Exception:
    pass

from agentflow_ai.agent_core.providers.base import LLMProvider
from agentflow_ai.agent_core.providers.mock import MockLLMProvider, MockProviderConfig
from agentflow_ai.agent_core.schemas.agent import AgentConfig
from agentflow_ai.agent_core.tools.definitions import ToolDescriptor, ToolInvocationContext, ToolSpec
from agentflow_ai.agent_core.tools.registry import ToolRegistry
from agentflow_ai.flows.executor import FlowExecutionContext


async def _echo_tool(args: Dict[str, Any], context: ToolInvocationContext) -> Dict[str, Any]:
    return {"success": True, "input": args}


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(
        id="agent-1",
        name="Test Agent",
        prompt="You are a test assistant.",
        settings={"model": "mock-model-1"},
    )


@pytest.fixture
def mock_provider() -> MockLLMProvider:
    return MockLLMProvider(MockProviderConfig(responses=["Hello from LLM", "Another response"]))


@pytest.fixture
def tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        "testTool",
        ToolDescriptor(display_name="Test Tool", tool=ToolSpec(description="Echo the arguments", handler=_echo_tool)),
    )
    return registry


@pytest.fixture
def make_context(
    agent_config: AgentConfig, mock_provider: MockLLMProvider, tool_registry: ToolRegistry
) -> Callable[..., FlowExecutionContext]:
    """Factory building a fresh execution context; keyword arguments override the defaults."""

    def _make(
        variables: Optional[Dict[str, Any]] = None,
        provider: Optional[LLMProvider] = None,
        **overrides: Any,
    ) -> FlowExecutionContext:
        fields: Dict[str, Any] = {
            "agent": agent_config,
            "variables": dict(variables or {}),
            "provider": provider or mock_provider,
            "tool_registry": tool_registry,
        }
        fields.update(overrides)
        return FlowExecutionContext(**fields)

    return _make


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
