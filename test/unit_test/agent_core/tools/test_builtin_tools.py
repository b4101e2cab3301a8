from __future__ import annotations

import json
import re

import httpx
import pytest

from agentflow_ai.agent_core.errors import ToolExecutionError
from agentflow_ai.agent_core.tools import (
    BUILTIN_TOOLS,
    HttpToolOptions,
    ToolInvocationContext,
    ToolRegistry,
    create_http_tool,
    current_date_tool,
    day_name_tool,
    register_builtin_tools,
)


def _context(name: str) -> ToolInvocationContext:
    return ToolInvocationContext(tool_name=name)


def test_register_builtin_tools():
    registry = register_builtin_tools(ToolRegistry())

    assert sorted(registry.list()) == ["currentDate", "dayName", "http"]
    assert set(BUILTIN_TOOLS) == {"currentDate", "dayName", "http"}


class TestCurrentDate:
    @pytest.mark.asyncio
    async def test_iso_utc_with_milliseconds(self):
        value = await current_date_tool.tool.execute({}, _context("currentDate"))

        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", value)


class TestDayName:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "date,expected",
        [
            ("2024-01-15", "Monday"),
            ("2024-02-29", "Thursday"),
            ("2024-06-09T10:00:00Z", "Sunday"),
        ],
    )
    async def test_day_names(self, date, expected):
        assert await day_name_tool.tool.execute({"date": date}, _context("dayName")) == expected

    @pytest.mark.asyncio
    async def test_invalid_date(self):
        with pytest.raises(ToolExecutionError, match="Invalid date: someday"):
            await day_name_tool.tool.execute({"date": "someday"}, _context("dayName"))


class TestHttpTool:
    @pytest.mark.asyncio
    async def test_json_response_is_serialized(self):
        seen = {}

        def _handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = request.content
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"ok": True})

        tool = create_http_tool(transport=httpx.MockTransport(_handler))

        result = await tool.tool.execute(
            {"url": "http://mock/api", "method": "POST", "headers": {"Authorization": "Bearer t"}, "body": '{"a": 1}'},
            _context("http"),
        )

        assert json.loads(result) == {"ok": True}
        assert seen == {"method": "POST", "body": b'{"a": 1}', "auth": "Bearer t"}

    @pytest.mark.asyncio
    async def test_get_ignores_body_and_returns_text(self):
        def _handler(request: httpx.Request) -> httpx.Response:
            assert request.content == b""
            return httpx.Response(200, text="plain body")

        tool = create_http_tool(transport=httpx.MockTransport(_handler))

        result = await tool.tool.execute({"url": "http://mock/text", "method": "GET", "body": "x"}, _context("http"))

        assert result == "plain body"

    @pytest.mark.asyncio
    async def test_error_status(self):
        tool = create_http_tool(transport=httpx.MockTransport(lambda request: httpx.Response(404)))

        with pytest.raises(ToolExecutionError, match="HTTP request failed: HTTP 404: Not Found"):
            await tool.tool.execute({"url": "http://mock/missing", "method": "GET"}, _context("http"))

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def _handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        tool = create_http_tool(HttpToolOptions(timeout=1.0), transport=httpx.MockTransport(_handler))

        with pytest.raises(ToolExecutionError, match="HTTP request failed: connection refused") as exc_info:
            await tool.tool.execute({"url": "http://mock/down", "method": "DELETE"}, _context("http"))

        assert exc_info.value.tool_name == "http_request"

    @pytest.mark.asyncio
    async def test_invalid_method_rejected(self):
        tool = create_http_tool(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

        with pytest.raises(ValueError):
            await tool.tool.execute({"url": "http://mock/", "method": "TRACE"}, _context("http"))
