"""Mock LLM provider for tests and local development.

``MockLLMProvider`` cycles through a fixed list of canned responses, never
touches the network and records every ``GenerateOptions`` it receives in
``calls`` so tests can assert on what was sent.
"""

from __future__ import annotations

import asyncio
import json
import math
from typing import AsyncIterator, List, Optional, Sequence

from pydantic import Field

from .base import (
    GenerateOptions,
    GenerateResult,
    LLMProvider,
    LLMProviderConfig,
    Message,
    MessageRole,
    StreamChunk,
    StreamChunkType,
    StreamResult,
    TokenUsage,
    ToolCall,
    ToolCallFunction,
)

DEFAULT_MOCK_RESPONSE = "This is a mock response."


class MockProviderConfig(LLMProviderConfig):
    responses: List[str] = Field(default_factory=lambda: [DEFAULT_MOCK_RESPONSE])
    delay: float = Field(default=0.0, description="Artificial latency in seconds before each response/chunk")
    simulate_error: bool = False
    error_message: str = "Mock error"


def _count_tokens(messages: Sequence[Message]) -> int:
    # Roughly one token per four characters.
    return math.ceil(sum(len(message.content or "") for message in messages) / 4)


class MockLLMProvider(LLMProvider):
    name = "mock"

    def __init__(self, config: Optional[MockProviderConfig] = None) -> None:
        config = config or MockProviderConfig(name=self.name)
        self._responses = list(config.responses) or [DEFAULT_MOCK_RESPONSE]
        self._delay = config.delay
        self._simulate_error = config.simulate_error
        self._error_message = config.error_message
        self._response_index = 0
        self.calls: List[GenerateOptions] = []

    async def generate(self, options: GenerateOptions) -> GenerateResult:
        self.calls.append(options)
        if self._simulate_error:
            raise RuntimeError(self._error_message)
        if self._delay > 0:
            await asyncio.sleep(self._delay)

        text = self._next_response()
        tool_calls = self._extract_tool_calls(options)
        prompt_tokens = _count_tokens(options.messages)
        completion_tokens = _count_tokens([Message(role=MessageRole.assistant, content=text)])
        return GenerateResult(
            text=text,
            finish_reason="tool_calls" if tool_calls else "stop",
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            tool_calls=tool_calls or None,
        )

    async def stream(self, options: GenerateOptions) -> StreamResult:
        self.calls.append(options)
        if self._simulate_error:
            raise RuntimeError(self._error_message)

        words = self._next_response().split(" ")
        prompt_tokens = _count_tokens(options.messages)

        async def _chunks() -> AsyncIterator[StreamChunk]:
            for word in words:
                if self._delay > 0:
                    await asyncio.sleep(self._delay)
                yield StreamChunk(type=StreamChunkType.text_delta, text_delta=word + " ")
            yield StreamChunk(
                type=StreamChunkType.finish,
                finish_reason="stop",
                usage=TokenUsage(
                    prompt_tokens=prompt_tokens,
                    completion_tokens=len(words),
                    total_tokens=prompt_tokens + len(words),
                ),
            )

        return StreamResult(_chunks())

    def supports_tools(self, model: str) -> bool:
        return True

    def supports_streaming(self, model: str) -> bool:
        return True

    async def get_models(self) -> List[str]:
        return ["mock-model-1", "mock-model-2"]

    def _next_response(self) -> str:
        response = self._responses[self._response_index % len(self._responses)]
        self._response_index += 1
        return response

    def _extract_tool_calls(self, options: GenerateOptions) -> List[ToolCall]:
        """Simulate a call to the first tool whose name appears in the last user message."""
        if not options.tools or not options.messages:
            return []
        last = options.messages[-1]
        if last.role != MessageRole.user:
            return []
        content = last.content.lower()
        for tool in options.tools:
            if tool.function.name.lower() in content:
                return [
                    ToolCall(
                        id=f"call_{len(self.calls)}",
                        function=ToolCallFunction(
                            name=tool.function.name, arguments=json.dumps({"input": "mock input"})
                        ),
                    )
                ]
        return []


def create_mock_provider(config: Optional[MockProviderConfig] = None) -> MockLLMProvider:
    return MockLLMProvider(config)
