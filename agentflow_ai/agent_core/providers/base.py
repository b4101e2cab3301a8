"""LLM provider abstraction.

This module defines the provider-agnostic request/response models and the
``LLMProvider`` interface the flow executor and agents talk to. Concrete
providers (the mock provider, the pydantic-ai adapter) translate these models
to and from their backend.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from ..schemas.base import BaseSchema


class MessageRole(str, Enum):
    system = "system"
    user = "user"
    assistant = "assistant"
    tool = "tool"


class ToolCallFunction(BaseSchema):
    name: str
    arguments: str = "{}"


class ToolCall(BaseSchema):
    """A function call requested by the model; ``function.arguments`` is a JSON string."""

    id: str
    type: Literal["function"] = "function"
    function: ToolCallFunction


class Message(BaseSchema):
    role: MessageRole
    content: str = ""
    name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None


class ToolFunctionDefinition(BaseSchema):
    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ToolDefinition(BaseSchema):
    type: Literal["function"] = "function"
    function: ToolFunctionDefinition


class GenerateOptions(BaseSchema):
    """Parameters of a single completion request."""

    model: str
    messages: List[Message]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, ge=1)
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop: Optional[List[str]] = None
    tools: Optional[List[ToolDefinition]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    seed: Optional[int] = None


class TokenUsage(BaseSchema):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GenerateResult(BaseSchema):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", arbitrary_types_allowed=True)

    text: str
    finish_reason: str = "stop"
    usage: TokenUsage = Field(default_factory=TokenUsage)
    tool_calls: Optional[List[ToolCall]] = None
    raw_response: Any = None


class StreamChunkType(str, Enum):
    text_delta = "text-delta"
    tool_call = "tool-call"
    tool_result = "tool-result"
    finish = "finish"
    error = "error"


class ToolResultPayload(BaseSchema):
    tool_call_id: str
    result: Any = None


class StreamChunk(BaseSchema):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", arbitrary_types_allowed=True)

    type: StreamChunkType
    text_delta: Optional[str] = None
    tool_call: Optional[ToolCall] = None
    tool_result: Optional[ToolResultPayload] = None
    finish_reason: Optional[str] = None
    usage: Optional[TokenUsage] = None
    error: Optional[BaseException] = None


class StreamResult:
    """Buffered view over a stream of ``StreamChunk`` objects.

    The underlying chunk iterator is consumed at most once; chunks are buffered
    so ``full_stream()``, ``text_stream()`` and the aggregate accessors
    (``text()``, ``usage()``, ``finish_reason()``, ``tool_calls()``) can all be
    used on the same result, in any order.
    """

    def __init__(self, chunks: AsyncIterator[StreamChunk]) -> None:
        self._source = chunks
        self._buffer: List[StreamChunk] = []
        self._exhausted = False
        self._lock = asyncio.Lock()

    async def _chunk_at(self, index: int) -> Optional[StreamChunk]:
        async with self._lock:
            while index >= len(self._buffer):
                if self._exhausted:
                    return None
                try:
                    self._buffer.append(await self._source.__anext__())
                except StopAsyncIteration:
                    self._exhausted = True
            return self._buffer[index]

    async def full_stream(self) -> AsyncIterator[StreamChunk]:
        index = 0
        while True:
            chunk = await self._chunk_at(index)
            if chunk is None:
                return
            yield chunk
            index += 1

    async def text_stream(self) -> AsyncIterator[str]:
        async for chunk in self.full_stream():
            if chunk.type == StreamChunkType.text_delta and chunk.text_delta:
                yield chunk.text_delta

    async def collect(self) -> List[StreamChunk]:
        """Drain the stream and return every chunk."""
        return [chunk async for chunk in self.full_stream()]

    async def text(self) -> str:
        return "".join([delta async for delta in self.text_stream()])

    async def usage(self) -> TokenUsage:
        for chunk in reversed(await self.collect()):
            if chunk.usage is not None:
                return chunk.usage
        return TokenUsage()

    async def finish_reason(self) -> str:
        for chunk in reversed(await self.collect()):
            if chunk.type == StreamChunkType.error:
                return "error"
            if chunk.type == StreamChunkType.finish and chunk.finish_reason:
                return chunk.finish_reason
        return "stop"

    async def tool_calls(self) -> List[ToolCall]:
        return [
            chunk.tool_call
            for chunk in await self.collect()
            if chunk.type == StreamChunkType.tool_call and chunk.tool_call is not None
        ]


class LLMProviderConfig(BaseSchema):
    """Construction options shared by providers; unknown keys are kept for provider-specific use."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    default_model: Optional[str] = None
    timeout: Optional[float] = Field(default=None, description="Request timeout in seconds")
    max_retries: Optional[int] = None
    headers: Dict[str, str] = Field(default_factory=dict)


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Subclasses must implement:
    - generate(): one-shot completion
    - stream(): streaming completion
    - supports_tools() / supports_streaming(): capability queries per model
    - get_models(): list of model identifiers the provider can serve
    """

    name: str = "base"

    @abstractmethod
    async def generate(self, options: GenerateOptions) -> GenerateResult:
        """Run a completion and return the full result."""

    @abstractmethod
    async def stream(self, options: GenerateOptions) -> StreamResult:
        """Run a completion and return a stream of chunks."""

    @abstractmethod
    def supports_tools(self, model: str) -> bool:
        """Whether ``model`` accepts tool definitions."""

    @abstractmethod
    def supports_streaming(self, model: str) -> bool:
        """Whether ``model`` can stream."""

    @abstractmethod
    async def get_models(self) -> List[str]:
        """Model identifiers available from this provider."""
