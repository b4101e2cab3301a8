"""LLM provider abstraction, registry and built-in providers.

Importing this package registers the built-in providers with
``LLMProviderRegistry``:

- ``mock``: ``MockLLMProvider`` (canned responses, no network)
- ``pydantic_ai``: ``PydanticAIProvider`` (any model Pydantic AI supports)
"""

from .adapters import PydanticAIProvider
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
    ToolDefinition,
    ToolFunctionDefinition,
    ToolResultPayload,
)
from .mock import MockLLMProvider, MockProviderConfig, create_mock_provider
from .registry import LLMProviderRegistry, ProviderFactory


def register_builtin_providers() -> None:
    LLMProviderRegistry.register(
        MockLLMProvider.name, lambda config: MockLLMProvider(MockProviderConfig.model_validate(config.model_dump()))
    )
    LLMProviderRegistry.register(PydanticAIProvider.name, lambda config: PydanticAIProvider(config))


register_builtin_providers()

__all__ = [
    "GenerateOptions",
    "GenerateResult",
    "LLMProvider",
    "LLMProviderConfig",
    "LLMProviderRegistry",
    "Message",
    "MessageRole",
    "MockLLMProvider",
    "MockProviderConfig",
    "ProviderFactory",
    "PydanticAIProvider",
    "StreamChunk",
    "StreamChunkType",
    "StreamResult",
    "TokenUsage",
    "ToolCall",
    "ToolCallFunction",
    "ToolDefinition",
    "ToolFunctionDefinition",
    "ToolResultPayload",
    "create_mock_provider",
    "register_builtin_providers",
]
