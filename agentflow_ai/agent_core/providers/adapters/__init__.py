"""Framework adapters implementing ``LLMProvider``."""

from .pydantic_ai import PydanticAIProvider

__all__ = ["PydanticAIProvider"]
