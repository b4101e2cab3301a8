"""LLM provider registry.

The registry maps a provider name (case-insensitive) to a factory that builds
an ``LLMProvider`` from an ``LLMProviderConfig``. It is process-wide: the
factory map lives on the class, so providers registered at import time are
visible everywhere.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from agentflow_ai.core.logging_config import get_logger

from ..errors import ConfigurationError
from .base import LLMProvider, LLMProviderConfig

logger = get_logger(__name__)

ProviderFactory = Callable[[LLMProviderConfig], LLMProvider]


class LLMProviderRegistry:
    """
    Class-level mapping of provider names to provider factories.

    Notes:
        - Names are normalized to lower case.
        - ``register`` overwrites any existing factory for the name.
        - ``create`` raises ``ConfigurationError`` listing the available providers when the name is unknown.
    """

    _providers: Dict[str, ProviderFactory] = {}

    @classmethod
    def register(cls, name: str, factory: ProviderFactory) -> None:
        key = name.lower()
        if key in cls._providers:
            logger.debug("Replacing LLM provider factory '%s'", key)
        cls._providers[key] = factory

    @classmethod
    def create(cls, name: str, config: Optional[LLMProviderConfig] = None) -> LLMProvider:
        """
        Build a provider instance.

        Args:
            name: Registered provider name.
            config: Provider configuration; defaults to an empty config named ``name``.

        Returns:
            A new provider instance.

        Raises:
            ConfigurationError: If no factory is registered under ``name``.
        """
        factory = cls._providers.get(name.lower())
        if factory is None:
            available = ", ".join(cls._providers.keys())
            raise ConfigurationError(f"Provider '{name}' not found. Available: {available}", field="provider")
        return factory(config or LLMProviderConfig(name=name))

    @classmethod
    def has(cls, name: str) -> bool:
        return name.lower() in cls._providers

    @classmethod
    def get_provider_names(cls) -> List[str]:
        return list(cls._providers.keys())

    @classmethod
    def clear(cls) -> None:
        """Remove every registered factory (mainly for tests)."""
        cls._providers.clear()
