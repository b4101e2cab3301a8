"""Pydantic AI provider adapter.

This module implements the ``LLMProvider`` interface on top of the Pydantic AI
framework. Each request builds a short-lived ``pydantic_ai.Agent``: system
messages become the agent's system prompt, earlier turns become the message
history and the last user message is the run prompt.

Tool definitions in ``GenerateOptions`` are not forwarded; Pydantic AI tools
are Python callables and flows invoke tools through the tool registry instead.
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from pydantic_ai import Agent
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart

from agentflow_ai.core.logging_config import get_logger

from ...errors import LLMProviderError
from ..base import (
    GenerateOptions,
    GenerateResult,
    LLMProvider,
    LLMProviderConfig,
    MessageRole,
    StreamChunk,
    StreamChunkType,
    StreamResult,
    TokenUsage,
)

logger = get_logger(__name__)


def _to_token_usage(result: Any) -> TokenUsage:
    """Map the usage of a Pydantic AI run onto ``TokenUsage``.

    ``usage`` is a method on some Pydantic AI releases and a property on others.
    """
    usage = getattr(result, "usage", None)
    if callable(usage):
        usage = usage()
    prompt_tokens = getattr(usage, "input_tokens", None) or 0
    completion_tokens = getattr(usage, "output_tokens", None) or 0
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


class PydanticAIProvider(LLMProvider):
    """Adapter for the Pydantic AI framework.

    Attributes:
        _model: Optional Pydantic AI model instance (e.g. ``TestModel``) used instead of ``options.model``.
        _config: Provider configuration.
    """

    name = "pydantic_ai"

    def __init__(self, config: Optional[LLMProviderConfig] = None, *, model: Any = None) -> None:
        self._config = config or LLMProviderConfig(name=self.name)
        self._model = model

    def build_run_inputs(self, options: GenerateOptions) -> Tuple[str, Optional[str], List[ModelMessage]]:
        """Split ``options.messages`` into (prompt, system prompt, message history)."""
        system_parts = [m.content for m in options.messages if m.role == MessageRole.system and m.content]
        turns = [m for m in options.messages if m.role != MessageRole.system]

        prompt = ""
        if turns and turns[-1].role == MessageRole.user:
            prompt = turns[-1].content
            turns = turns[:-1]

        history: List[ModelMessage] = []
        for message in turns:
            if message.role == MessageRole.assistant:
                history.append(ModelResponse(parts=[TextPart(content=message.content)]))
            else:
                history.append(ModelRequest(parts=[UserPromptPart(content=message.content)]))

        system_prompt = "\n\n".join(system_parts) if system_parts else None
        return prompt, system_prompt, history

    def build_model_settings(self, options: GenerateOptions) -> Dict[str, Any]:
        settings: Dict[str, Any] = {}
        if options.temperature is not None:
            settings["temperature"] = options.temperature
        if options.max_tokens is not None:
            settings["max_tokens"] = options.max_tokens
        if options.top_p is not None:
            settings["top_p"] = options.top_p
        if options.seed is not None:
            settings["seed"] = options.seed
        if options.presence_penalty is not None:
            settings["presence_penalty"] = options.presence_penalty
        if options.frequency_penalty is not None:
            settings["frequency_penalty"] = options.frequency_penalty
        if options.stop:
            settings["stop_sequences"] = list(options.stop)
        if self._config.timeout is not None:
            settings["timeout"] = self._config.timeout
        return settings

    def _build_agent(self, options: GenerateOptions, system_prompt: Optional[str]) -> Agent:
        kwargs: Dict[str, Any] = {"model": self._model or options.model or self._config.default_model}
        if system_prompt:
            kwargs["system_prompt"] = system_prompt
        logger.debug(f"Building Pydantic AI agent with kwargs: {list(kwargs.keys())}")
        return Agent(**kwargs)

    def _wrap_error(self, error: Exception) -> LLMProviderError:
        return LLMProviderError(
            f"Pydantic AI request failed: {error}",
            provider_name=self.name,
            status_code=getattr(error, "status_code", None),
            cause=error,
        )

    async def generate(self, options: GenerateOptions) -> GenerateResult:
        prompt, system_prompt, history = self.build_run_inputs(options)
        model_settings = self.build_model_settings(options)
        try:
            agent = self._build_agent(options, system_prompt)
            result = await agent.run(
                prompt,
                message_history=history or None,
                model_settings=model_settings or None,
            )
            usage = _to_token_usage(result)
        except Exception as e:
            logger.error(f"Pydantic AI generate failed for model {options.model}: {e}")
            raise self._wrap_error(e) from e

        output = result.output
        return GenerateResult(
            text=output if isinstance(output, str) else str(output),
            finish_reason="stop",
            usage=usage,
            raw_response=result,
        )

    async def stream(self, options: GenerateOptions) -> StreamResult:
        prompt, system_prompt, history = self.build_run_inputs(options)
        model_settings = self.build_model_settings(options)
        try:
            agent = self._build_agent(options, system_prompt)
        except Exception as e:
            raise self._wrap_error(e) from e

        async def _chunks() -> AsyncIterator[StreamChunk]:
            try:
                async with agent.run_stream(
                    prompt,
                    message_history=history or None,
                    model_settings=model_settings or None,
                ) as response:
                    async for delta in response.stream_text(delta=True):
                        if delta:
                            yield StreamChunk(type=StreamChunkType.text_delta, text_delta=delta)
                    usage = _to_token_usage(response)
            except Exception as e:
                logger.error(f"Pydantic AI streaming failed for model {options.model}: {e}")
                yield StreamChunk(type=StreamChunkType.error, error=self._wrap_error(e))
                return
            yield StreamChunk(type=StreamChunkType.finish, finish_reason="stop", usage=usage)

        return StreamResult(_chunks())

    def supports_tools(self, model: str) -> bool:
        return False

    def supports_streaming(self, model: str) -> bool:
        return True

    async def get_models(self) -> List[str]:
        if isinstance(self._model, str):
            return [self._model]
        if self._config.default_model:
            return [self._config.default_model]
        return []
