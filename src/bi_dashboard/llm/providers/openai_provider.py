"""OpenAI LLM provider implementation.

Implements the LLMProvider interface on top of the official OpenAI SDK
(v1.x) chat completions API, including multi-call tool use.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from pydantic import Field

from openai import AsyncOpenAI, OpenAIError

from .base import (
    LLMProvider,
    LLMProviderConfig,
    LLMConfigurationError,
    LLMGenerationError,
    Message,
    GenerationResponse,
    ToolCall,
    ToolDefinition,
)

logger = logging.getLogger(__name__)


class OpenAIProviderConfig(LLMProviderConfig):
    """Configuration for OpenAI provider."""
    model: str = Field(default="gpt-4o-mini")
    base_url: Optional[str] = None
    organization: Optional[str] = None


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of the LLM provider interface."""

    # Completion-only models; everything else on the chat endpoint takes tools.
    _NO_FUNCTION_MODELS = (
        "gpt-3.5-turbo-instruct",
        "davinci",
        "babbage",
    )

    def __init__(self, config: OpenAIProviderConfig):
        """Initialize OpenAI provider.

        Args:
            config: OpenAI-specific configuration

        Raises:
            LLMConfigurationError: If the SDK client cannot be created
        """
        super().__init__(config)

        try:
            self.client = AsyncOpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                organization=config.organization,
                timeout=config.timeout,
            )
        except Exception as e:
            raise LLMConfigurationError(f"Failed to initialize OpenAI client: {e}")

        self._model_supports_functions = not self.config.model.startswith(self._NO_FUNCTION_MODELS)

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        **kwargs: Any
    ) -> GenerationResponse:
        """Generate a response using OpenAI's chat completions API.

        Args:
            messages: Conversation messages, including assistant tool calls and tool results
            tools: Optional tool definitions; sent with ``tool_choice="auto"``
            **kwargs: ``temperature`` / ``tool_choice`` overrides

        Returns:
            GenerationResponse with text and/or tool calls

        Raises:
            LLMGenerationError: If the API call fails
        """
        try:
            request_params: Dict[str, Any] = {
                "model": self.config.model,
                "messages": [self._to_openai_message(msg) for msg in messages],
                "temperature": kwargs.get("temperature", self.config.temperature),
            }

            if self.config.max_tokens:
                request_params["max_tokens"] = self.config.max_tokens

            if tools and self._model_supports_functions:
                request_params["tools"] = [
                    {
                        "type": "function",
                        "function": {
                            "name": tool.name,
                            "description": tool.description,
                            "parameters": tool.parameters,
                        }
                    }
                    for tool in tools
                ]
                request_params["tool_choice"] = kwargs.get("tool_choice", "auto")

            response = await self.client.chat.completions.create(**request_params)

            choice = response.choices[0]
            message = choice.message

            tool_calls_list = []
            for tc in message.tool_calls or []:
                try:
                    arguments = json.loads(tc.function.arguments or "{}")
                except json.JSONDecodeError:
                    logger.warning(f"Discarding malformed arguments for tool call {tc.id}")
                    arguments = {}
                if not isinstance(arguments, dict):
                    arguments = {}

                tool_calls_list.append(
                    ToolCall(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=arguments,
                    )
                )

            usage_dict = {}
            if response.usage:
                usage_dict = {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }

            return GenerationResponse(
                content=message.content,
                tool_calls=tool_calls_list,
                finish_reason=choice.finish_reason,
                usage=usage_dict,
                raw_response=response,
            )

        except OpenAIError as e:
            raise LLMGenerationError(f"OpenAI generation failed: {e}")
        except Exception as e:
            raise LLMGenerationError(f"Unexpected error during generation: {e}")

    @staticmethod
    def _to_openai_message(msg: Message) -> Dict[str, Any]:
        """Convert a neutral message into the chat completions format."""
        if msg.role == "tool":
            return {
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": msg.content or "",
            }

        if msg.role == "assistant" and msg.tool_calls:
            return {
                "role": "assistant",
                "content": msg.content,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments),
                        },
                    }
                    for tc in msg.tool_calls
                ],
            }

        return {"role": msg.role, "content": msg.content or ""}

    def supports_functions(self) -> bool:
        """Check if the current model supports function calling."""
        return self._model_supports_functions

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model."""
        return {
            "provider": "openai",
            "model": self.config.model,
            "supports_functions": self._model_supports_functions,
        }

    @property
    def provider_name(self) -> str:
        return "openai"
