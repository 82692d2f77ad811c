"""Anthropic LLM provider implementation.

Implements the LLMProvider interface for the Claude Messages API using the
official Anthropic SDK.
"""

from typing import Any, Dict, List, Optional
from pydantic import Field

from anthropic import AsyncAnthropic, AnthropicError

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


class AnthropicProviderConfig(LLMProviderConfig):
    """Configuration for Anthropic provider."""
    model: str = Field(default="claude-3-5-sonnet-20241022")
    base_url: Optional[str] = None


class AnthropicProvider(LLMProvider):
    """Anthropic implementation of the LLM provider interface.

    Tool results are sent back as ``tool_result`` blocks inside a user turn.
    Consecutive tool results from one assistant turn are merged into a single
    user message, as the Messages API requires strict role alternation.
    """

    def __init__(self, config: AnthropicProviderConfig):
        """Initialize Anthropic provider.

        Args:
            config: Anthropic-specific configuration

        Raises:
            LLMConfigurationError: If the SDK client cannot be created
        """
        super().__init__(config)

        try:
            self.client = AsyncAnthropic(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=config.timeout,
            )
        except Exception as e:
            raise LLMConfigurationError(f"Failed to initialize Anthropic client: {e}")

        # Claude 2.x and instant models predate tool use.
        self._model_supports_tools = not self.config.model.startswith(("claude-2", "claude-instant"))

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        **kwargs: Any
    ) -> GenerationResponse:
        """Generate a response using Anthropic's Messages API.

        Args:
            messages: Conversation messages
            tools: Optional list of tool definitions for tool use
            **kwargs: ``temperature`` / ``tool_choice`` overrides

        Returns:
            GenerationResponse with the LLM's output

        Raises:
            LLMGenerationError: If generation fails
        """
        try:
            system_message, anthropic_messages = self._to_anthropic_messages(messages)

            request_params: Dict[str, Any] = {
                "model": self.config.model,
                "messages": anthropic_messages,
                "temperature": kwargs.get("temperature", self.config.temperature),
                "max_tokens": self.config.max_tokens or 4096,
            }

            if system_message:
                request_params["system"] = system_message

            if tools and self._model_supports_tools:
                request_params["tools"] = [
                    {
                        "name": tool.name,
                        "description": tool.description,
                        "input_schema": tool.parameters or {"type": "object", "properties": {}},
                    }
                    for tool in tools
                ]
                if kwargs.get("tool_choice"):
                    request_params["tool_choice"] = kwargs["tool_choice"]

            response = await self.client.messages.create(**request_params)

            text_parts = []
            tool_calls_list = []

            for block in response.content:
                if block.type == "text":
                    text_parts.append(block.text)
                elif block.type == "tool_use":
                    tool_calls_list.append(
                        ToolCall(
                            id=block.id,
                            name=block.name,
                            arguments=block.input if isinstance(block.input, dict) else {},
                        )
                    )

            usage_dict = {}
            if response.usage:
                usage_dict = {
                    "prompt_tokens": response.usage.input_tokens,
                    "completion_tokens": response.usage.output_tokens,
                    "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
                }

            return GenerationResponse(
                content="".join(text_parts) if text_parts else None,
                tool_calls=tool_calls_list,
                finish_reason=response.stop_reason,
                usage=usage_dict,
                raw_response=response,
            )

        except AnthropicError as e:
            raise LLMGenerationError(f"Anthropic generation failed: {e}")
        except Exception as e:
            raise LLMGenerationError(f"Unexpected error during generation: {e}")

    @staticmethod
    def _to_anthropic_messages(messages: List[Message]):
        """Split out the system prompt and convert the rest to content blocks."""
        system_parts = []
        converted: List[Dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                if msg.content:
                    system_parts.append(msg.content)
                continue

            if msg.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content or "",
                }
                previous = converted[-1] if converted else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
                continue

            if msg.role == "assistant" and msg.tool_calls:
                content_blocks: List[Dict[str, Any]] = []
                if msg.content:
                    content_blocks.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls:
                    content_blocks.append({
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": tc.arguments,
                    })
                converted.append({"role": "assistant", "content": content_blocks})
                continue

            converted.append({"role": msg.role, "content": msg.content or ""})

        return "\n\n".join(system_parts) or None, converted

    def supports_functions(self) -> bool:
        """Check if the current model supports tool use."""
        return self._model_supports_tools

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model."""
        return {
            "provider": "anthropic",
            "model": self.config.model,
            "supports_functions": self._model_supports_tools,
        }

    @property
    def provider_name(self) -> str:
        return "anthropic"
