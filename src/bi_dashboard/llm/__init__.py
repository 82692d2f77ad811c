"""LLM provider abstraction layer.

One interface over the chat model vendors used by the data assistant, with
runtime provider selection from settings.

Usage:
    from bi_dashboard.llm import create_provider, Message

    provider = create_provider("openai", api_key="sk-...")
    response = await provider.generate([Message(role="user", content="Hello!")])
    print(response.content)
"""

from .factory import (
    create_provider,
    create_provider_from_settings,
    ProviderType,
)
from .providers import (
    LLMProvider,
    LLMProviderConfig,
    LLMProviderError,
    LLMConfigurationError,
    LLMGenerationError,
    Message,
    GenerationResponse,
    ToolCall,
    ToolDefinition,
    OpenAIProvider,
    OpenAIProviderConfig,
    AnthropicProvider,
    AnthropicProviderConfig,
)

__all__ = [
    "create_provider",
    "create_provider_from_settings",
    "ProviderType",
    "LLMProvider",
    "LLMProviderConfig",
    "LLMProviderError",
    "LLMConfigurationError",
    "LLMGenerationError",
    "Message",
    "GenerationResponse",
    "ToolCall",
    "ToolDefinition",
    "OpenAIProvider",
    "OpenAIProviderConfig",
    "AnthropicProvider",
    "AnthropicProviderConfig",
]
