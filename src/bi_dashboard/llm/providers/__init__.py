"""LLM providers package.

Concrete implementations of the LLMProvider interface (OpenAI, Anthropic).
"""

from .base import (
    LLMProvider,
    LLMProviderConfig,
    LLMProviderError,
    LLMConfigurationError,
    LLMGenerationError,
    Message,
    GenerationResponse,
    ToolCall,
    ToolDefinition,
)
from .openai_provider import OpenAIProvider, OpenAIProviderConfig
from .anthropic_provider import AnthropicProvider, AnthropicProviderConfig

__all__ = [
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
