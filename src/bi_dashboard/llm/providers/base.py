"""Abstract base class for LLM providers.

This module defines the interface every chat model backend implements so the
tool-calling loop can talk to OpenAI or Anthropic through one message format,
including tool-call requests and tool results keyed by call id.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""
    pass


class LLMConfigurationError(LLMProviderError):
    """Raised when provider is misconfigured (e.g., missing API keys)."""
    pass


class LLMGenerationError(LLMProviderError):
    """Raised when generation fails (e.g., network, auth or quota errors)."""
    pass


class ToolCall(BaseModel):
    """A tool/function call request issued by the model."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """Provider-neutral chat message."""
    role: str
    content: Optional[str] = None
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Validate role is one of the allowed values."""
        allowed_roles = {"system", "user", "assistant", "tool"}
        if v not in allowed_roles:
            raise ValueError(f"Role must be one of {allowed_roles}, got: {v}")
        return v


class GenerationResponse(BaseModel):
    """Standardized response from LLM generation."""
    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = Field(default_factory=dict)
    raw_response: Optional[Any] = None

    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return len(self.tool_calls) > 0


class ToolDefinition(BaseModel):
    """Definition of a tool advertised to the model."""
    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('parameters')
    @classmethod
    def validate_parameters(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Validate parameters look like a JSON object schema."""
        if not isinstance(v, dict):
            raise ValueError("Parameters must be a dictionary")
        if v and v.get("type") != "object":
            raise ValueError("Parameters schema must have type 'object'")
        return v


class LLMProviderConfig(BaseModel):
    """Base configuration for LLM providers."""
    api_key: str
    model: str
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    timeout: float = Field(default=60.0, gt=0)

    @field_validator('api_key')
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate API key is not empty."""
        if not v or not v.strip():
            raise ValueError("API key cannot be empty")
        return v.strip()


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Concrete providers translate the neutral ``Message`` list into the vendor
    wire format and normalize the reply into a ``GenerationResponse``.
    """

    def __init__(self, config: LLMProviderConfig):
        """Initialize the provider with configuration.

        Args:
            config: Provider-specific configuration

        Raises:
            LLMConfigurationError: If configuration is invalid
        """
        self.config = config

    @abstractmethod
    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        **kwargs: Any
    ) -> GenerationResponse:
        """Generate a response from the LLM.

        Args:
            messages: List of conversation messages
            tools: Optional list of tool definitions for function calling
            **kwargs: Additional provider-specific parameters

        Returns:
            GenerationResponse with the LLM's output

        Raises:
            LLMGenerationError: If generation fails
        """
        pass

    @abstractmethod
    def supports_functions(self) -> bool:
        """Check if the configured model supports tool calling."""
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the name of the provider (e.g., "openai", "anthropic")."""
        pass
