"""Factory for instantiating LLM providers based on configuration."""

from typing import TYPE_CHECKING, Literal, Optional

from .providers import (
    LLMProvider,
    LLMConfigurationError,
    OpenAIProvider,
    OpenAIProviderConfig,
    AnthropicProvider,
    AnthropicProviderConfig,
)

if TYPE_CHECKING:
    from ..config.settings import Settings


ProviderType = Literal["openai", "anthropic"]


def create_provider(
    provider_type: ProviderType,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout: Optional[float] = None,
    **kwargs,
) -> LLMProvider:
    """Create an LLM provider instance based on provider type.

    Args:
        provider_type: Type of provider to create ("openai" or "anthropic")
        api_key: API key for the provider
        model: Model name to use (defaults to provider's default)
        temperature: Sampling temperature
        max_tokens: Maximum tokens to generate
        timeout: Request timeout in seconds
        **kwargs: Additional provider-specific configuration (base_url, organization)

    Returns:
        Configured LLM provider instance

    Raises:
        LLMConfigurationError: If provider type is invalid or the key is missing

    Examples:
        >>> provider = create_provider("openai", api_key="sk-...")
        >>> provider = create_provider("anthropic", api_key="sk-ant-...")
    """
    provider_type_lower = provider_type.lower()

    if not api_key:
        raise LLMConfigurationError(
            f"API key not provided for provider '{provider_type}'. "
            "Set OPENAI_API_KEY or ANTHROPIC_API_KEY."
        )

    config_params = {"api_key": api_key}
    if model:
        config_params["model"] = model
    if temperature is not None:
        config_params["temperature"] = temperature
    if max_tokens is not None:
        config_params["max_tokens"] = max_tokens
    if timeout is not None:
        config_params["timeout"] = timeout

    if provider_type_lower == "openai":
        for key in ("base_url", "organization"):
            if kwargs.get(key):
                config_params[key] = kwargs[key]
        return OpenAIProvider(OpenAIProviderConfig(**config_params))
    elif provider_type_lower == "anthropic":
        if kwargs.get("base_url"):
            config_params["base_url"] = kwargs["base_url"]
        return AnthropicProvider(AnthropicProviderConfig(**config_params))
    else:
        raise LLMConfigurationError(
            f"Unknown provider type: {provider_type}. "
            f"Supported providers: openai, anthropic"
        )


def create_provider_from_settings(settings: "Settings") -> LLMProvider:
    """Create the chat model provider selected in application settings.

    Args:
        settings: Loaded application settings

    Returns:
        Configured LLM provider instance

    Raises:
        LLMConfigurationError: If the selected provider has no API key
    """
    if settings.llm_provider == "anthropic":
        api_key = settings.anthropic_api_key
    else:
        api_key = settings.openai_api_key

    return create_provider(
        provider_type=settings.llm_provider,
        api_key=api_key,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout,
        base_url=settings.llm_base_url,
    )
