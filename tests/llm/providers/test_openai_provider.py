"""Tests for OpenAI provider implementation."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from bi_dashboard.llm.providers import (
    OpenAIProvider,
    OpenAIProviderConfig,
    LLMConfigurationError,
    LLMGenerationError,
    Message,
    ToolCall,
    ToolDefinition,
)

LIST_TABLES = ToolDefinition(
    name="listTables",
    description="List all tables",
    parameters={"type": "object", "properties": {}, "required": []},
)


@pytest.fixture
def openai_config():
    """Create a valid OpenAI config for testing."""
    return OpenAIProviderConfig(
        api_key="sk-test-key-123",
        model="gpt-4o-mini",
        temperature=0.2,
    )


def make_completion(content=None, tool_calls=None, finish_reason="stop", usage=None):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].message.tool_calls = tool_calls
    response.choices[0].finish_reason = finish_reason
    response.usage = usage
    return response


def make_tool_call(call_id, name, arguments):
    tool_call = MagicMock()
    tool_call.id = call_id
    tool_call.function.name = name
    tool_call.function.arguments = arguments
    return tool_call


@pytest.fixture
def mock_openai_class():
    with patch('bi_dashboard.llm.providers.openai_provider.AsyncOpenAI') as mock_class:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock()
        mock_class.return_value = mock_client
        yield mock_class


def create_mock(mock_openai_class):
    return mock_openai_class.return_value.chat.completions.create


class TestOpenAIProviderConfig:
    """Tests for OpenAI provider configuration."""

    def test_config_with_defaults(self):
        """Test config with default values."""
        config = OpenAIProviderConfig(api_key="sk-test")
        assert config.model == "gpt-4o-mini"
        assert config.temperature == 0.2
        assert config.base_url is None
        assert config.organization is None

    def test_empty_api_key_rejected(self):
        with pytest.raises(ValueError):
            OpenAIProviderConfig(api_key="   ")


class TestOpenAIProviderInitialization:
    """Tests for OpenAI provider initialization."""

    def test_provider_initialization(self, mock_openai_class, openai_config):
        """Test successful provider initialization."""
        provider = OpenAIProvider(openai_config)

        assert provider.config == openai_config
        assert provider.provider_name == "openai"
        mock_openai_class.assert_called_once_with(
            api_key="sk-test-key-123", base_url=None, organization=None, timeout=60.0
        )

    @patch('bi_dashboard.llm.providers.openai_provider.AsyncOpenAI')
    def test_provider_initialization_failure(self, mock_openai_class):
        """Test provider initialization failure."""
        mock_openai_class.side_effect = Exception("Connection failed")

        with pytest.raises(LLMConfigurationError) as exc_info:
            OpenAIProvider(OpenAIProviderConfig(api_key="sk-test"))

        assert "Failed to initialize OpenAI client" in str(exc_info.value)


class TestOpenAIProviderGeneration:
    """Tests for OpenAI provider generation."""

    @pytest.mark.asyncio
    async def test_generate_simple_message(self, mock_openai_class, openai_config):
        """Test generating a simple text response."""
        usage = MagicMock(prompt_tokens=10, completion_tokens=7, total_tokens=17)
        create_mock(mock_openai_class).return_value = make_completion("Hello!", usage=usage)

        provider = OpenAIProvider(openai_config)
        response = await provider.generate([Message(role="user", content="Hi there")])

        assert response.content == "Hello!"
        assert response.finish_reason == "stop"
        assert response.usage == {"prompt_tokens": 10, "completion_tokens": 7, "total_tokens": 17}
        assert not response.has_tool_calls()

        call_kwargs = create_mock(mock_openai_class).call_args.kwargs
        assert "tools" not in call_kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_generate_with_tool_calls(self, mock_openai_class, openai_config):
        """Test generating a response with tool calls."""
        create_mock(mock_openai_class).return_value = make_completion(
            tool_calls=[
                make_tool_call("call_1", "describeTable", '{"table_name": "sales"}'),
                make_tool_call("call_2", "listTables", ""),
            ],
            finish_reason="tool_calls",
        )

        provider = OpenAIProvider(openai_config)
        response = await provider.generate([Message(role="user", content="Describe sales")], tools=[LIST_TABLES])

        assert [tc.name for tc in response.tool_calls] == ["describeTable", "listTables"]
        assert response.tool_calls[0].arguments == {"table_name": "sales"}
        assert response.tool_calls[1].arguments == {}

        call_kwargs = create_mock(mock_openai_class).call_args.kwargs
        assert call_kwargs["tool_choice"] == "auto"
        assert call_kwargs["tools"][0] == {
            "type": "function",
            "function": {
                "name": "listTables",
                "description": "List all tables",
                "parameters": {"type": "object", "properties": {}, "required": []},
            },
        }

    @pytest.mark.asyncio
    async def test_malformed_arguments_replaced(self, mock_openai_class, openai_config):
        create_mock(mock_openai_class).return_value = make_completion(
            tool_calls=[make_tool_call("call_1", "executeQuery", '{"sql": "SELECT')],
            finish_reason="tool_calls",
        )

        response = await OpenAIProvider(openai_config).generate([Message(role="user", content="q")])

        assert response.tool_calls[0].arguments == {}

    @pytest.mark.asyncio
    async def test_tool_round_serialized(self, mock_openai_class, openai_config):
        create_mock(mock_openai_class).return_value = make_completion("done")
        messages = [
            Message(role="system", content="sys"),
            Message(role="user", content="q"),
            Message(
                role="assistant",
                content=None,
                tool_calls=[ToolCall(id="call_1", name="executeQuery", arguments={"sql": "SELECT 1"})],
            ),
            Message(role="tool", content='{"rowCount": 1}', tool_call_id="call_1", name="executeQuery"),
        ]

        await OpenAIProvider(openai_config).generate(messages)

        sent = create_mock(mock_openai_class).call_args.kwargs["messages"]
        assert sent[0] == {"role": "system", "content": "sys"}
        assert sent[2]["tool_calls"][0]["id"] == "call_1"
        assert json.loads(sent[2]["tool_calls"][0]["function"]["arguments"]) == {"sql": "SELECT 1"}
        assert sent[3] == {"role": "tool", "tool_call_id": "call_1", "content": '{"rowCount": 1}'}

    @pytest.mark.asyncio
    async def test_generate_api_error(self, mock_openai_class, openai_config):
        """Test handling of OpenAI API errors."""
        from openai import OpenAIError

        create_mock(mock_openai_class).side_effect = OpenAIError("API error")

        with pytest.raises(LLMGenerationError) as exc_info:
            await OpenAIProvider(openai_config).generate([Message(role="user", content="Test")])

        assert "OpenAI generation failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_generate_with_temperature_override(self, mock_openai_class, openai_config):
        """Test generating with temperature override."""
        create_mock(mock_openai_class).return_value = make_completion("Response")

        await OpenAIProvider(openai_config).generate([Message(role="user", content="Test")], temperature=0.7)

        assert create_mock(mock_openai_class).call_args.kwargs["temperature"] == 0.7


class TestOpenAIProviderCapabilities:
    """Tests for OpenAI provider capability checks."""

    @pytest.mark.parametrize("model", ["gpt-4o", "gpt-4o-mini", "gpt-4.1", "gpt-3.5-turbo"])
    def test_chat_models_support_functions(self, mock_openai_class, model):
        provider = OpenAIProvider(OpenAIProviderConfig(api_key="sk-test", model=model))
        assert provider.supports_functions()

    @pytest.mark.asyncio
    async def test_completion_model_gets_no_tools(self, mock_openai_class):
        create_mock(mock_openai_class).return_value = make_completion("text")
        provider = OpenAIProvider(OpenAIProviderConfig(api_key="sk-test", model="gpt-3.5-turbo-instruct"))

        await provider.generate([Message(role="user", content="q")], tools=[LIST_TABLES])

        assert not provider.supports_functions()
        assert "tools" not in create_mock(mock_openai_class).call_args.kwargs

    def test_get_model_info(self, mock_openai_class):
        provider = OpenAIProvider(OpenAIProviderConfig(api_key="sk-test", model="gpt-4o"))

        assert provider.get_model_info() == {
            "provider": "openai",
            "model": "gpt-4o",
            "supports_functions": True,
        }
