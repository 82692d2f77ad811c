"""Tests for Anthropic provider implementation."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from bi_dashboard.llm.providers import (
    AnthropicProvider,
    AnthropicProviderConfig,
    LLMConfigurationError,
    LLMGenerationError,
    Message,
    ToolCall,
    ToolDefinition,
)


@pytest.fixture
def anthropic_config():
    """Create a valid Anthropic config for testing."""
    return AnthropicProviderConfig(
        api_key="sk-ant-test-key-123",
        model="claude-3-5-sonnet-20241022",
        max_tokens=2048,
    )


@pytest.fixture
def mock_anthropic_class():
    with patch('bi_dashboard.llm.providers.anthropic_provider.AsyncAnthropic') as mock_class:
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock()
        mock_class.return_value = mock_client
        yield mock_class


def create_mock(mock_anthropic_class):
    return mock_anthropic_class.return_value.messages.create


def text_block(text):
    return MagicMock(type="text", text=text)


def tool_use_block(block_id, name, arguments):
    block = MagicMock(type="tool_use", id=block_id, input=arguments)
    block.name = name
    return block


def make_message(*blocks, stop_reason="end_turn"):
    response = MagicMock()
    response.content = list(blocks)
    response.stop_reason = stop_reason
    response.usage = MagicMock(input_tokens=12, output_tokens=5)
    return response


class TestAnthropicProviderConfig:
    """Tests for Anthropic provider configuration."""

    def test_config_with_defaults(self):
        config = AnthropicProviderConfig(api_key="sk-ant-test")
        assert config.model == "claude-3-5-sonnet-20241022"
        assert config.base_url is None


class TestAnthropicProviderInitialization:
    """Tests for Anthropic provider initialization."""

    def test_provider_initialization(self, mock_anthropic_class, anthropic_config):
        provider = AnthropicProvider(anthropic_config)

        assert provider.config == anthropic_config
        assert provider.provider_name == "anthropic"
        mock_anthropic_class.assert_called_once()

    @patch('bi_dashboard.llm.providers.anthropic_provider.AsyncAnthropic')
    def test_provider_initialization_failure(self, mock_class):
        mock_class.side_effect = Exception("Connection failed")

        with pytest.raises(LLMConfigurationError) as exc_info:
            AnthropicProvider(AnthropicProviderConfig(api_key="sk-ant-test"))

        assert "Failed to initialize Anthropic client" in str(exc_info.value)


class TestAnthropicProviderGeneration:
    """Tests for Anthropic provider generation."""

    @pytest.mark.asyncio
    async def test_generate_text(self, mock_anthropic_class, anthropic_config):
        create_mock(mock_anthropic_class).return_value = make_message(
            text_block("Total sales "), text_block("were 1,000.")
        )

        provider = AnthropicProvider(anthropic_config)
        response = await provider.generate([
            Message(role="system", content="You are an analyst."),
            Message(role="user", content="Sales?"),
        ])

        assert response.content == "Total sales were 1,000."
        assert response.usage == {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17}
        call_kwargs = create_mock(mock_anthropic_class).call_args.kwargs
        assert call_kwargs["system"] == "You are an analyst."
        assert call_kwargs["messages"] == [{"role": "user", "content": "Sales?"}]
        assert call_kwargs["max_tokens"] == 2048

    @pytest.mark.asyncio
    async def test_generate_tool_use(self, mock_anthropic_class, anthropic_config):
        create_mock(mock_anthropic_class).return_value = make_message(
            text_block("Let me look."),
            tool_use_block("toolu_1", "describeTable", {"table_name": "sales"}),
            stop_reason="tool_use",
        )
        tools = [ToolDefinition(name="listTables", description="List tables")]

        response = await AnthropicProvider(anthropic_config).generate(
            [Message(role="user", content="q")], tools=tools
        )

        assert response.content == "Let me look."
        assert response.tool_calls == [
            ToolCall(id="toolu_1", name="describeTable", arguments={"table_name": "sales"})
        ]
        sent_tools = create_mock(mock_anthropic_class).call_args.kwargs["tools"]
        assert sent_tools == [{
            "name": "listTables",
            "description": "List tables",
            "input_schema": {"type": "object", "properties": {}},
        }]

    @pytest.mark.asyncio
    async def test_tool_results_merged_into_one_user_turn(self, mock_anthropic_class, anthropic_config):
        create_mock(mock_anthropic_class).return_value = make_message(text_block("done"))
        messages = [
            Message(role="user", content="q"),
            Message(role="assistant", content=None, tool_calls=[
                ToolCall(id="a", name="listTables"),
                ToolCall(id="b", name="describeTable", arguments={"table_name": "sales"}),
            ]),
            Message(role="tool", content='{"tables": []}', tool_call_id="a"),
            Message(role="tool", content='{"columns": []}', tool_call_id="b"),
        ]

        await AnthropicProvider(anthropic_config).generate(messages)

        sent = create_mock(mock_anthropic_class).call_args.kwargs["messages"]
        assert [m["role"] for m in sent] == ["user", "assistant", "user"]
        assert [b["type"] for b in sent[1]["content"]] == ["tool_use", "tool_use"]
        assert [b["tool_use_id"] for b in sent[2]["content"]] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_generate_api_error(self, mock_anthropic_class, anthropic_config):
        from anthropic import AnthropicError

        create_mock(mock_anthropic_class).side_effect = AnthropicError("overloaded")

        with pytest.raises(LLMGenerationError) as exc_info:
            await AnthropicProvider(anthropic_config).generate([Message(role="user", content="q")])

        assert "Anthropic generation failed" in str(exc_info.value)


class TestAnthropicProviderCapabilities:
    """Tests for capability checks."""

    def test_claude_3_supports_tools(self, mock_anthropic_class, anthropic_config):
        assert AnthropicProvider(anthropic_config).supports_functions()

    def test_claude_2_has_no_tools(self, mock_anthropic_class):
        provider = AnthropicProvider(AnthropicProviderConfig(api_key="k", model="claude-2.1"))
        assert not provider.supports_functions()
        assert provider.get_model_info()["supports_functions"] is False
