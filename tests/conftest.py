"""Shared test fixtures."""
from typing import Callable

import pytest
from unittest.mock import AsyncMock, MagicMock

from bi_dashboard.config.settings import Settings
from bi_dashboard.core.warehouse import ClickHouseClient
from bi_dashboard.llm.providers.base import LLMProvider

ENV_VARS = (
    "CLICKHOUSE_HOST", "CLICKHOUSE_PORT", "CLICKHOUSE_SECURE", "CLICKHOUSE_USER",
    "CLICKHOUSE_PASSWORD", "CLICKHOUSE_DB", "CLICKHOUSE_READONLY",
    "LLM_PROVIDER", "LLM_MODEL", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
    "SERPER_API_KEY", "SERPAPI_API_KEY", "ENABLE_WEB_SEARCH",
    "CHAT_MAX_ITERATIONS", "MAX_QUERY_RETRIES", "QUERY_ROW_LIMIT",
    "PROMPT_INCLUDE_SCHEMA", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def factory(**overrides) -> Settings:
        values = {
            "clickhouse_host": "clickhouse",
            "openai_api_key": "sk-test",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return factory


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def mock_warehouse():
    """Warehouse double with an AsyncMock ``query``."""
    warehouse = MagicMock(spec=ClickHouseClient)
    warehouse.query = AsyncMock(return_value=[])
    warehouse.ping = AsyncMock(return_value=True)
    return warehouse


@pytest.fixture
def mock_provider():
    """Provider double; set ``generate.side_effect`` to script replies."""
    provider = MagicMock(spec=LLMProvider)
    provider.generate = AsyncMock()
    provider.provider_name = "openai"
    provider.get_model_info.return_value = {"provider": "openai", "model": "gpt-4o-mini"}
    provider.supports_functions.return_value = True
    return provider
