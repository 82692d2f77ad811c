"""Configuration settings for the BI dashboard backend."""
from typing import Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings read from the environment.

    Environment Variables:
        CLICKHOUSE_HOST: ClickHouse server host name (required)
        CLICKHOUSE_PORT / CLICKHOUSE_SECURE: native protocol port and TLS
        CLICKHOUSE_USER / CLICKHOUSE_PASSWORD / CLICKHOUSE_DB: warehouse credentials
        LLM_PROVIDER: "openai" or "anthropic"
        OPENAI_API_KEY / ANTHROPIC_API_KEY: model API keys
        LLM_MODEL: model name override
        SERPER_API_KEY / SERPAPI_API_KEY: optional web search keys
        CHAT_MAX_ITERATIONS: tool-calling loop cap
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Warehouse
    clickhouse_host: str = Field(..., description="ClickHouse server host name")
    clickhouse_port: int = Field(default=9000, gt=0, lt=65536, description="Native protocol port")
    clickhouse_secure: bool = Field(default=False, description="Connect over TLS")
    clickhouse_user: str = Field(default="default", description="ClickHouse user")
    clickhouse_password: str = Field(default="", description="ClickHouse password")
    clickhouse_db: str = Field(default="default", description="ClickHouse database")
    clickhouse_timeout: float = Field(default=30.0, gt=0, description="Query timeout in seconds")
    clickhouse_readonly: bool = Field(default=True, description="Send readonly=2 with every query")

    # Language model
    llm_provider: Literal["openai", "anthropic"] = Field(default="openai")
    openai_api_key: Optional[str] = Field(default=None)
    anthropic_api_key: Optional[str] = Field(default=None)
    llm_model: Optional[str] = Field(default=None, description="Model override")
    llm_temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    llm_max_tokens: Optional[int] = Field(default=None, gt=0)
    llm_timeout: float = Field(default=60.0, gt=0)
    llm_base_url: Optional[str] = Field(default=None)

    # Web search
    serper_api_key: Optional[str] = Field(default=None)
    serpapi_api_key: Optional[str] = Field(default=None)
    enable_web_search: bool = Field(default=True)

    # Chat loop
    chat_max_iterations: int = Field(default=10, ge=1, le=120)
    query_row_limit: int = Field(default=100, ge=1, le=10000)
    tool_timeout_seconds: float = Field(default=30.0, gt=0)
    max_query_retries: int = Field(default=3, ge=1)
    prompt_include_schema: bool = Field(default=False)

    log_level: str = Field(default="INFO")

    @field_validator('clickhouse_host')
    @classmethod
    def validate_clickhouse_host(cls, v: str) -> str:
        """Require a bare host name; the port goes in CLICKHOUSE_PORT."""
        v = (v or "").strip()
        if not v:
            raise ValueError("CLICKHOUSE_HOST is required and cannot be empty")
        if "//" in v or ":" in v:
            raise ValueError("CLICKHOUSE_HOST must be a host name without scheme or port")
        return v

    @field_validator('llm_provider', mode='before')
    @classmethod
    def normalize_provider(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @field_validator('serper_api_key', 'serpapi_api_key', 'openai_api_key', 'anthropic_api_key')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty keys from .env files as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def web_search_configured(self) -> bool:
        return bool(self.serper_api_key or self.serpapi_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create configuration from environment variables."""
        return cls()
