"""
Settings Module
===============

Environment-driven configuration for the search service, grouped by the
external system each block configures. Values come from the process
environment or a local `.env` file.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LLMBackend(str, Enum):
    """Supported language model backends."""

    BEDROCK = "bedrock"
    OPENAI = "openai"


class EmbeddingBackend(str, Enum):
    """Supported embedding backends."""

    BEDROCK = "bedrock"
    OPENAI = "openai"


class AWSSettings(BaseSettings):
    """AWS credentials and region used for SigV4 signing."""

    model_config = SettingsConfigDict(env_prefix="AWS_")

    region: str = "us-east-1"
    access_key_id: str = ""
    secret_access_key: SecretStr = SecretStr("")
    session_token: SecretStr = SecretStr("")


class OpenSearchSettings(BaseSettings):
    """OpenSearch Serverless index configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENSEARCH_")

    endpoint: str = "https://your-opensearch-endpoint.aoss.amazonaws.com"
    index: str = "regulatory-chunks"
    service: str = "aoss"
    vector_field: str = "contextualized_embedding"
    text_fields: list[str] = Field(
        default_factory=lambda: ["contextualized_text^2", "title^1.5", "original_text"]
    )
    keyword_boost: float = 0.3
    timeout_seconds: float = 30.0

    @property
    def search_url(self) -> str:
        """Generate the index search URL."""
        return f"{self.endpoint.rstrip('/')}/{self.index}/_search"


class BedrockSettings(BaseSettings):
    """AWS Bedrock runtime configuration."""

    model_config = SettingsConfigDict(env_prefix="BEDROCK_")

    chat_model: str = Field(
        default="us.anthropic.claude-sonnet-4-20250514-v1:0",
        validation_alias=AliasChoices("BEDROCK_CHAT_MODEL", "CLAUDE_MODEL"),
    )
    embedding_model: str = "amazon.titan-embed-text-v2:0"
    endpoint: str = ""
    service: str = "bedrock"


class OpenAISettings(BaseSettings):
    """OpenAI-compatible API configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: SecretStr = SecretStr("")
    base_url: str = "https://api.openai.com/v1"
    chat_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"


class LLMSettings(BaseSettings):
    """Language model configuration."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    backend: LLMBackend = LLMBackend.BEDROCK
    timeout_seconds: float = 120.0

    # Answer synthesis
    answer_max_tokens: int = 4096
    answer_temperature: float = 0.3

    # Query decomposition
    decompose_max_tokens: int = 1024
    decompose_temperature: float = 0.2


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    backend: EmbeddingBackend = EmbeddingBackend.BEDROCK
    dimensions: int = 1024
    normalize: bool = True
    timeout_seconds: float = 30.0


class SearchSettings(BaseSettings):
    """Search pipeline tuning."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    max_sources: int = 8
    context_sources: int = 5
    size_hint: int = 5
    sources_only_size_hint: int = 10
    concurrency: int = Field(default=4, ge=1)
    max_sub_queries: int = Field(default=4, ge=1)
    analyze_pause_ms: int = 100


class ServicePorts(BaseSettings):
    """Listening port; the variable name is shared with the rest of the deployment."""

    regulatory_search: int = Field(default=8001, alias="REGULATORY_SEARCH_PORT")


class Settings(BaseSettings):
    """
    Root settings object.

    Prefer the `settings` singleton from `shared.config`. Components that take
    a settings group as an argument can also be given one built directly,
    such as `SearchSettings(analyze_pause_ms=0)`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Cloud credentials
    aws: AWSSettings = Field(default_factory=AWSSettings)

    # External services
    opensearch: OpenSearchSettings = Field(default_factory=OpenSearchSettings)
    bedrock: BedrockSettings = Field(default_factory=BedrockSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)

    # Models
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)

    # Pipeline
    search: SearchSettings = Field(default_factory=SearchSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def bedrock_endpoint(self) -> str:
        """Bedrock runtime endpoint for the configured region."""
        if self.bedrock.endpoint:
            return self.bedrock.endpoint.rstrip("/")
        return f"https://bedrock-runtime.{self.aws.region}.amazonaws.com"

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()
