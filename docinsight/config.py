from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings leveraging environment overrides.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Document Insight Service"
    environment: str = Field("local", validation_alias="ENVIRONMENT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    max_payload_bytes: int = Field(20 * 1024 * 1024, ge=1024)  # 20 MB soft limit

    # Primary provider (Ollama-compatible). "disabled" forces secondary-only.
    ollama_base_url: Optional[str] = Field(None, validation_alias="OLLAMA_BASE_URL")
    ollama_model: str = Field("llama3.2", validation_alias="OLLAMA_MODEL")
    ollama_temperature: float = Field(0.1, ge=0.0, le=2.0)
    ollama_num_ctx: int = Field(8192, ge=512)

    # Secondary provider (OpenAI chat completions)
    openai_api_key: Optional[str] = Field(None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_base_url: Optional[str] = Field(None, validation_alias="OPENAI_BASE_URL")
    openai_temperature: float = Field(0.3, ge=0.0, le=2.0)
    openai_max_tokens: int = Field(1000, ge=100, le=4000)

    preferred_provider: Optional[Literal["primary", "secondary"]] = Field(
        None, description="Override which provider is attempted first"
    )
    analysis_truncation_limit: int = Field(8000, ge=1)
    provider_timeout_seconds: float = Field(60.0, gt=0)
    feedback_confidence_boost: float = Field(0.1, ge=0.0, le=1.0)


@lru_cache
def get_settings() -> Settings:
    return Settings()
