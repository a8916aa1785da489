from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):  # type: ignore[misc]
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "hunkrev"
    app_version: str = "0.2.0"
    debug: bool = False
    environment: Literal["development", "staging", "production", "test"] = "development"
    log_format: Literal["json", "console"] | None = None
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # GitHub
    github_token: SecretStr = Field(default=...)
    github_api_url: str = "https://api.github.com"

    # Trigger input when running as a CI step
    github_event_path: str | None = None
    github_event_name: str | None = None

    # LLM Providers
    llm_provider: Literal["openai", "anthropic", "ollama"] = "openai"
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None
    anthropic_api_key: SecretStr | None = None
    ollama_host: str = "http://localhost:11434"

    # LLM Settings
    llm_model: str | None = None
    default_model_openai: str = "gpt-4o-mini"
    default_model_anthropic: str = "claude-sonnet-4-20250514"
    default_model_ollama: str = "deepseek-coder:6.7b"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 700
    llm_top_p: float = 1.0
    llm_frequency_penalty: float = 0.0
    llm_presence_penalty: float = 0.0
    llm_json_mode: bool | None = None  # None: decided per model
    llm_timeout_seconds: float = 120.0

    # Review Settings
    exclude_patterns: str = ""
    review_concurrency: int = Field(default=1, ge=1)
    max_files_per_review: int = 50
    max_diff_size_bytes: int = 500_000

    # Notification
    notification_webhook_url: str | None = None
    notification_preview_count: int = 5
    notification_preview_chars: int = 100

    @property
    def resolved_model(self) -> str:
        """Model identifier for the configured provider."""
        if self.llm_model:
            return self.llm_model
        return {
            "openai": self.default_model_openai,
            "anthropic": self.default_model_anthropic,
            "ollama": self.default_model_ollama,
        }[self.llm_provider]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
