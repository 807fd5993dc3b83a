"""Application settings.

All configuration is sourced from environment variables (and optionally `.env`).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from textlens.core.models import GenerationOptions

Provider = Literal["gemini", "anthropic", "azure_openai"]


class Settings(BaseSettings):
    """Typed environment-backed settings for textlens."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    provider: Provider = Field(
        default="gemini", validation_alias=AliasChoices("TEXTLENS_PROVIDER", "PROVIDER")
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "TEXTLENS_API_KEY", "GEMINI_API_KEY", "ANTHROPIC_API_KEY", "AZURE_OPENAI_API_KEY", "API_KEY"
        ),
    )
    model: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "TEXTLENS_MODEL", "AZURE_OPENAI_DEPLOYMENT", "DEPLOYMENT_NAME", "MODEL"
        ),
    )
    endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TEXTLENS_ENDPOINT", "AZURE_OPENAI_ENDPOINT", "ENDPOINT"),
    )

    # Azure OpenAI
    api_version: str = Field(
        default="2024-12-01-preview",
        validation_alias=AliasChoices("AZURE_OPENAI_API_VERSION", "API_VERSION"),
    )

    request_timeout: float = Field(
        default=60.0, gt=0, validation_alias=AliasChoices("TEXTLENS_REQUEST_TIMEOUT")
    )

    # Sampling defaults
    temperature: float = Field(default=0.7, validation_alias=AliasChoices("TEXTLENS_TEMPERATURE"))
    top_p: float = Field(default=0.95, validation_alias=AliasChoices("TEXTLENS_TOP_P"))
    top_k: int = Field(default=40, validation_alias=AliasChoices("TEXTLENS_TOP_K"))
    max_output_tokens: int = Field(
        default=2048, validation_alias=AliasChoices("TEXTLENS_MAX_OUTPUT_TOKENS")
    )

    output_language: str = Field(
        default="English", validation_alias=AliasChoices("TEXTLENS_OUTPUT_LANGUAGE")
    )

    log_level: str = Field(default="INFO", validation_alias=AliasChoices("TEXTLENS_LOG_LEVEL", "LOG_LEVEL"))
    json_logs: bool = Field(default=False, validation_alias=AliasChoices("TEXTLENS_JSON_LOGS"))

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            max_output_tokens=self.max_output_tokens,
        )
