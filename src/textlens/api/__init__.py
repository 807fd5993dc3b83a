"""Concrete generation backends and the settings-driven factory."""

from __future__ import annotations

from textlens.config.settings import Settings
from textlens.core.exceptions import ConfigurationError
from textlens.core.interfaces import GenerationBackend

from .anthropic import AnthropicBackend
from .azure_openai import AzureOpenAIBackend, AzureOpenAIConfig
from .gemini import GeminiBackend

__all__ = [
    "AnthropicBackend",
    "AzureOpenAIBackend",
    "AzureOpenAIConfig",
    "GeminiBackend",
    "create_backend",
]


def create_backend(settings: Settings) -> GenerationBackend:
    """Build the backend selected by `settings.provider`."""
    if not settings.api_key:
        raise ConfigurationError(
            "Missing API key: set TEXTLENS_API_KEY (or the provider's own key variable)",
            context={"provider": settings.provider},
        )

    if settings.provider == "gemini":
        return GeminiBackend(
            api_key=settings.api_key,
            model=settings.model,
            endpoint=settings.endpoint,
            timeout=settings.request_timeout,
        )
    if settings.provider == "anthropic":
        return AnthropicBackend(
            api_key=settings.api_key,
            model=settings.model,
            endpoint=settings.endpoint,
            timeout=settings.request_timeout,
        )
    if settings.provider == "azure_openai":
        if not settings.endpoint or not settings.model:
            raise ConfigurationError(
                "Azure OpenAI needs AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_DEPLOYMENT",
                context={"provider": settings.provider},
            )
        config = AzureOpenAIConfig(
            azure_endpoint=settings.endpoint,
            api_key=settings.api_key,
            api_version=settings.api_version,
            deployment_name=settings.model,
        )
        return AzureOpenAIBackend(config, timeout=settings.request_timeout)

    raise ConfigurationError(f"Unknown provider: {settings.provider}")
