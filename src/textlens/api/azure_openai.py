"""Azure OpenAI chat completions backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import AzureOpenAI

from textlens.core.exceptions import BackendError
from textlens.core.models import GenerationOptions
from textlens.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AzureOpenAIConfig:
    azure_endpoint: str
    api_key: str
    api_version: str
    deployment_name: str


class AzureOpenAIBackend:
    """Chat-completions backend. `top_k` has no Azure OpenAI equivalent and is ignored."""

    def __init__(self, config: AzureOpenAIConfig, *, timeout: float = 60.0, client: Optional[Any] = None):
        self.config = config
        self._client = client or AzureOpenAI(
            api_version=self.config.api_version,
            azure_endpoint=self.config.azure_endpoint,
            api_key=self.config.api_key,
            timeout=timeout,
        )

    def generate(self, prompt: str, options: GenerationOptions) -> str:
        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        logger.debug(
            "Azure OpenAI request",
            extra={"deployment": self.config.deployment_name, "prompt_chars": len(prompt)},
        )
        try:
            resp = self._create(messages, options)
        except openai.APIStatusError as exc:
            raise BackendError(
                f"Azure OpenAI request failed: {exc.message}",
                context={"provider": "azure_openai"},
                status_code=exc.status_code,
            ) from exc
        except openai.OpenAIError as exc:
            raise BackendError(
                f"Azure OpenAI request failed: {exc}", context={"provider": "azure_openai"}
            ) from exc

        text = _message_text(resp)
        if not text.strip():
            raise BackendError(
                "Azure OpenAI returned no message content", context={"provider": "azure_openai"}
            )
        return text

    def _create(self, messages: List[Dict[str, Any]], options: GenerationOptions) -> Any:
        # Newer deployments expect `max_completion_tokens`.
        try:
            return self._client.chat.completions.create(
                model=self.config.deployment_name,
                messages=messages,  # type: ignore[arg-type]
                temperature=options.temperature,
                top_p=options.top_p,
                max_completion_tokens=options.max_output_tokens,
            )
        except TypeError:
            # Fallback for older SDKs.
            return self._client.chat.completions.create(
                model=self.config.deployment_name,
                messages=messages,  # type: ignore[arg-type]
                temperature=options.temperature,
                top_p=options.top_p,
                max_tokens=options.max_output_tokens,
            )


def _message_text(resp: Any) -> str:
    choices = getattr(resp, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""
