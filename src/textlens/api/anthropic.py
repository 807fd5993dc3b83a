"""Anthropic messages API backend."""

from __future__ import annotations

from typing import Any, Optional

import anthropic

from textlens.core.exceptions import BackendError
from textlens.core.models import GenerationOptions
from textlens.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-latest"


class AnthropicBackend:
    """Messages-API backend. `temperature` is capped at 1.0, the API maximum."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        self.model = model or DEFAULT_MODEL
        self._client = client or anthropic.Anthropic(
            api_key=api_key, base_url=endpoint, timeout=timeout
        )

    def generate(self, prompt: str, options: GenerationOptions) -> str:
        logger.debug(
            "Anthropic request",
            extra={"model": self.model, "prompt_chars": len(prompt)},
        )
        try:
            message = self._client.messages.create(
                model=self.model,
                max_tokens=options.max_output_tokens,
                temperature=min(options.temperature, 1.0),
                top_p=options.top_p,
                top_k=options.top_k,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as exc:
            raise BackendError(
                f"Anthropic request failed: {exc.message}",
                context={"provider": "anthropic"},
                status_code=exc.status_code,
            ) from exc
        except anthropic.APIError as exc:
            raise BackendError(
                f"Anthropic request failed: {exc}", context={"provider": "anthropic"}
            ) from exc

        text = "".join(
            getattr(block, "text", "")
            for block in (getattr(message, "content", None) or [])
            if getattr(block, "type", "text") == "text"
        )
        if not text.strip():
            raise BackendError(
                "Anthropic returned no text content",
                context={"provider": "anthropic", "stop_reason": getattr(message, "stop_reason", None)},
            )
        return text
