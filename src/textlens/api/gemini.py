"""Gemini `generateContent` REST backend."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from textlens.core.exceptions import BackendError
from textlens.core.models import GenerationOptions
from textlens.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"


class GeminiBackend:
    """Send one prompt per request and return the first candidate's text."""

    def __init__(
        self,
        *,
        api_key: str,
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.endpoint = (endpoint or DEFAULT_ENDPOINT).rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def build_payload(self, prompt: str, options: GenerationOptions) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": options.temperature,
                "topP": options.top_p,
                "topK": options.top_k,
                "maxOutputTokens": options.max_output_tokens,
            },
        }

    def generate(self, prompt: str, options: GenerationOptions) -> str:
        logger.debug(
            "Gemini request",
            extra={"model": self.model, "prompt_chars": len(prompt)},
        )
        try:
            response = self._session.post(
                self.url,
                params={"key": self.api_key},
                json=self.build_payload(prompt, options),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(
                f"Gemini request failed: {exc}", context={"provider": "gemini"}
            ) from exc

        if not response.ok:
            raise BackendError(
                _error_message(response),
                context={"provider": "gemini"},
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendError(
                "Gemini returned a non-JSON response",
                context={"provider": "gemini"},
                status_code=response.status_code,
            ) from exc

        text = _candidate_text(data)
        if not text.strip():
            raise BackendError(
                "Gemini returned no candidate text",
                context={"provider": "gemini", "finish_reason": _finish_reason(data)},
            )
        return text


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Gemini request failed with HTTP {response.status_code}"


def _candidate_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(
        part.get("text", "") for part in parts if isinstance(part, dict)
    )


def _finish_reason(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        candidates = data.get("candidates") or []
        if candidates and isinstance(candidates[0], dict):
            return candidates[0].get("finishReason")
    return None
