"""Interfaces (Protocols) for textlens collaborators.

Using Protocols allows for easy faking in tests and swapping providers.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from textlens.core.models import GenerationOptions


@runtime_checkable
class GenerationBackend(Protocol):
    """Interface for the external text-generation service.

    Implementations:
    - GeminiBackend: Gemini `generateContent` REST endpoint
    - AnthropicBackend: Anthropic messages API
    - AzureOpenAIBackend: Azure OpenAI chat completions
    """

    def generate(self, prompt: str, options: GenerationOptions) -> str:
        """Return the raw reply text for `prompt`.

        Raises BackendError on a non-success response or an empty reply.
        """
        ...
