"""Shared test fixtures.

`FakeBackend` stands in for the generation backend: it records every prompt
it receives and answers from a queue of canned replies (strings) or raises
queued exceptions.
"""

from __future__ import annotations

from typing import List, Tuple, Union

import pytest

from textlens.core.models import AnalysisConfig, GenerationOptions, TaskKind


class FakeBackend:
    def __init__(self, replies: List[Union[str, Exception]]):
        self.replies = list(replies)
        self.calls: List[Tuple[str, GenerationOptions]] = []

    def generate(self, prompt: str, options: GenerationOptions) -> str:
        self.calls.append((prompt, options))
        if not self.replies:
            raise AssertionError("FakeBackend ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def prompts(self) -> List[str]:
        return [prompt for prompt, _ in self.calls]


@pytest.fixture
def make_backend():
    """Factory fixture: make_backend(reply1, reply2, ...) -> FakeBackend."""

    def _make(*replies: Union[str, Exception]) -> FakeBackend:
        return FakeBackend(list(replies))

    return _make


@pytest.fixture
def sample_text() -> str:
    return "Alice works at Acme. She started in 2020."


@pytest.fixture
def full_config() -> AnalysisConfig:
    return AnalysisConfig(
        output_language="English",
        summary_sentences=2,
        key_point_count=3,
        enabled_tasks=frozenset(TaskKind),
    )



_ENV_VARS = (
    "TEXTLENS_PROVIDER",
    "PROVIDER",
    "TEXTLENS_API_KEY",
    "GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
    "AZURE_OPENAI_API_KEY",
    "API_KEY",
    "TEXTLENS_MODEL",
    "AZURE_OPENAI_DEPLOYMENT",
    "DEPLOYMENT_NAME",
    "MODEL",
    "TEXTLENS_ENDPOINT",
    "AZURE_OPENAI_ENDPOINT",
    "ENDPOINT",
    "TEXTLENS_OUTPUT_LANGUAGE",
    "TEXTLENS_TEMPERATURE",
    "TEXTLENS_LOG_LEVEL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer environment variables out of Settings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
