"""Domain models for text analysis.

These models describe *what* an analysis run should do (`AnalysisConfig`,
`GenerationOptions`) and *what* it produced (`AnalysisResult`). They are
plain pydantic models with no knowledge of prompts, decoding or backends.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class TaskKind(str, Enum):
    """The fixed set of analysis tasks, in execution order."""
    SUMMARY = "summary"
    KEY_POINTS = "key_points"
    SENTIMENT = "sentiment"
    ENTITIES = "entities"
    QA = "qa"

    @classmethod
    def ordered(cls, tasks: Optional[Sequence["TaskKind"]] = None) -> List["TaskKind"]:
        """Return `tasks` (default: all) in the fixed enumeration order."""
        selected = set(cls) if tasks is None else set(tasks)
        return [task for task in cls if task in selected]


class TaskState(str, Enum):
    """Lifecycle of a single task within one run."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.SUCCEEDED, TaskState.FAILED)


class SentimentLabel(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"
    MIXED = "Mixed"

    @classmethod
    def parse(cls, raw: object) -> Optional["SentimentLabel"]:
        """Case-insensitive lookup; returns None for unknown labels."""
        text = str(raw or "").strip().strip("*_").strip().lower()
        for label in cls:
            if label.value.lower() == text:
                return label
        return None


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------


def _normalize_keywords(values: Sequence[str]) -> Tuple[str, ...]:
    cleaned: List[str] = []
    for value in values:
        text = str(value).strip()
        if text:
            cleaned.append(text)
    return tuple(cleaned)


class AnalysisConfig(BaseModel):
    """Immutable description of which analyses run and how."""

    model_config = ConfigDict(frozen=True)

    output_language: str = "English"
    summary_sentences: int = Field(default=3, ge=1)
    key_point_count: int = Field(default=5, ge=1)
    include_keywords: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()
    technical_focus: bool = False
    neutral_tone: bool = False
    enabled_tasks: FrozenSet[TaskKind] = Field(default_factory=lambda: frozenset(TaskKind))

    @field_validator("output_language")
    @classmethod
    def validate_language(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("output_language must not be blank")
        return value

    @field_validator("include_keywords", "exclude_keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, value: object) -> Tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return cls.parse_keywords(value)
        return _normalize_keywords(list(value))  # type: ignore[arg-type]

    @staticmethod
    def parse_keywords(raw: str) -> Tuple[str, ...]:
        """Split a comma-separated keyword string, dropping blank entries."""
        return _normalize_keywords((raw or "").split(","))

    @property
    def ordered_tasks(self) -> List[TaskKind]:
        return TaskKind.ordered(list(self.enabled_tasks))


class GenerationOptions(BaseModel):
    """Sampling parameters passed through to the generation backend."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    top_k: int = Field(default=40, ge=1)
    max_output_tokens: int = Field(default=2048, ge=1)


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


class Sentiment(BaseModel):
    label: SentimentLabel = SentimentLabel.NEUTRAL
    score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    justification: str = ""


class Entity(BaseModel):
    type: str = ""
    name: str


class QAPair(BaseModel):
    question: str
    answer: str


class AnalysisResult(BaseModel):
    """Aggregate of all decoded task outputs for one run.

    A field left as None was either not requested or has not completed yet.
    """

    summary: Optional[str] = None
    key_points: Optional[List[str]] = None
    sentiment: Optional[Sentiment] = None
    entities: Optional[List[Entity]] = None
    qa: Optional[List[QAPair]] = None


# Field on `AnalysisResult` owned by each task.
RESULT_FIELDS = {
    TaskKind.SUMMARY: "summary",
    TaskKind.KEY_POINTS: "key_points",
    TaskKind.SENTIMENT: "sentiment",
    TaskKind.ENTITIES: "entities",
    TaskKind.QA: "qa",
}
