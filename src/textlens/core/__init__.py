"""Core models, exceptions and collaborator interfaces."""

from .exceptions import (
    AnalysisValidationError,
    BackendError,
    ConfigurationError,
    EmptyInputError,
    NoTasksEnabledError,
    TextLensException,
)
from .interfaces import GenerationBackend
from .models import (
    AnalysisConfig,
    AnalysisResult,
    Entity,
    GenerationOptions,
    QAPair,
    Sentiment,
    SentimentLabel,
    TaskKind,
    TaskState,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "AnalysisValidationError",
    "BackendError",
    "ConfigurationError",
    "EmptyInputError",
    "Entity",
    "GenerationBackend",
    "GenerationOptions",
    "NoTasksEnabledError",
    "QAPair",
    "Sentiment",
    "SentimentLabel",
    "TaskKind",
    "TaskState",
    "TextLensException",
]
