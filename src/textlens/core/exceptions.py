"""Custom exception hierarchy for textlens."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class TextLensException(Exception):
    """Base exception type for all textlens errors."""

    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"


class ConfigurationError(TextLensException):
    """Raised when configuration is missing or invalid."""


# -----------------------------------------------------------------------------
# Pre-flight validation (raised before any backend call)
# -----------------------------------------------------------------------------


class AnalysisValidationError(TextLensException):
    """Raised when an analysis run is rejected before it starts."""


class EmptyInputError(AnalysisValidationError):
    """Raised when the input text is empty or whitespace-only."""


class NoTasksEnabledError(AnalysisValidationError):
    """Raised when the configuration enables no analysis tasks."""


# -----------------------------------------------------------------------------
# Generation backend
# -----------------------------------------------------------------------------


@dataclass
class BackendError(TextLensException):
    """Raised when the generation backend fails or returns no usable text."""

    status_code: Optional[int] = None
