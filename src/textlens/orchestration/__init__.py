"""Task orchestration."""

from .orchestrator import (
    AnalysisMode,
    AnalysisRun,
    FailurePolicy,
    Orchestrator,
    TaskUpdate,
)

__all__ = ["AnalysisMode", "AnalysisRun", "FailurePolicy", "Orchestrator", "TaskUpdate"]
