"""textlens - structured analysis of free-form text via a generation backend."""

from typing import TYPE_CHECKING

__all__ = ["AnalysisConfig", "AnalysisResult", "Orchestrator", "Settings", "TaskKind"]

if TYPE_CHECKING:
    from .config.settings import Settings
    from .core.models import AnalysisConfig, AnalysisResult, TaskKind
    from .orchestration.orchestrator import Orchestrator


def __getattr__(name: str):
    if name == "Settings":
        from .config.settings import Settings

        return Settings
    if name == "Orchestrator":
        from .orchestration.orchestrator import Orchestrator

        return Orchestrator
    if name in {"AnalysisConfig", "AnalysisResult", "TaskKind"}:
        from .core import models

        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
