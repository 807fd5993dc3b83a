"""Prompt construction."""

from .builder import SECTION_LABELS, build_combined_prompt, build_prompt

__all__ = ["SECTION_LABELS", "build_combined_prompt", "build_prompt"]
