"""Reply decoders: delimited sections (combined mode) and per-task records."""

from .outcome import DecodeOutcome
from .records import decode_task_reply
from .sections import decode_section_outcomes, decode_sections, fallback_sentiment

__all__ = [
    "DecodeOutcome",
    "decode_section_outcomes",
    "decode_sections",
    "decode_task_reply",
    "fallback_sentiment",
]
