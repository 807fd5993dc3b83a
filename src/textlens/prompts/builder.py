"""Deterministic prompt construction for analysis tasks.

Every function here is pure: the same task, configuration and text always
produce the same instruction string. Nothing in this module looks at prior
results or talks to a backend.
"""

from __future__ import annotations

from typing import List

from textlens.core.models import AnalysisConfig, TaskKind

# Labels introducing each section of a combined-mode reply, in document order.
SECTION_LABELS = {
    TaskKind.SUMMARY: "Summary:",
    TaskKind.KEY_POINTS: "Key Points:",
    TaskKind.SENTIMENT: "Sentiment Analysis:",
    TaskKind.ENTITIES: "Key Entities:",
    TaskKind.QA: "Questions & Answers:",
}

BULLET = "- "


def build_prompt(task: TaskKind, config: AnalysisConfig, text: str) -> str:
    """Build the instruction for a single task in per-task mode."""
    lines: List[str] = []
    lines.append(_TASK_INSTRUCTIONS[task](config))
    lines.append("")
    lines.extend(_directives(config))
    lines.append("")
    lines.extend(_text_block(text))
    return "\n".join(lines)


def build_combined_prompt(config: AnalysisConfig, text: str) -> str:
    """Build the single instruction used in combined mode.

    The reply is one document with a labeled section per enabled task, in
    the fixed task order.
    """
    tasks = config.ordered_tasks or list(TaskKind)

    lines: List[str] = []
    lines.append("Analyze the text below and produce the following sections, in this order.")
    lines.append(
        "Start each section with its label exactly as written, on its own line. "
        "Do not add any other sections, headings, numbering or Markdown formatting."
    )
    lines.append("")
    for task in tasks:
        lines.append(SECTION_LABELS[task])
        lines.append(_COMBINED_SECTION_FORMATS[task](config))
        lines.append("")
    lines.extend(_directives(config))
    lines.append("")
    lines.extend(_text_block(text))
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Shared clauses
# -----------------------------------------------------------------------------


def _directives(config: AnalysisConfig) -> List[str]:
    lines = [
        f"Write all generated content in {config.output_language}; keep section labels, "
        "JSON keys and sentiment label values exactly as specified in English."
    ]
    if config.technical_focus:
        lines.append("Focus on technical details, terminology and mechanisms.")
    if config.neutral_tone:
        lines.append("Use a neutral, objective tone.")
    if config.include_keywords:
        lines.append(
            "Pay particular attention to these topics: "
            + ", ".join(config.include_keywords)
            + "."
        )
    if config.exclude_keywords:
        lines.append(
            "Do not discuss these topics: " + ", ".join(config.exclude_keywords) + "."
        )
    return lines


def _text_block(text: str) -> List[str]:
    return ["TEXT:", '"""', text, '"""']


def _sentences(count: int) -> str:
    return "1 sentence" if count == 1 else f"{count} sentences"


# -----------------------------------------------------------------------------
# Per-task instructions
# -----------------------------------------------------------------------------


def _summary_instruction(config: AnalysisConfig) -> str:
    return (
        f"Summarize the text below in exactly {_sentences(config.summary_sentences)}. "
        "Return only the summary as plain prose, without a heading, list or preamble."
    )


def _key_points_instruction(config: AnalysisConfig) -> str:
    n = config.key_point_count
    return (
        f"Extract exactly {n} key points from the text below. "
        f'Return exactly {n} lines, each starting with "{BULLET}" followed by one key point. '
        "Do not add a heading, numbering or any other text."
    )


def _sentiment_instruction(config: AnalysisConfig) -> str:
    return (
        "Analyze the overall sentiment of the text below. "
        "Respond with a single JSON object matching this schema and nothing else:\n"
        + SENTIMENT_SCHEMA
    )


def _entities_instruction(config: AnalysisConfig) -> str:
    return (
        "Extract the named entities mentioned in the text below. "
        "Respond with a JSON array matching this schema and nothing else:\n"
        + ENTITIES_SCHEMA
    )


def _qa_instruction(config: AnalysisConfig) -> str:
    return (
        f"Write {QA_PAIR_RANGE} question and answer pairs that can be answered from the text below. "
        "Respond with a JSON array matching this schema and nothing else:\n"
        + QA_SCHEMA
    )


_TASK_INSTRUCTIONS = {
    TaskKind.SUMMARY: _summary_instruction,
    TaskKind.KEY_POINTS: _key_points_instruction,
    TaskKind.SENTIMENT: _sentiment_instruction,
    TaskKind.ENTITIES: _entities_instruction,
    TaskKind.QA: _qa_instruction,
}


# -----------------------------------------------------------------------------
# Combined-mode section formats
# -----------------------------------------------------------------------------


_COMBINED_SECTION_FORMATS = {
    TaskKind.SUMMARY: lambda config: (
        f"<a summary of exactly {_sentences(config.summary_sentences)}>"
    ),
    TaskKind.KEY_POINTS: lambda config: (
        f"<exactly {config.key_point_count} lines, each formatted as \"{BULLET}<key point>\">"
    ),
    TaskKind.SENTIMENT: lambda config: (
        "<one line formatted as \"<Positive|Negative|Neutral|Mixed>: <one-sentence justification>\">"
    ),
    TaskKind.ENTITIES: lambda config: (
        f"<one line per entity, formatted as \"{BULLET}<{ENTITY_TYPES}>: <entity name>\">"
    ),
    TaskKind.QA: lambda config: (
        f"<{QA_PAIR_RANGE} pairs, each a line \"Q: <question>\" followed by a line \"A: <answer>\">"
    ),
}


QA_PAIR_RANGE = "3 to 5"

ENTITY_TYPES = "person|organization|location|date|product|event|other"

SENTIMENT_SCHEMA = """{
  "label": "Positive" | "Negative" | "Neutral" | "Mixed",
  "score": <number between 0 and 1, confidence in the label>,
  "justification": "<one sentence explaining the label>"
}"""

ENTITIES_SCHEMA = (
    """[
  {"text": "<entity name as written in the text>", "type": "%s"}
]"""
    % ENTITY_TYPES
)

QA_SCHEMA = """[
  {"question": "<question>", "answer": "<answer based only on the text>"}
]"""
