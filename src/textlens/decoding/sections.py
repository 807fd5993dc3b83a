"""Delimited-section decoding for combined-mode replies.

A combined reply is one document holding a labeled section per task:

    Summary:
    ...
    Key Points:
    - ...
    Sentiment Analysis:
    Positive: ...
    Key Entities:
    - person: ...
    Questions & Answers:
    Q: ...
    A: ...

The document is scanned line by line. A line that starts with a known label
opens that section; every following line belongs to it until the next known
label. Sections may come in any order, a repeated label is ignored (the first
occurrence wins) and a missing section decodes to its default. Nothing in
this module raises on malformed input.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from textlens.core.models import (
    AnalysisResult,
    Entity,
    QAPair,
    Sentiment,
    SentimentLabel,
    TaskKind,
)
from textlens.decoding.outcome import DecodeOutcome
from textlens.prompts.builder import BULLET, SECTION_LABELS

SENTIMENT_FALLBACK_JUSTIFICATION = "could not be determined"


def fallback_sentiment() -> Sentiment:
    """Sentiment substituted whenever a reply cannot be interpreted."""
    return Sentiment(
        label=SentimentLabel.NEUTRAL,
        score=0.5,
        justification=SENTIMENT_FALLBACK_JUSTIFICATION,
    )


def _label_pattern(label: str) -> Pattern[str]:
    # Tolerates Markdown decoration such as "## Summary:" or "**Summary:**".
    name = re.escape(label.rstrip(":").strip())
    return re.compile(
        rf"^\s*(?:#{{1,6}}\s*)?[*_]*\s*{name}\s*[*_]*\s*:\s*[*_]*\s*(?P<rest>.*)$",
        re.IGNORECASE,
    )


_LABEL_PATTERNS: List[Tuple[TaskKind, Pattern[str]]] = [
    (task, _label_pattern(label)) for task, label in SECTION_LABELS.items()
]

_QA_LINE = re.compile(r"^(?:[-*]\s+)?\**(?P<kind>[QA])\d*\**\s*:\s*\**\s*(?P<body>.*)$", re.IGNORECASE)
_ENTITY_PARENS = re.compile(r"^(?P<name>.+?)\s*\((?P<type>[^()]+)\)$")


def match_label(line: str) -> Optional[Tuple[TaskKind, str]]:
    """Return (task, same-line content) if `line` opens a known section."""
    for task, pattern in _LABEL_PATTERNS:
        match = pattern.match(line)
        if match:
            return task, match.group("rest").strip().strip("*_").strip()
    return None


def split_sections(document: str) -> Dict[TaskKind, List[str]]:
    """Split a combined reply into raw section lines keyed by task."""
    sections: Dict[TaskKind, List[str]] = {}
    current: Optional[TaskKind] = None

    for line in (document or "").splitlines():
        opened = match_label(line)
        if opened is not None:
            task, rest = opened
            if task in sections:
                current = None
                continue
            sections[task] = [rest] if rest else []
            current = task
            continue
        if current is not None:
            sections[current].append(line)

    return sections


def decode_section_outcomes(document: str) -> Dict[TaskKind, DecodeOutcome]:
    """Decode every section of a combined reply, one outcome per task."""
    sections = split_sections(document)
    outcomes: Dict[TaskKind, DecodeOutcome] = {}
    for task, decode in _SECTION_DECODERS.items():
        lines = sections.get(task)
        if lines is None:
            outcomes[task] = DecodeOutcome.fallback(
                _SECTION_DEFAULTS[task](), f"missing section {SECTION_LABELS[task]!r}"
            )
        else:
            outcomes[task] = decode(lines)
    return outcomes


def decode_sections(document: str) -> AnalysisResult:
    """Decode a combined reply into a fully populated result.

    Missing or unreadable sections hold their defaults: an empty summary,
    empty lists and the fallback sentiment.
    """
    outcomes = decode_section_outcomes(document)
    return AnalysisResult(
        summary=outcomes[TaskKind.SUMMARY].value,
        key_points=outcomes[TaskKind.KEY_POINTS].value,
        sentiment=outcomes[TaskKind.SENTIMENT].value,
        entities=outcomes[TaskKind.ENTITIES].value,
        qa=outcomes[TaskKind.QA].value,
    )


# -----------------------------------------------------------------------------
# Line-level parsers (shared with per-task decoding)
# -----------------------------------------------------------------------------


def parse_bullets(lines: Sequence[str]) -> List[str]:
    """Keep the text of lines starting with the bullet marker; drop the rest."""
    items: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped.startswith(BULLET):
            continue
        item = stripped[len(BULLET):].strip()
        if item:
            items.append(item)
    return items


def parse_entity_bullet(item: str) -> Optional[Entity]:
    if ":" in item:
        entity_type, name = item.split(":", 1)
        entity_type, name = entity_type.strip(), name.strip()
    else:
        match = _ENTITY_PARENS.match(item)
        if match:
            name, entity_type = match.group("name").strip(), match.group("type").strip()
        else:
            name, entity_type = item.strip(), ""
    if not name:
        return None
    return Entity(type=entity_type, name=name)


def parse_qa_lines(lines: Sequence[str]) -> List[QAPair]:
    """Pair up alternating Q:/A: lines; an unanswered question is dropped."""
    pairs: List[Tuple[str, str]] = []
    question: Optional[str] = None
    last: Optional[str] = None

    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        match = _QA_LINE.match(stripped)
        if match:
            kind = match.group("kind").upper()
            body = match.group("body").strip().strip("*").strip()
            if kind == "Q":
                question = body
                last = "Q"
            elif question is not None:
                pairs.append((question, body))
                question = None
                last = "A"
            else:
                last = None
            continue
        # Continuation of a wrapped question or answer.
        if last == "Q" and question is not None:
            question = f"{question} {stripped}".strip()
        elif last == "A" and pairs:
            q, a = pairs[-1]
            pairs[-1] = (q, f"{a} {stripped}".strip())

    return [QAPair(question=q, answer=a) for q, a in pairs if q and a]


# -----------------------------------------------------------------------------
# Section decoders
# -----------------------------------------------------------------------------


def _decode_summary(lines: Sequence[str]) -> DecodeOutcome:
    summary = "\n".join(line.rstrip() for line in lines).strip()
    if not summary:
        return DecodeOutcome.fallback("", "empty summary")
    return DecodeOutcome.ok(summary)


def _decode_key_points(lines: Sequence[str]) -> DecodeOutcome:
    points = parse_bullets(lines)
    if not points:
        return DecodeOutcome.fallback([], "no bulleted key points")
    return DecodeOutcome.ok(points)


def _decode_sentiment(lines: Sequence[str]) -> DecodeOutcome:
    text = " ".join(line.strip() for line in lines if line.strip())
    if text.startswith(BULLET):
        text = text[len(BULLET):].strip()
    if not text:
        return DecodeOutcome.fallback(fallback_sentiment(), "empty sentiment section")

    if ":" in text:
        raw_label, justification = text.split(":", 1)
        justification = justification.strip()
    else:
        raw_label, justification = text, ""

    label = SentimentLabel.parse(raw_label)
    if label is None:
        return DecodeOutcome.fallback(
            Sentiment(label=SentimentLabel.NEUTRAL, justification=justification or text),
            f"unrecognized sentiment label {raw_label.strip()!r}",
        )
    return DecodeOutcome.ok(Sentiment(label=label, justification=justification))


def _decode_entities(lines: Sequence[str]) -> DecodeOutcome:
    entities = [
        entity
        for entity in (parse_entity_bullet(item) for item in parse_bullets(lines))
        if entity is not None
    ]
    if not entities:
        return DecodeOutcome.fallback([], "no bulleted entities")
    return DecodeOutcome.ok(entities)


def _decode_qa(lines: Sequence[str]) -> DecodeOutcome:
    pairs = parse_qa_lines(lines)
    if not pairs:
        return DecodeOutcome.fallback([], "no complete Q:/A: pairs")
    return DecodeOutcome.ok(pairs)


_SECTION_DECODERS = {
    TaskKind.SUMMARY: _decode_summary,
    TaskKind.KEY_POINTS: _decode_key_points,
    TaskKind.SENTIMENT: _decode_sentiment,
    TaskKind.ENTITIES: _decode_entities,
    TaskKind.QA: _decode_qa,
}

_SECTION_DEFAULTS = {
    TaskKind.SUMMARY: lambda: "",
    TaskKind.KEY_POINTS: list,
    TaskKind.SENTIMENT: fallback_sentiment,
    TaskKind.ENTITIES: list,
    TaskKind.QA: list,
}
