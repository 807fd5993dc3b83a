"""Per-task reply decoding.

Sentiment, Entities and QA replies are JSON records; Summary and KeyPoints
replies are plain text. Every decoder here is total: a reply that cannot be
interpreted yields a fallback value flagged as degraded, never an exception.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import ValidationError

from textlens.core.models import Entity, QAPair, Sentiment, SentimentLabel, TaskKind
from textlens.decoding.outcome import DecodeOutcome
from textlens.decoding.sections import (
    fallback_sentiment,
    match_label,
    parse_bullets,
)


def decode_task_reply(task: TaskKind, raw: str) -> DecodeOutcome:
    """Decode one per-task reply with the decoder owning `task`."""
    return _TASK_DECODERS[task](raw or "")


# -----------------------------------------------------------------------------
# JSON extraction
# -----------------------------------------------------------------------------


def _strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        cleaned = cleaned[first_newline + 1 :] if first_newline != -1 else cleaned.strip("`")
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def _balanced_candidates(raw: str, opener: str, closer: str) -> Iterator[str]:
    """Yield top-level balanced `opener...closer` spans.

    Quotes only open a string inside a span; quotes in the surrounding prose
    are plain text.
    """
    depth = 0
    start: Optional[int] = None
    in_string = False
    escape = False
    for idx, ch in enumerate(raw):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
            continue
        if ch == opener:
            if depth == 0:
                start = idx
            depth += 1
        elif ch == closer and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                yield raw[start : idx + 1]
                start = None


def _load_json(text: str, expected: type) -> Any:
    """Best-effort JSON load of a value of type `expected` (dict or list).

    Returns None when no such value can be found.
    """
    cleaned = _strip_code_fences(text)

    # First attempt: the whole reply is the value.
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError):
        data = None
    if isinstance(data, expected):
        return data
    if expected is list and isinstance(data, dict):
        # {"entities": [...]} style wrappers
        for value in data.values():
            if isinstance(value, list):
                return value

    # Second attempt: balanced values embedded in surrounding prose.
    opener, closer = ("{", "}") if expected is dict else ("[", "]")
    for candidate in _balanced_candidates(cleaned, opener, closer):
        try:
            data = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        if isinstance(data, expected):
            return data
    return None


def _first_str(item: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value).strip()
            if text:
                return text
    return ""


# -----------------------------------------------------------------------------
# Record decoders
# -----------------------------------------------------------------------------


def decode_sentiment(raw: str) -> DecodeOutcome:
    data = _load_json(raw, dict)
    if data is None:
        return DecodeOutcome.fallback(fallback_sentiment(), "reply is not a JSON object")

    label = SentimentLabel.parse(data.get("label", data.get("sentiment")))
    if label is None:
        return DecodeOutcome.fallback(fallback_sentiment(), "missing or unknown sentiment label")

    try:
        sentiment = Sentiment(
            label=label,
            score=data.get("score"),
            justification=_first_str(data, "justification", "explanation", "reason"),
        )
    except ValidationError as exc:
        return DecodeOutcome.fallback(
            fallback_sentiment(), f"sentiment record failed validation: {exc.error_count()} error(s)"
        )
    return DecodeOutcome.ok(sentiment)


def decode_entities(raw: str) -> DecodeOutcome:
    data = _load_json(raw, list)
    if data is None:
        return DecodeOutcome.fallback([], "reply is not a JSON array")

    entities: List[Entity] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        name = _first_str(item, "name", "text")
        if not name:
            continue
        entities.append(Entity(type=_first_str(item, "type", "label", "category"), name=name))
    return DecodeOutcome.ok(entities)


def decode_qa(raw: str) -> DecodeOutcome:
    data = _load_json(raw, list)
    if data is None:
        return DecodeOutcome.fallback([], "reply is not a JSON array")

    pairs: List[QAPair] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        question = _first_str(item, "question", "q")
        answer = _first_str(item, "answer", "a")
        if question and answer:
            pairs.append(QAPair(question=question, answer=answer))
    return DecodeOutcome.ok(pairs)


# -----------------------------------------------------------------------------
# Plain-text decoders
# -----------------------------------------------------------------------------


def _drop_leading_label(raw: str, task: TaskKind) -> List[str]:
    lines = raw.strip().splitlines()
    if lines:
        opened = match_label(lines[0])
        if opened is not None and opened[0] is task:
            rest = opened[1]
            lines = ([rest] if rest else []) + lines[1:]
    return lines


def decode_summary(raw: str) -> DecodeOutcome:
    summary = "\n".join(_drop_leading_label(raw, TaskKind.SUMMARY)).strip()
    if not summary:
        return DecodeOutcome.fallback("", "empty summary")
    return DecodeOutcome.ok(summary)


def decode_key_points(raw: str) -> DecodeOutcome:
    points = parse_bullets(_drop_leading_label(raw, TaskKind.KEY_POINTS))
    if not points:
        return DecodeOutcome.fallback([], "no bulleted key points")
    return DecodeOutcome.ok(points)


_TASK_DECODERS: Dict[TaskKind, Callable[[str], DecodeOutcome]] = {
    TaskKind.SUMMARY: decode_summary,
    TaskKind.KEY_POINTS: decode_key_points,
    TaskKind.SENTIMENT: decode_sentiment,
    TaskKind.ENTITIES: decode_entities,
    TaskKind.QA: decode_qa,
}
