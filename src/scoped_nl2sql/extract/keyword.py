"""Heuristic lexical extractor used when no model-backed extractor is configured."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from scoped_nl2sql.extract.base import Entity, ExtractionError, ExtractionResult, IntentExtractor
from scoped_nl2sql.models.template import ParameterType

_TOKEN_SPLIT = re.compile(r"[^a-z0-9_]+")
_ASSIGNMENT = re.compile(
    r"\b([A-Za-z_][A-Za-z0-9_]*)\s*[:=]\s*(?:'([^']*)'|\"([^\"]*)\"|([^\s,;]+))"
)
_EMAIL = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_ISO_DATE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_NUMBER = re.compile(r"(?<![\w.@-])[+-]?\d+(?:\.\d+)?(?![\w.])")
_QUOTED = re.compile(r"'([^']+)'|\"([^\"]+)\"")

DEFAULT_STOPWORDS = frozenset(
    {
        "a", "all", "an", "and", "any", "are", "as", "at", "be", "by", "for",
        "from", "give", "i", "in", "is", "it", "me", "my", "of", "on", "or",
        "please", "show", "some", "than", "that", "the", "to", "what", "which",
        "with",
    }
)


def _tokenize(value: str) -> list[str]:
    cleaned = value.lower().strip()
    if not cleaned:
        return []
    return [token for token in _TOKEN_SPLIT.split(cleaned) if token]


def _number_entity(text: str) -> Entity:
    if "." in text:
        return Entity(name="number", value=Decimal(text), type_hint=ParameterType.DECIMAL)
    return Entity(name="number", value=int(text), type_hint=ParameterType.INT)


@dataclass(frozen=True)
class KeywordIntentExtractor(IntentExtractor):
    """Tag a question by its keywords and pull out explicit values.

    Intent tags are the question's tokens, minus stopwords, mapped through
    ``synonyms``. Entities come from ``name=value`` / ``name: value`` pairs,
    e-mail addresses, ISO dates, quoted strings and bare numbers.
    """

    synonyms: Mapping[str, str] = field(default_factory=dict)
    stopwords: frozenset[str] = DEFAULT_STOPWORDS

    def extract(self, text: str) -> ExtractionResult:
        if not text or not text.strip():
            raise ExtractionError("Question cannot be empty.")

        consumed: list[tuple[int, int]] = []
        entities: list[Entity] = []

        def claim(span: tuple[int, int]) -> bool:
            if any(span[0] < end and start < span[1] for start, end in consumed):
                return False
            consumed.append(span)
            return True

        for match in _ASSIGNMENT.finditer(text):
            if claim(match.span()):
                value = next(group for group in match.groups()[1:] if group is not None)
                entities.append(Entity(name=match.group(1), value=value))
        for match in _EMAIL.finditer(text):
            if claim(match.span()):
                entities.append(
                    Entity(name="email", value=match.group(0), type_hint=ParameterType.STRING)
                )
        for match in _ISO_DATE.finditer(text):
            if claim(match.span()):
                entities.append(
                    Entity(name="date", value=match.group(0), type_hint=ParameterType.DATE)
                )
        for match in _QUOTED.finditer(text):
            if claim(match.span()):
                value = match.group(1) if match.group(1) is not None else match.group(2)
                entities.append(Entity(name="text", value=value, type_hint=ParameterType.STRING))
        for match in _NUMBER.finditer(text):
            if claim(match.span()):
                entities.append(_number_entity(match.group(0)))

        return ExtractionResult(
            intent_tags=self._intent_tags(_tokenize(text)),
            entities=tuple(entities),
        )

    def _intent_tags(self, tokens: Iterable[str]) -> tuple[str, ...]:
        tags: list[str] = []
        for token in tokens:
            if token in self.stopwords or token.isdigit():
                continue
            tag = self.synonyms.get(token, token)
            if tag not in tags:
                tags.append(tag)
        return tuple(tags)
