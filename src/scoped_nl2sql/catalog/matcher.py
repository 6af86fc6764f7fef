"""Score templates against detected intent and extracted entities."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from scoped_nl2sql.extract.base import Entity
from scoped_nl2sql.models.template import ParameterDefinition, ParameterType, Template
from scoped_nl2sql.sql.parameters import is_compatible

logger = logging.getLogger(__name__)

DEFAULT_INTENT_WEIGHT = 1.0
DEFAULT_ENTITY_WEIGHT = 0.5
DEFAULT_MIN_SCORE = 1.0
DEFAULT_MIN_ENTITY_CONFIDENCE = 0.7

# Entity type hints that may fill a parameter of the given type.
_HINTS_FOR_TYPE: dict[ParameterType, frozenset[ParameterType]] = {
    ParameterType.STRING: frozenset({ParameterType.STRING}),
    ParameterType.INT: frozenset({ParameterType.INT}),
    ParameterType.DECIMAL: frozenset({ParameterType.DECIMAL, ParameterType.INT}),
    ParameterType.DATE: frozenset({ParameterType.DATE}),
    ParameterType.BOOL: frozenset({ParameterType.BOOL}),
    ParameterType.ENUM: frozenset({ParameterType.ENUM, ParameterType.STRING}),
}


@dataclass(frozen=True)
class TemplateScore:
    """Single scored template with match details."""

    template: Template
    score: float
    matched_tags: tuple[str, ...]
    matched_parameters: tuple[str, ...]
    unmatched_required: int

    @property
    def template_id(self) -> str:
        return self.template.id


@dataclass(frozen=True)
class MatchResult:
    """Ranked match outcome; ``selected`` is None when nothing qualifies."""

    selected: TemplateScore | None
    candidates: list[TemplateScore] = field(default_factory=list)

    @property
    def is_match(self) -> bool:
        return self.selected is not None


def _name_key(value: str) -> str:
    return value.replace("_", "").lower()


def _trusted_entities(
    entities: Sequence[Entity], min_confidence: float
) -> list[Entity]:
    trusted = []
    for entity in entities:
        if entity.confidence is not None and entity.confidence < min_confidence:
            logger.debug(
                "Ignoring entity '%s' with confidence %.2f below %.2f.",
                entity.name,
                entity.confidence,
                min_confidence,
            )
            continue
        trusted.append(entity)
    return trusted


def assign_entities(
    parameter_defs: Sequence[ParameterDefinition],
    entities: Sequence[Entity],
    *,
    min_confidence: float = DEFAULT_MIN_ENTITY_CONFIDENCE,
) -> dict[str, Entity]:
    """Pair parameters with extracted entities.

    Entities whose name matches a parameter are assigned first. Parameters
    still open then take the first unclaimed entity whose type hint fits the
    parameter type. Either way the value must coerce to the parameter type,
    and each entity fills at most one parameter.
    """
    candidates = _trusted_entities(entities, min_confidence)
    claimed: set[int] = set()
    assigned: dict[str, Entity] = {}

    for definition in parameter_defs:
        key = _name_key(definition.name)
        for index, entity in enumerate(candidates):
            if index in claimed or _name_key(entity.name) != key:
                continue
            if is_compatible(definition, entity.value):
                assigned[definition.name] = entity
                claimed.add(index)
                break

    for definition in parameter_defs:
        if definition.name in assigned:
            continue
        hints = _HINTS_FOR_TYPE[definition.type]
        for index, entity in enumerate(candidates):
            if index in claimed or entity.type_hint not in hints:
                continue
            if is_compatible(definition, entity.value):
                assigned[definition.name] = entity
                claimed.add(index)
                break
    return assigned


def score_template(
    template: Template,
    intent_tags: Iterable[str],
    entities: Sequence[Entity],
    *,
    intent_weight: float = DEFAULT_INTENT_WEIGHT,
    entity_weight: float = DEFAULT_ENTITY_WEIGHT,
    min_confidence: float = DEFAULT_MIN_ENTITY_CONFIDENCE,
) -> TemplateScore:
    """Score one template by intent overlap and compatible required entities."""
    requested = {tag.strip().lower() for tag in intent_tags if tag.strip()}
    matched_tags = tuple(sorted(requested & template.intent_tags))

    required = template.required_parameters
    assigned = assign_entities(
        template.parameter_defs, entities, min_confidence=min_confidence
    )
    matched_parameters = tuple(
        definition.name for definition in required if definition.name in assigned
    )

    score = len(matched_tags) * intent_weight + len(matched_parameters) * entity_weight
    return TemplateScore(
        template=template,
        score=round(score, 6),
        matched_tags=matched_tags,
        matched_parameters=matched_parameters,
        unmatched_required=len(required) - len(matched_parameters),
    )


def match_template(
    intent_tags: Iterable[str],
    entities: Sequence[Entity],
    templates: Sequence[Template],
    *,
    intent_weight: float = DEFAULT_INTENT_WEIGHT,
    entity_weight: float = DEFAULT_ENTITY_WEIGHT,
    min_score: float = DEFAULT_MIN_SCORE,
    min_confidence: float = DEFAULT_MIN_ENTITY_CONFIDENCE,
) -> MatchResult:
    """Select the best template or report no match.

    Candidates rank by higher score, then fewer unmatched required
    parameters, then smallest template id. A top score below ``min_score``
    (or zero) is a no-match rather than a low-confidence guess.
    """
    tags = tuple(intent_tags)
    ranked = sorted(
        (
            score_template(
                template,
                tags,
                entities,
                intent_weight=intent_weight,
                entity_weight=entity_weight,
                min_confidence=min_confidence,
            )
            for template in templates
        ),
        key=lambda item: (-item.score, item.unmatched_required, item.template_id),
    )

    if not ranked:
        logger.debug("No templates available for matching.")
        return MatchResult(selected=None)

    best = ranked[0]
    if best.score <= 0 or best.score < min_score:
        logger.debug(
            "Best template '%s' scored %.3f, below threshold %.3f.",
            best.template_id,
            best.score,
            min_score,
        )
        return MatchResult(selected=None, candidates=ranked)

    logger.debug("Selected template '%s' with score %.3f.", best.template_id, best.score)
    return MatchResult(selected=best, candidates=ranked)


def parameter_values_from_entities(
    template: Template,
    entities: Sequence[Entity],
    *,
    min_confidence: float = DEFAULT_MIN_ENTITY_CONFIDENCE,
) -> dict[str, Any]:
    """Map extracted entities onto the template's parameters."""
    assigned = assign_entities(
        template.parameter_defs, entities, min_confidence=min_confidence
    )
    return {name: entity.value for name, entity in assigned.items()}
