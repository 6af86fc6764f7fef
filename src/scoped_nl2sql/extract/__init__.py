"""Intent/entity extractors and factory helpers."""

from collections.abc import Sequence

from scoped_nl2sql.config import Settings
from scoped_nl2sql.extract.base import (
    Entity,
    ExtractionError,
    ExtractionResult,
    IntentExtractor,
)
from scoped_nl2sql.extract.keyword import KeywordIntentExtractor
from scoped_nl2sql.extract.openai_adapter import OpenAIIntentExtractor
from scoped_nl2sql.models.template import Template


def create_intent_extractor(
    settings: Settings,
    templates: Sequence[Template] = (),
) -> IntentExtractor:
    """Create the default extractor for current settings."""
    if settings.openai_api_key:
        return OpenAIIntentExtractor(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            templates=tuple(templates),
        )
    return KeywordIntentExtractor()


__all__ = [
    "Entity",
    "ExtractionError",
    "ExtractionResult",
    "IntentExtractor",
    "KeywordIntentExtractor",
    "OpenAIIntentExtractor",
    "create_intent_extractor",
]
