"""Provider-independent intent and entity extraction interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scoped_nl2sql.models.template import ParameterType


class ExtractionError(RuntimeError):
    """Raised when intent/entity extraction fails or returns invalid output."""


class Entity(BaseModel):
    """Named value pulled out of a natural-language request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    value: Any
    type_hint: ParameterType | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ExtractionResult(BaseModel):
    """Structured extraction output contract."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    intent_tags: tuple[str, ...] = ()
    entities: tuple[Entity, ...] = ()

    @field_validator("intent_tags", mode="before")
    @classmethod
    def normalize_intent_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        normalized: list[str] = []
        for tag in value:
            text = str(tag).strip().lower()
            if text and text not in normalized:
                normalized.append(text)
        return tuple(normalized)


class IntentExtractor(ABC):
    """Abstract intent/entity extractor."""

    @abstractmethod
    def extract(self, text: str) -> ExtractionResult:
        """Detect intent tags and entities in ``text``."""
