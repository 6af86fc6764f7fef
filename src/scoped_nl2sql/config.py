"""Application configuration loading and validation."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scoped_nl2sql.models.template import IDENTIFIER_PATTERN
from scoped_nl2sql.sql.parser import PLACEHOLDER_DIALECTS


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded safely."""


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    template_catalog_path: Path = Path("./data/templates.json")
    sql_dialect: str = "tsql"
    tenant_parameter_name: str = "tenantId"
    match_min_score: float = Field(default=1.0, ge=0.0)
    match_intent_weight: float = Field(default=1.0, ge=0.0)
    match_entity_weight: float = Field(default=0.5, ge=0.0)
    match_min_entity_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    fallback_template_id: str | None = None
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    log_level: str = "WARNING"

    @field_validator("sql_dialect", "openai_model")
    @classmethod
    def validate_non_empty(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("value cannot be empty.")
        return normalized

    @field_validator("sql_dialect")
    @classmethod
    def validate_dialect(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in PLACEHOLDER_DIALECTS:
            raise ValueError(
                f"unsupported SQL dialect '{value}'; @name placeholders are only kept "
                f"by: {', '.join(PLACEHOLDER_DIALECTS)}."
            )
        return normalized

    @field_validator("tenant_parameter_name")
    @classmethod
    def validate_tenant_parameter_name(cls, value: str) -> str:
        normalized = value.strip().lstrip("@")
        if not IDENTIFIER_PATTERN.match(normalized):
            raise ValueError(f"'{value}' is not a valid parameter name.")
        return normalized

    @field_validator("fallback_template_id")
    @classmethod
    def validate_fallback_template_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"unknown log level '{value}'.")
        return normalized

    @field_validator("template_catalog_path", mode="before")
    @classmethod
    def validate_template_catalog_path(cls, value: str | Path) -> Path:
        path = Path(value).expanduser() if isinstance(value, str) else value
        if not str(path):
            raise ValueError("TEMPLATE_CATALOG_PATH cannot be empty.")
        return path

    def validate_llm_requirements(self) -> None:
        """Fail with a friendly message when LLM credentials are required."""
        if not self.openai_api_key.strip():
            raise ConfigError(
                "OPENAI_API_KEY is required for model-backed intent extraction."
            )


_ENV_FIELDS = {
    "template_catalog_path": "TEMPLATE_CATALOG_PATH",
    "sql_dialect": "SQL_DIALECT",
    "tenant_parameter_name": "TENANT_PARAMETER_NAME",
    "match_min_score": "MATCH_MIN_SCORE",
    "match_intent_weight": "MATCH_INTENT_WEIGHT",
    "match_entity_weight": "MATCH_ENTITY_WEIGHT",
    "match_min_entity_confidence": "MATCH_MIN_ENTITY_CONFIDENCE",
    "fallback_template_id": "FALLBACK_TEMPLATE_ID",
    "openai_api_key": "OPENAI_API_KEY",
    "openai_model": "OPENAI_MODEL",
    "log_level": "LOG_LEVEL",
}


def _env_value(name: str) -> str | None:
    import os

    value = os.getenv(name)
    if value is None:
        return None
    return value.strip()


def load_settings() -> Settings:
    """Load settings from environment variables; unset variables keep defaults."""
    payload = {
        field_name: value
        for field_name, env_name in _ENV_FIELDS.items()
        if (value := _env_value(env_name)) is not None
    }

    try:
        return Settings.model_validate(payload)
    except ValidationError as exc:
        messages = []
        for err in exc.errors():
            field = ".".join(str(item) for item in err["loc"])
            messages.append(f"- {_ENV_FIELDS.get(field, field)}: {err['msg']}")
        raise ConfigError(
            "Invalid configuration values:\n" + "\n".join(messages)
        ) from exc
