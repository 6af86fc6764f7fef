"""Template, parameter and tenant models consumed by the generator."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
QUALIFIED_COLUMN_PATTERN = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)?$"
)


class OperationType(str, Enum):
    """Coarse SQL statement category determined by lexical inspection."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"


class ParameterType(str, Enum):
    """Declared type of a template parameter."""

    STRING = "string"
    INT = "int"
    DECIMAL = "decimal"
    DATE = "date"
    BOOL = "bool"
    ENUM = "enum"


class StringFormat(str, Enum):
    """Well-known textual formats a string parameter can be held to."""

    EMAIL = "email"
    URL = "url"


_RANGE_TYPES = {
    ParameterType.INT: Decimal,
    ParameterType.DECIMAL: Decimal,
    ParameterType.DATE: date,
}


class ParameterConstraint(BaseModel):
    """Range, regex, format, allowed-set and length constraints for one parameter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_value: Decimal | date | None = None
    max_value: Decimal | date | None = None
    pattern: str | None = None
    allowed_values: tuple[str, ...] | None = None
    max_length: int | None = Field(default=None, ge=1)
    format: StringFormat | None = None

    @field_validator("allowed_values", mode="before")
    @classmethod
    def stringify_allowed_values(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return tuple(str(item) for item in value)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression: {exc}") from exc
        return value

    @model_validator(mode="after")
    def validate_range(self) -> ParameterConstraint:
        if self.min_value is not None and self.max_value is not None:
            if type(self.min_value) is not type(self.max_value):
                raise ValueError("min_value and max_value must have the same type.")
            if self.min_value > self.max_value:
                raise ValueError("min_value cannot be greater than max_value.")
        if self.allowed_values is not None and not self.allowed_values:
            raise ValueError("allowed_values cannot be empty.")
        return self

    @property
    def has_range(self) -> bool:
        return self.min_value is not None or self.max_value is not None


class ParameterDefinition(BaseModel):
    """Declaration of a named placeholder within a template."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    type: ParameterType = ParameterType.STRING
    required: bool = True
    constraint: ParameterConstraint | None = None
    default_value: Any = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip().lstrip("@")
        if not IDENTIFIER_PATTERN.match(normalized):
            raise ValueError(f"'{value}' is not a valid parameter name.")
        return normalized

    @model_validator(mode="after")
    def validate_constraint_fits_type(self) -> ParameterDefinition:
        constraint = self.constraint
        if self.type is ParameterType.ENUM and (
            constraint is None or constraint.allowed_values is None
        ):
            raise ValueError(
                f"Enum parameter '{self.name}' must declare allowed_values."
            )
        if (
            constraint is not None
            and constraint.format is not None
            and self.type is not ParameterType.STRING
        ):
            raise ValueError(
                f"Only string parameters can declare a format; '{self.name}' is "
                f"{self.type.value}."
            )
        if constraint is None or not constraint.has_range:
            return self

        expected = _RANGE_TYPES.get(self.type)
        if expected is None:
            raise ValueError(
                f"Parameter '{self.name}' of type {self.type.value} cannot declare a range."
            )
        for bound in (constraint.min_value, constraint.max_value):
            if bound is not None and not isinstance(bound, expected):
                raise ValueError(
                    f"Range bound {bound!r} does not match type {self.type.value} "
                    f"of parameter '{self.name}'."
                )
        return self

    @property
    def placeholder(self) -> str:
        return f"@{self.name}"


class Template(BaseModel):
    """Vetted, parameterized SQL skeleton with operation and tenant rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    sql_pattern: str = Field(min_length=1)
    parameter_defs: tuple[ParameterDefinition, ...] = ()
    allowed_operation: OperationType = OperationType.SELECT
    tenant_scope_column: str | None = None
    intent_tags: frozenset[str] = frozenset()
    description: str | None = None
    version: str = "1.0"

    @field_validator("allowed_operation", mode="before")
    @classmethod
    def normalize_operation(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("allowed_operation")
    @classmethod
    def validate_operation(cls, value: OperationType) -> OperationType:
        if value is OperationType.UNKNOWN:
            raise ValueError("allowed_operation must be SELECT, INSERT, UPDATE or DELETE.")
        return value

    @field_validator("tenant_scope_column")
    @classmethod
    def validate_tenant_scope_column(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not QUALIFIED_COLUMN_PATTERN.match(normalized):
            raise ValueError(f"'{value}' is not a valid column reference.")
        return normalized

    @field_validator("intent_tags", mode="before")
    @classmethod
    def normalize_intent_tags(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = [value]
        return frozenset(
            str(tag).strip().lower() for tag in value if str(tag).strip()
        )

    @model_validator(mode="after")
    def validate_unique_parameter_names(self) -> Template:
        if not self.sql_pattern.strip():
            raise ValueError("sql_pattern cannot be blank.")
        seen: set[str] = set()
        for definition in self.parameter_defs:
            key = definition.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate parameter name '{definition.name}'.")
            seen.add(key)
        return self

    @property
    def required_parameters(self) -> tuple[ParameterDefinition, ...]:
        return tuple(item for item in self.parameter_defs if item.required)


class TenantContext(BaseModel):
    """Caller identity supplied per generation call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tenant_id: str = Field(min_length=1)
    user_id: str | None = None
    can_access_all_tenants: bool = False

    @field_validator("tenant_id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)
