"""Type coercion and constraint checks for template parameter values."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlsplit

from scoped_nl2sql.models.generation import ErrorKind, GenerationError
from scoped_nl2sql.models.template import ParameterDefinition, ParameterType, StringFormat
from scoped_nl2sql.sql.rules import INJECTION_PATTERNS

_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")
_TRUE_WORDS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_WORDS = frozenset({"false", "f", "no", "n", "0"})
_EMAIL = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_URL_SCHEMES = frozenset({"http", "https"})


class ParameterValidationError(GenerationError):
    """Raised when a supplied value cannot be bound to a parameter."""


@dataclass(frozen=True)
class ValidatedValue:
    """Value ready for binding, with where it came from."""

    name: str
    value: Any
    used_default: bool = False


def _mismatch(definition: ParameterDefinition, value: Any) -> ParameterValidationError:
    return ParameterValidationError(
        ErrorKind.TYPE_MISMATCH,
        f"Parameter '{definition.name}' expects a {definition.type.value} value; "
        f"got {type(value).__name__} {value!r}.",
    )


def _coerce_string(definition: ParameterDefinition, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise _mismatch(definition, value)
    return str(value)


def _coerce_int(definition: ParameterDefinition, value: Any) -> int:
    if isinstance(value, bool):
        raise _mismatch(definition, value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    if isinstance(value, str) and _INTEGER_TEXT.match(value.strip()):
        return int(value.strip())
    raise _mismatch(definition, value)


def _coerce_decimal(definition: ParameterDefinition, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise _mismatch(definition, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise _mismatch(definition, value) from exc
    else:
        raise _mismatch(definition, value)
    if not result.is_finite():
        raise _mismatch(definition, value)
    return result


def _coerce_date(definition: ParameterDefinition, value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for parser in (date.fromisoformat, datetime.fromisoformat):
            try:
                return parser(text)
            except ValueError:
                continue
    raise _mismatch(definition, value)


def _coerce_bool(definition: ParameterDefinition, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    raise _mismatch(definition, value)


def _coerce_enum(definition: ParameterDefinition, value: Any) -> str:
    text = _coerce_string(definition, value).strip()
    allowed = definition.constraint.allowed_values if definition.constraint else None
    for candidate in allowed or ():
        if candidate.lower() == text.lower():
            return candidate
    raise ParameterValidationError(
        ErrorKind.CONSTRAINT_VIOLATION,
        f"Parameter '{definition.name}' must be one of: {', '.join(allowed or ())}.",
    )


_COERCERS = {
    ParameterType.STRING: _coerce_string,
    ParameterType.INT: _coerce_int,
    ParameterType.DECIMAL: _coerce_decimal,
    ParameterType.DATE: _coerce_date,
    ParameterType.BOOL: _coerce_bool,
    ParameterType.ENUM: _coerce_enum,
}


def coerce_value(definition: ParameterDefinition, value: Any) -> Any:
    """Convert ``value`` to the parameter's declared type or raise TypeMismatch."""
    return _COERCERS[definition.type](definition, value)


def _range_operand(definition: ParameterDefinition, value: Any) -> Any:
    if definition.type is ParameterType.INT:
        return Decimal(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def _violation(definition: ParameterDefinition, detail: str) -> ParameterValidationError:
    return ParameterValidationError(
        ErrorKind.CONSTRAINT_VIOLATION,
        f"Parameter '{definition.name}' {detail}.",
    )


def _is_web_url(text: str) -> bool:
    try:
        parts = urlsplit(text)
    except ValueError:
        return False
    return parts.scheme.lower() in _URL_SCHEMES and bool(parts.netloc)


def check_injection(definition: ParameterDefinition, value: Any) -> None:
    """Reject string values carrying SQL statement fragments."""
    if not isinstance(value, str):
        return
    for pattern in INJECTION_PATTERNS:
        if pattern.search(value):
            raise _violation(definition, "contains SQL syntax and was rejected")


def check_constraints(definition: ParameterDefinition, value: Any) -> None:
    """Apply range, length, regex and allowed-set constraints to a coerced value."""
    constraint = definition.constraint
    if constraint is None:
        return

    if constraint.has_range:
        operand = _range_operand(definition, value)
        if constraint.min_value is not None and operand < constraint.min_value:
            raise _violation(definition, f"must be >= {constraint.min_value}")
        if constraint.max_value is not None and operand > constraint.max_value:
            raise _violation(definition, f"must be <= {constraint.max_value}")

    text = value.isoformat() if isinstance(value, date) else str(value)
    if isinstance(value, bool):
        text = "true" if value else "false"

    if constraint.max_length is not None and len(text) > constraint.max_length:
        raise _violation(
            definition, f"cannot be longer than {constraint.max_length} characters"
        )
    if constraint.pattern is not None and not re.fullmatch(constraint.pattern, text):
        raise _violation(definition, f"does not match pattern {constraint.pattern!r}")
    if constraint.format is StringFormat.EMAIL and not _EMAIL.fullmatch(text):
        raise _violation(definition, "is not a valid e-mail address")
    if constraint.format is StringFormat.URL and not _is_web_url(text):
        raise _violation(definition, "is not a valid http(s) URL")
    if (
        constraint.allowed_values is not None
        and definition.type is not ParameterType.ENUM
        and text not in constraint.allowed_values
    ):
        raise _violation(
            definition, f"must be one of: {', '.join(constraint.allowed_values)}"
        )


def validate_parameter(
    definition: ParameterDefinition, value: Any = None
) -> ValidatedValue | None:
    """Validate one supplied value; ``None`` means the value is missing.

    Returns ``None`` when an optional parameter is absent and has no default,
    meaning the parameter is omitted from the bindings.
    """
    used_default = False
    if value is None:
        if definition.required:
            raise ParameterValidationError(
                ErrorKind.MISSING_REQUIRED_PARAMETER,
                f"Parameter '{definition.name}' is required but no value was supplied.",
            )
        if definition.default_value is None:
            return None
        value = definition.default_value
        used_default = True

    coerced = coerce_value(definition, value)
    check_injection(definition, coerced)
    check_constraints(definition, coerced)
    return ValidatedValue(name=definition.name, value=coerced, used_default=used_default)


def is_compatible(definition: ParameterDefinition, value: Any) -> bool:
    """Return True when ``value`` would pass validation for ``definition``."""
    if value is None:
        return False
    try:
        validate_parameter(definition, value)
    except ParameterValidationError:
        return False
    return True
