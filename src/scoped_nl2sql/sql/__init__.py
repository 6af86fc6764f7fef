"""SQL classification, validation, scoping and safety utilities."""

from scoped_nl2sql.sql.classifier import classify_operation
from scoped_nl2sql.sql.parameters import (
    ParameterValidationError,
    ValidatedValue,
    is_compatible,
    validate_parameter,
)
from scoped_nl2sql.sql.parser import SQLParseError, parse_statement
from scoped_nl2sql.sql.safety import (
    SafetyReport,
    SafetyViolation,
    check_sql,
    ensure_safe_sql,
)
from scoped_nl2sql.sql.tenant import ScopedSql, TenantScopeError, scope_sql

__all__ = [
    "ParameterValidationError",
    "SQLParseError",
    "SafetyReport",
    "SafetyViolation",
    "ScopedSql",
    "TenantScopeError",
    "ValidatedValue",
    "check_sql",
    "classify_operation",
    "ensure_safe_sql",
    "is_compatible",
    "parse_statement",
    "scope_sql",
    "validate_parameter",
]
