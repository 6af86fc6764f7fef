"""Safety gate rejecting structurally unsafe or policy-violating statements."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from scoped_nl2sql.models.generation import ErrorKind, GenerationError
from scoped_nl2sql.models.template import OperationType
from scoped_nl2sql.sql.classifier import classify_scan
from scoped_nl2sql.sql.lexer import ScanResult, scan_sql
from scoped_nl2sql.sql.parser import DEFAULT_DIALECT
from scoped_nl2sql.sql.rules import FORBIDDEN_KEYWORDS

logger = logging.getLogger(__name__)


class SafetyViolation(GenerationError):
    """Raised when SQL fails the safety gate."""


@dataclass(frozen=True)
class SafetyReport:
    """Structured safety gate outcome."""

    sql: str
    operation_type: OperationType
    placeholders: tuple[str, ...] = ()
    error_kind: ErrorKind | None = None
    violations: list[str] = field(default_factory=list)

    @property
    def is_safe(self) -> bool:
        return self.error_kind is None


def _check_tokens(scan: ScanResult) -> str | None:
    if scan.error is not None:
        return f"Statement could not be tokenized: {scan.error}"
    return None


def _check_single_statement(scan: ScanResult) -> str | None:
    separators = scan.separators
    if separators:
        return (
            "Statement separator ';' found outside a string literal at offset "
            f"{separators[0].start}; only a single statement is allowed."
        )
    return None


def _check_operation(
    scan: ScanResult,
    operation: OperationType,
    allowed_operation: OperationType,
) -> str | None:
    if operation is not allowed_operation:
        return (
            f"Statement classifies as {operation.value} but the template only "
            f"allows {allowed_operation.value}."
        )
    forbidden = sorted({word for word in scan.words if word in FORBIDDEN_KEYWORDS})
    if forbidden:
        return "Forbidden SQL keyword(s) detected: " + ", ".join(forbidden)
    return None


def _check_structure(scan: ScanResult) -> str | None:
    if scan.unterminated_comment:
        return "Statement contains an unterminated block comment."
    if scan.stray_comment_close:
        return "Statement contains a comment terminator '*/' without an opening '/*'."
    if scan.line_comment:
        return "Line comments are not allowed in generated statements."
    return None


def _literal_text(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _check_placeholders(
    scan: ScanResult, bound_parameters: Mapping[str, Any]
) -> str | None:
    present = {name.lower() for name in scan.placeholders}
    for name, value in bound_parameters.items():
        if name.lower() in present:
            continue
        if value is not None and _literal_text(value) in scan.literals:
            return (
                f"Parameter '{name}' appears to be inlined as a literal; "
                f"it must be referenced as placeholder @{name}."
            )
        return f"Bound parameter '{name}' has no @{name} placeholder in the statement."
    return None


def _check_unbound(
    scan: ScanResult,
    bound_parameters: Mapping[str, Any],
    allowed_unbound: Collection[str],
) -> str | None:
    known = {name.lower() for name in bound_parameters}
    known.update(name.lower() for name in allowed_unbound)
    missing = sorted({name for name in scan.placeholders if name.lower() not in known})
    if missing:
        return "Placeholder(s) without a bound value: " + ", ".join(
            f"@{name}" for name in missing
        )
    return None


def check_sql(
    sql: str,
    allowed_operation: OperationType,
    bound_parameters: Mapping[str, Any] | None = None,
    *,
    allowed_unbound: Collection[str] | None = None,
    dialect: str = DEFAULT_DIALECT,
) -> SafetyReport:
    """Run the safety checks in order; the first failure wins.

    Every bound parameter must appear as a placeholder. When ``allowed_unbound``
    is given the reverse holds too: each placeholder must be bound or named in
    ``allowed_unbound`` (declared optional parameters left without a value).
    """
    scan = scan_sql(sql, dialect=dialect)
    operation = classify_scan(scan)
    bound = bound_parameters or {}

    checks = [
        (ErrorKind.MALFORMED_STATEMENT, lambda: _check_tokens(scan)),
        (ErrorKind.MALFORMED_STATEMENT, lambda: _check_single_statement(scan)),
        (
            ErrorKind.OPERATION_NOT_ALLOWED,
            lambda: _check_operation(scan, operation, allowed_operation),
        ),
        (ErrorKind.MALFORMED_STATEMENT, lambda: _check_structure(scan)),
        (ErrorKind.MALFORMED_STATEMENT, lambda: _check_placeholders(scan, bound)),
    ]
    if allowed_unbound is not None:
        checks.append(
            (
                ErrorKind.MALFORMED_STATEMENT,
                lambda: _check_unbound(scan, bound, allowed_unbound),
            )
        )
    for kind, check in checks:
        violation = check()
        if violation is not None:
            logger.warning("Safety gate rejected statement: %s", violation)
            return SafetyReport(
                sql=sql,
                operation_type=operation,
                placeholders=scan.placeholders,
                error_kind=kind,
                violations=[violation],
            )

    return SafetyReport(sql=sql, operation_type=operation, placeholders=scan.placeholders)


def ensure_safe_sql(
    sql: str,
    allowed_operation: OperationType,
    bound_parameters: Mapping[str, Any] | None = None,
    *,
    allowed_unbound: Collection[str] | None = None,
    dialect: str = DEFAULT_DIALECT,
) -> SafetyReport:
    """Run the safety gate and raise when the statement is rejected."""
    report = check_sql(
        sql,
        allowed_operation,
        bound_parameters,
        allowed_unbound=allowed_unbound,
        dialect=dialect,
    )
    if report.error_kind is not None:
        raise SafetyViolation(report.error_kind, "\n".join(report.violations))
    return report
