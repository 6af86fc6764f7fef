"""Lexical classification of SQL statements into operation types."""

from __future__ import annotations

from scoped_nl2sql.models.template import OperationType
from scoped_nl2sql.sql.lexer import ScanResult, scan_sql
from scoped_nl2sql.sql.parser import DEFAULT_DIALECT
from scoped_nl2sql.sql.rules import LEADING_KEYWORD_OPERATIONS


def classify_scan(scan: ScanResult) -> OperationType:
    """Classify an already scanned statement by its first token."""
    # Comments never reach the token stream, so a leading comment is skipped.
    if scan.error is not None or not scan.tokens:
        return OperationType.UNKNOWN
    return LEADING_KEYWORD_OPERATIONS.get(scan.tokens[0].token_type, OperationType.UNKNOWN)


def classify_operation(sql: str | None, *, dialect: str = DEFAULT_DIALECT) -> OperationType:
    """Return the operation type of ``sql``; never raises."""
    if not sql or not sql.strip():
        return OperationType.UNKNOWN
    return classify_scan(scan_sql(sql, dialect=dialect))
