"""Keyword tables used by statement classification and the safety gate."""

from __future__ import annotations

import re

from sqlglot.tokens import TokenType

from scoped_nl2sql.models.template import OperationType

LEADING_KEYWORD_OPERATIONS: dict[TokenType, OperationType] = {
    TokenType.SELECT: OperationType.SELECT,
    TokenType.INSERT: OperationType.INSERT,
    TokenType.UPDATE: OperationType.UPDATE,
    TokenType.DELETE: OperationType.DELETE,
}

FORBIDDEN_KEYWORDS: frozenset[str] = frozenset(
    {
        "ALTER",
        "CREATE",
        "DROP",
        "EXEC",
        "EXECUTE",
        "GRANT",
        "MERGE",
        "REVOKE",
        "SHUTDOWN",
        "TRUNCATE",
        "SP_EXECUTESQL",
        "XP_CMDSHELL",
    }
)

DEFAULT_TENANT_PARAMETER = "tenantId"

# Placeholder syntax shared by templates and generated SQL (T-SQL style).
PLACEHOLDER_PREFIX = "@"

# SQL fragments that never belong inside a bound string value.
INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r";\s*--",
        r";\s*/\*.*?\*/",
        r"UNION\s+ALL\s+SELECT",
        r"OR\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+['\"]?",
        r"DROP\s+TABLE",
        r"DELETE\s+FROM",
        r"INSERT\s+INTO",
        r"EXEC\s*\(",
        r"EXECUTE\s*\(",
    )
)
