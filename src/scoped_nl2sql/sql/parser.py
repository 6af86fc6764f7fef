"""SQL parsing helpers backed by SQLGlot."""

from __future__ import annotations

from sqlglot import exp, parse
from sqlglot.errors import ParseError, TokenError

DEFAULT_DIALECT = "tsql"
# Dialects whose tokenizer and generator keep ``@name`` placeholders intact.
PLACEHOLDER_DIALECTS = ("tsql", "mysql", "sqlite")


class SQLParseError(RuntimeError):
    """Raised when SQL cannot be parsed safely."""


def parse_statement(sql: str, *, dialect: str = DEFAULT_DIALECT) -> exp.Expression:
    """Parse exactly one SQL statement using the given dialect."""
    normalized = sql.strip()
    if not normalized:
        raise SQLParseError("SQL cannot be empty.")

    try:
        statements = [item for item in parse(normalized, read=dialect) if item is not None]
    except (ParseError, TokenError) as exc:
        raise SQLParseError(f"Invalid SQL: {exc}") from exc

    if len(statements) != 1:
        raise SQLParseError(
            f"Expected a single SQL statement, found {len(statements)}."
        )
    statement = statements[0]
    if isinstance(statement, exp.Command):
        raise SQLParseError(
            f"Statement '{statement.name}' could not be parsed into a query tree."
        )
    return statement


def render_statement(expression: exp.Expression, *, dialect: str = DEFAULT_DIALECT) -> str:
    """Render an expression tree back to SQL text."""
    return expression.sql(dialect=dialect)
