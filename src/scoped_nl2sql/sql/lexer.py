"""Statement scanning on top of the SQLGlot tokenizer.

SQLGlot drops comments from the token stream, so comment markers are recovered
from the source text between token offsets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import TokenError
from sqlglot.tokens import Token, TokenType

from scoped_nl2sql.sql.parser import DEFAULT_DIALECT

_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_LINE_COMMENT_MARKERS = ("--", "#")
# Innermost block comment; nested comments are removed from the inside out.
_BLOCK_COMMENT = re.compile(r"/\*(?:(?!/\*).)*?\*/", re.DOTALL)
# Appended to every scan; an unterminated block comment swallows it.
_SENTINEL = "\n;"


@dataclass(frozen=True)
class ScanResult:
    """Token stream plus structural defects found while scanning."""

    sql: str
    tokens: tuple[Token, ...] = ()
    placeholders: tuple[str, ...] = ()
    words: tuple[str, ...] = ()
    literals: frozenset[str] = frozenset()
    error: str | None = None
    line_comment: bool = False
    unterminated_comment: bool = False
    stray_comment_close: bool = False

    @property
    def separators(self) -> tuple[Token, ...]:
        return tuple(
            token for token in self.tokens if token.token_type is TokenType.SEMICOLON
        )

    @property
    def is_well_formed(self) -> bool:
        return self.error is None and not (
            self.unterminated_comment or self.stray_comment_close
        )


def is_literal(token: Token) -> bool:
    """True for string-like literal tokens (plain, national, hex, ...)."""
    return token.token_type.name.endswith("STRING")


def _adjacent(first: Token, second: Token) -> bool:
    return second.start == first.end + 1


def _source(text: str, token: Token) -> str:
    # Keyword tokens carry upper-cased text; names keep their source spelling.
    return text[token.start : token.end + 1]


def _without_block_comments(gap: str) -> str:
    while True:
        stripped = _BLOCK_COMMENT.sub(" ", gap)
        if stripped == gap:
            return gap
        gap = stripped


def _placeholder_positions(text: str, tokens: list[Token]) -> dict[int, str]:
    """Map token index to placeholder name for every ``@name`` reference."""
    found: dict[int, str] = {}
    for index, token in enumerate(tokens):
        if is_literal(token) or token.token_type is TokenType.IDENTIFIER:
            continue
        raw = _source(text, token)
        if raw == "@":
            previous = tokens[index - 1] if index else None
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            # ``@@name`` is a server variable, not a placeholder.
            if previous is not None and previous.text == "@" and _adjacent(previous, token):
                continue
            if (
                following is None
                or not _adjacent(token, following)
                or is_literal(following)
                or following.token_type is TokenType.IDENTIFIER
                or not _NAME.match(_source(text, following))
            ):
                continue
            found[index + 1] = _source(text, following)
        elif raw.startswith("@") and not raw.startswith("@@") and _NAME.match(raw[1:]):
            found[index] = raw[1:]
    return found


def scan_sql(sql: str, *, dialect: str = DEFAULT_DIALECT) -> ScanResult:
    """Tokenize ``sql`` with the dialect's tokenizer without parsing it."""
    text = sql + _SENTINEL
    try:
        tokens = list(Dialect.get_or_raise(dialect).tokenize(text))
    except TokenError as exc:
        return ScanResult(sql=sql, error=str(exc))

    sentinel_start = len(sql) + 1
    if (
        tokens
        and tokens[-1].token_type is TokenType.SEMICOLON
        and tokens[-1].start == sentinel_start
    ):
        tokens.pop()
        unterminated_comment = False
    else:
        unterminated_comment = True

    gaps = []
    previous_end = -1
    for token in tokens:
        gaps.append(text[previous_end + 1 : token.start])
        previous_end = token.end
    gaps.append(text[previous_end + 1 : len(sql)])
    line_comment = any(
        marker in _without_block_comments(gap)
        for gap in gaps
        for marker in _LINE_COMMENT_MARKERS
    )

    stray_comment_close = any(
        first.token_type is TokenType.STAR
        and second.token_type is TokenType.SLASH
        and _adjacent(first, second)
        for first, second in zip(tokens, tokens[1:])
    )

    placeholders = _placeholder_positions(text, tokens)
    words = tuple(
        token.text.upper()
        for index, token in enumerate(tokens)
        if index not in placeholders
        and not is_literal(token)
        and token.token_type is not TokenType.IDENTIFIER
    )
    literals = frozenset(
        token.text
        for token in tokens
        if is_literal(token) or token.token_type is TokenType.NUMBER
    )

    return ScanResult(
        sql=sql,
        tokens=tuple(tokens),
        placeholders=tuple(placeholders[index] for index in sorted(placeholders)),
        words=words,
        literals=literals,
        line_comment=line_comment,
        unterminated_comment=unterminated_comment,
        stray_comment_close=stray_comment_close,
    )
