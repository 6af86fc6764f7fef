"""Tenant isolation: inject and verify tenant predicates in statements."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from sqlglot import exp

from scoped_nl2sql.models.generation import ErrorKind, GenerationError
from scoped_nl2sql.models.template import Template, TenantContext
from scoped_nl2sql.sql.parser import (
    DEFAULT_DIALECT,
    SQLParseError,
    parse_statement,
    render_statement,
)
from scoped_nl2sql.sql.rules import DEFAULT_TENANT_PARAMETER, PLACEHOLDER_PREFIX

logger = logging.getLogger(__name__)


class TenantScopeError(GenerationError):
    """Raised when a statement cannot be tenant-scoped safely."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.UNSCOPABLE_TEMPLATE, message)


@dataclass(frozen=True)
class ScopedSql:
    """Statement after tenant scoping plus the tenant binding it needs."""

    sql: str
    applied: bool
    reason: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _ScopeTarget:
    column: str
    table: str | None
    placeholder: str
    dialect: str

    def predicate(self) -> exp.EQ:
        return exp.EQ(
            this=exp.column(self.column, table=self.table),
            expression=exp.Parameter(this=exp.var(self.placeholder[1:])),
        )

    def matches_column(self, node: exp.Expression) -> bool:
        if not isinstance(node, exp.Column) or node.name.lower() != self.column.lower():
            return False
        return self.table is None or node.table.lower() == self.table.lower()

    def is_placeholder(self, node: exp.Expression) -> bool:
        return node.sql(dialect=self.dialect).lower() == self.placeholder.lower()


def _unwrap(node: exp.Expression) -> exp.Expression:
    while isinstance(node, exp.Paren):
        node = node.this
    return node


def _conjuncts(node: exp.Expression) -> Iterator[exp.Expression]:
    node = _unwrap(node)
    if isinstance(node, exp.And):
        yield from _conjuncts(node.this)
        yield from _conjuncts(node.expression)
    else:
        yield node


def _has_tenant_predicate(where: exp.Where, target: _ScopeTarget) -> bool:
    found = False
    for conjunct in _conjuncts(where.this):
        if not isinstance(conjunct, exp.EQ):
            continue
        left, right = _unwrap(conjunct.this), _unwrap(conjunct.expression)
        if target.matches_column(right):
            left, right = right, left
        if not target.matches_column(left):
            continue
        if not target.is_placeholder(right):
            raise TenantScopeError(
                f"Tenant column '{target.column}' is already compared to "
                f"'{right.sql(dialect=target.dialect)}' instead of {target.placeholder}."
            )
        found = True
    return found


def _scope_filtered(expression: exp.Expression, target: _ScopeTarget) -> None:
    where = expression.args.get("where")
    if where is None:
        expression.set("where", exp.Where(this=target.predicate()))
        return
    if _has_tenant_predicate(where, target):
        return

    existing = where.this
    if isinstance(existing, exp.Connector) and not isinstance(existing, exp.And):
        existing = exp.Paren(this=existing)
    expression.set(
        "where",
        exp.Where(this=exp.And(this=existing, expression=target.predicate())),
    )


def _scope_insert(insert: exp.Insert, target: _ScopeTarget) -> None:
    schema = insert.this
    if not isinstance(schema, exp.Schema) or not schema.expressions:
        raise TenantScopeError(
            "INSERT without an explicit column list cannot be tenant-scoped."
        )
    values = insert.expression
    if not isinstance(values, exp.Values):
        raise TenantScopeError("INSERT ... SELECT cannot be tenant-scoped.")
    rows = values.expressions
    if not rows or not all(isinstance(row, exp.Tuple) for row in rows):
        raise TenantScopeError("INSERT rows must be parenthesized value lists.")

    names = [column.name.lower() for column in schema.expressions]
    if target.column.lower() in names:
        position = names.index(target.column.lower())
        for row in rows:
            if position >= len(row.expressions) or not target.is_placeholder(
                row.expressions[position]
            ):
                raise TenantScopeError(
                    f"Tenant column '{target.column}' is inserted with a value "
                    f"other than {target.placeholder}."
                )
        return

    schema.append("expressions", exp.to_identifier(target.column))
    for row in rows:
        row.append("expressions", target.predicate().expression)


def scope_sql(
    sql: str,
    template: Template,
    tenant_context: TenantContext | None,
    *,
    parameter_name: str = DEFAULT_TENANT_PARAMETER,
    dialect: str = DEFAULT_DIALECT,
) -> ScopedSql:
    """Apply the template's tenant predicate to ``sql``.

    Templates without a tenant scope column and callers with cross-tenant
    privilege pass through unchanged; both cases are logged for audit. The
    tenant id is returned as a binding and never written into the SQL text.
    """
    column_ref = template.tenant_scope_column
    if column_ref is None:
        logger.warning(
            "Template '%s' declares no tenant scope column; statement is not tenant-scoped.",
            template.id,
        )
        return ScopedSql(sql=sql, applied=False, reason="template is tenant-agnostic")

    if tenant_context is None:
        raise TenantScopeError(
            f"Template '{template.id}' is tenant-scoped on '{column_ref}' "
            "but no tenant context was supplied."
        )

    if tenant_context.can_access_all_tenants:
        logger.info(
            "User '%s' of tenant '%s' bypassed tenant scoping for template '%s'.",
            tenant_context.user_id,
            tenant_context.tenant_id,
            template.id,
        )
        return ScopedSql(sql=sql, applied=False, reason="cross-tenant access granted")

    try:
        expression = parse_statement(sql, dialect=dialect)
    except SQLParseError as exc:
        raise TenantScopeError(
            f"Template '{template.id}' cannot be tenant-scoped: {exc}"
        ) from exc

    table, _, column = column_ref.rpartition(".")
    target = _ScopeTarget(
        column=column,
        table=table or None,
        placeholder=f"{PLACEHOLDER_PREFIX}{parameter_name}",
        dialect=dialect,
    )

    if isinstance(expression, (exp.Select, exp.Update, exp.Delete)):
        _scope_filtered(expression, target)
    elif isinstance(expression, exp.Insert):
        _scope_insert(expression, target)
    else:
        raise TenantScopeError(
            f"Template '{template.id}' produces a {expression.key.upper()} statement, "
            "which cannot be tenant-scoped."
        )

    scoped = render_statement(expression, dialect=dialect)
    logger.debug("Applied tenant predicate on '%s' for template '%s'.", column_ref, template.id)
    return ScopedSql(
        sql=scoped,
        applied=True,
        reason="tenant predicate applied",
        parameters={parameter_name: tenant_context.tenant_id},
    )
