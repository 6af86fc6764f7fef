"""Template-driven SQL generation pipeline.

Each call runs ``Start -> TemplateSelected -> ParametersValidated ->
Instantiated -> TenantScoped -> SafetyChecked`` and ends in a successful
result or a failed result carrying one ``ErrorKind``. The generator keeps no
per-call state, so one instance can serve concurrent callers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from scoped_nl2sql.catalog.matcher import match_template, parameter_values_from_entities
from scoped_nl2sql.catalog.source import TemplateSource
from scoped_nl2sql.config import Settings
from scoped_nl2sql.extract.base import IntentExtractor
from scoped_nl2sql.models.generation import ErrorKind, GenerationError, GenerationResult
from scoped_nl2sql.models.template import OperationType, Template, TenantContext
from scoped_nl2sql.sql.classifier import classify_operation
from scoped_nl2sql.sql.parameters import validate_parameter
from scoped_nl2sql.sql.lexer import scan_sql
from scoped_nl2sql.sql.safety import ensure_safe_sql
from scoped_nl2sql.sql.tenant import ScopedSql, TenantScopeError, scope_sql

logger = logging.getLogger(__name__)


class SqlGenerator:
    """Generate parameterized, tenant-scoped SQL from vetted templates."""

    def __init__(
        self,
        template_source: TemplateSource | None = None,
        extractor: IntentExtractor | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._template_source = template_source
        self._extractor = extractor
        self._settings = settings or Settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def determine_operation_type(self, sql: str) -> OperationType:
        """Classify arbitrary SQL without running generation."""
        return classify_operation(sql, dialect=self._settings.sql_dialect)

    def generate_from_template(
        self,
        template: Template,
        parameter_values: Mapping[str, Any] | None = None,
        tenant_context: TenantContext | None = None,
    ) -> GenerationResult:
        """Bind ``parameter_values`` to ``template`` and return checked SQL."""
        try:
            return self._generate(template, parameter_values or {}, tenant_context)
        except GenerationError as exc:
            logger.info(
                "Generation from template '%s' failed with %s: %s",
                template.id,
                exc.kind.value,
                exc.message,
            )
            return GenerationResult.failure(exc.kind, exc.message, template_id=template.id)

    def generate_from_query(
        self,
        text: str,
        tenant_context: TenantContext,
    ) -> GenerationResult:
        """Select a template for a natural-language request and generate SQL.

        Extractor and template source failures propagate to the caller; no
        partial result is returned for them.
        """
        if self._template_source is None or self._extractor is None:
            raise RuntimeError(
                "generate_from_query requires a template source and an intent extractor."
            )

        templates = tuple(self._template_source.list_templates(tenant_context.tenant_id))
        extraction = self._extractor.extract(text)
        logger.debug(
            "Extracted intent tags %s and %d entities.",
            list(extraction.intent_tags),
            len(extraction.entities),
        )

        settings = self._settings
        match = match_template(
            extraction.intent_tags,
            extraction.entities,
            templates,
            intent_weight=settings.match_intent_weight,
            entity_weight=settings.match_entity_weight,
            min_score=settings.match_min_score,
            min_confidence=settings.match_min_entity_confidence,
        )
        if match.selected is not None:
            template = match.selected.template
        else:
            template = self._fallback_template(templates)
            if template is None:
                return GenerationResult.failure(
                    ErrorKind.NO_APPLICABLE_TEMPLATE,
                    "No applicable template matched the request.",
                )

        values = parameter_values_from_entities(
            template,
            extraction.entities,
            min_confidence=settings.match_min_entity_confidence,
        )
        return self.generate_from_template(template, values, tenant_context)

    def _fallback_template(self, templates: Sequence[Template]) -> Template | None:
        fallback_id = self._settings.fallback_template_id
        if fallback_id is None:
            return None
        for template in templates:
            if template.id == fallback_id:
                logger.info("No template matched; using fallback template '%s'.", fallback_id)
                return template
        logger.warning("Fallback template '%s' is not available.", fallback_id)
        return None

    def _validate_parameters(
        self, template: Template, parameter_values: Mapping[str, Any]
    ) -> dict[str, Any]:
        supplied = {str(name).lstrip("@"): value for name, value in parameter_values.items()}
        declared = {definition.name for definition in template.parameter_defs}
        ignored = sorted(set(supplied) - declared)
        if ignored:
            logger.debug(
                "Ignoring undeclared parameters for template '%s': %s",
                template.id,
                ", ".join(ignored),
            )

        bindings: dict[str, Any] = {}
        for definition in template.parameter_defs:
            validated = validate_parameter(definition, supplied.get(definition.name))
            if validated is not None:
                bindings[definition.name] = validated.value
        return bindings

    def _ensure_tenant_bound(
        self, template: Template, scoped: ScopedSql, bindings: Mapping[str, Any]
    ) -> None:
        tenant_parameter = self._settings.tenant_parameter_name.lower()
        bound = {**bindings, **scoped.parameters}
        if any(name.lower() == tenant_parameter for name in bound):
            return
        placeholders = scan_sql(scoped.sql, dialect=self._settings.sql_dialect).placeholders
        if any(name.lower() == tenant_parameter for name in placeholders):
            raise TenantScopeError(
                f"Template '{template.id}' references @{self._settings.tenant_parameter_name} "
                "but no tenant binding applies to this request."
            )

    def _generate(
        self,
        template: Template,
        parameter_values: Mapping[str, Any],
        tenant_context: TenantContext | None,
    ) -> GenerationResult:
        settings = self._settings
        logger.debug("Template '%s' selected.", template.id)

        bindings = self._validate_parameters(template, parameter_values)
        logger.debug("Validated %d parameter(s) for '%s'.", len(bindings), template.id)

        # The pattern is the statement; values are only ever bound, never spliced.
        sql = template.sql_pattern.strip()
        ensure_safe_sql(
            sql, template.allowed_operation, bindings, dialect=settings.sql_dialect
        )

        tenant_parameter = settings.tenant_parameter_name
        if template.tenant_scope_column is not None and any(
            name.lower() == tenant_parameter.lower() for name in bindings
        ):
            raise TenantScopeError(
                f"Template '{template.id}' declares parameter '{tenant_parameter}', "
                "which is reserved for the tenant binding."
            )
        scoped = scope_sql(
            sql,
            template,
            tenant_context,
            parameter_name=tenant_parameter,
            dialect=settings.sql_dialect,
        )

        self._ensure_tenant_bound(template, scoped, bindings)

        # Optional parameters left without a value may keep their placeholder.
        unbound_optional = [
            definition.name
            for definition in template.parameter_defs
            if not definition.required and definition.name not in bindings
        ]
        report = ensure_safe_sql(
            scoped.sql,
            template.allowed_operation,
            {**bindings, **scoped.parameters},
            allowed_unbound=unbound_optional,
            dialect=settings.sql_dialect,
        )
        logger.debug(
            "Template '%s' produced a %s statement (tenant scoping: %s).",
            template.id,
            report.operation_type.value,
            scoped.reason,
        )
        return GenerationResult.success(
            sql=scoped.sql,
            parameters=bindings,
            tenant_parameters=dict(scoped.parameters),
            template_id=template.id,
            operation_type=report.operation_type,
        )
