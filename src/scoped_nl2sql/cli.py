"""Command-line entrypoint for scoped-nl2sql."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import TYPE_CHECKING

from scoped_nl2sql import __version__
from scoped_nl2sql.sql.parser import DEFAULT_DIALECT, PLACEHOLDER_DIALECTS

if TYPE_CHECKING:
    from scoped_nl2sql.models.generation import GenerationResult


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scoped-nl2sql",
        description=(
            "Generate tenant-scoped, parameterized SQL from vetted templates "
            "for review or hand-off to an executor."
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log pipeline steps at DEBUG level.",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser(
        "config-check",
        help="Validate environment configuration for scoped-nl2sql.",
    )
    list_parser = subparsers.add_parser(
        "list-templates",
        help="List templates from the configured catalog.",
    )
    list_parser.add_argument(
        "--tenant-id",
        default=None,
        help="Include templates specific to this tenant.",
    )
    classify_parser = subparsers.add_parser(
        "classify-sql",
        help="Print the operation type of a SQL statement.",
    )
    classify_parser.add_argument("sql", help="SQL statement to classify.")
    _add_dialect_argument(classify_parser)
    check_parser = subparsers.add_parser(
        "check-sql",
        help="Run the safety gate against a SQL statement.",
    )
    check_parser.add_argument("sql", help="SQL statement to check.")
    check_parser.add_argument(
        "--allow",
        default="SELECT",
        choices=["SELECT", "INSERT", "UPDATE", "DELETE"],
        help="Operation the statement must perform (default: SELECT).",
    )
    check_parser.add_argument(
        "--bound",
        action="append",
        default=None,
        metavar="NAME",
        help="Parameter name that must appear as a placeholder. Repeatable.",
    )
    _add_dialect_argument(check_parser)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate SQL from a catalog template and explicit parameters.",
    )
    generate_parser.add_argument("template_id", help="Catalog template id.")
    generate_parser.add_argument(
        "--param",
        action="append",
        default=None,
        metavar="NAME=VALUE",
        help="Parameter value. Repeat for multiple parameters.",
    )
    _add_tenant_arguments(generate_parser, required=False)

    ask_parser = subparsers.add_parser(
        "ask",
        help="Generate SQL from a natural-language question.",
    )
    ask_parser.add_argument("question", help="Natural language question.")
    ask_parser.add_argument(
        "--extractor",
        choices=["auto", "keyword", "openai"],
        default="auto",
        help="Intent extractor (default: openai when OPENAI_API_KEY is set).",
    )
    _add_tenant_arguments(ask_parser, required=True)
    return parser


def _add_dialect_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dialect",
        default=DEFAULT_DIALECT,
        choices=PLACEHOLDER_DIALECTS,
        help=f"SQL dialect used to tokenize the statement (default: {DEFAULT_DIALECT}).",
    )


def _add_tenant_arguments(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument(
        "--tenant-id",
        required=required,
        default=None,
        help="Tenant the statement must be scoped to.",
    )
    parser.add_argument("--user-id", default=None, help="Calling user id.")
    parser.add_argument(
        "--all-tenants",
        action="store_true",
        help="Caller holds the cross-tenant privilege; skip tenant scoping.",
    )


def _parse_param_pairs(pairs: list[str] | None) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid --param {pair!r}; expected NAME=VALUE.")
        values[name.strip()] = value
    return values


def _configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _print_result(result: GenerationResult) -> int:
    if not result.is_successful:
        print(
            f"SQL generation failed ({result.error_kind.value}):\n{result.error_message}",
            file=sys.stderr,
        )
        return 1

    print("SQL generation succeeded:")
    print(f"- template_id: {result.template_id}")
    print(f"- operation_type: {result.operation_type.value}")
    print("- parameters:")
    if result.bound_parameters:
        for name, value in result.bound_parameters.items():
            print(f"  - @{name} = {value!r}")
    else:
        print("  - (none)")
    print("\nSQL:")
    print(result.sql)
    print("\nJSON payload:")
    print(json.dumps(result.model_dump(mode="json"), indent=2, sort_keys=True))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "classify-sql":
        from scoped_nl2sql.sql.classifier import classify_operation

        print(classify_operation(args.sql, dialect=args.dialect).value)
        return 0

    if args.command == "check-sql":
        from scoped_nl2sql.models.template import OperationType
        from scoped_nl2sql.sql.safety import check_sql

        report = check_sql(
            args.sql,
            OperationType(args.allow),
            {name: None for name in args.bound or []},
            dialect=args.dialect,
        )
        if not report.is_safe:
            print(f"SQL safety check failed ({report.error_kind.value}):")
            for violation in report.violations:
                print(f"- {violation}")
            return 1
        print("SQL safety check succeeded:")
        print(f"- operation_type: {report.operation_type.value}")
        print(
            "- placeholders: "
            f"{', '.join(report.placeholders) if report.placeholders else '(none)'}"
        )
        return 0

    from scoped_nl2sql.config import ConfigError, load_settings

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        return 2
    _configure_logging(settings.log_level, args.verbose)

    if args.command == "config-check":
        redacted = "***" if settings.openai_api_key else "(not set)"
        print("Configuration loaded successfully:")
        print(f"- TEMPLATE_CATALOG_PATH: {settings.template_catalog_path}")
        print(f"- SQL_DIALECT: {settings.sql_dialect}")
        print(f"- TENANT_PARAMETER_NAME: {settings.tenant_parameter_name}")
        print(f"- MATCH_MIN_SCORE: {settings.match_min_score}")
        print(f"- MATCH_INTENT_WEIGHT: {settings.match_intent_weight}")
        print(f"- MATCH_ENTITY_WEIGHT: {settings.match_entity_weight}")
        print(f"- MATCH_MIN_ENTITY_CONFIDENCE: {settings.match_min_entity_confidence}")
        print(f"- FALLBACK_TEMPLATE_ID: {settings.fallback_template_id or '(not set)'}")
        print(f"- OPENAI_API_KEY: {redacted}")
        print(f"- OPENAI_MODEL: {settings.openai_model}")
        print(f"- LOG_LEVEL: {settings.log_level}")
        return 0

    from scoped_nl2sql.catalog.source import CatalogError, load_template_catalog

    try:
        source = load_template_catalog(settings.template_catalog_path)
    except CatalogError as exc:
        print(f"Template catalog read failed:\n{exc}", file=sys.stderr)
        return 1

    if args.command == "list-templates":
        templates = source.list_templates(args.tenant_id)
        print("Templates:")
        if not templates:
            print("- (none)")
            return 0
        for template in templates:
            scope = template.tenant_scope_column or "(tenant-agnostic)"
            print(
                f"- {template.id} [{template.allowed_operation.value}] "
                f"scope={scope} tags={','.join(sorted(template.intent_tags))}"
            )
            print(f"  {template.name}")
        return 0

    from scoped_nl2sql.generator import SqlGenerator
    from scoped_nl2sql.models.template import TenantContext

    tenant_context = None
    if args.tenant_id is not None:
        tenant_context = TenantContext(
            tenant_id=args.tenant_id,
            user_id=args.user_id,
            can_access_all_tenants=args.all_tenants,
        )

    if args.command == "generate":
        template = source.get_template(args.template_id, args.tenant_id)
        if template is None:
            print(f"Template '{args.template_id}' not found.", file=sys.stderr)
            return 1
        try:
            values = _parse_param_pairs(args.param)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return 2
        generator = SqlGenerator(template_source=source, settings=settings)
        return _print_result(
            generator.generate_from_template(template, values, tenant_context)
        )

    if args.command == "ask":
        from scoped_nl2sql.extract import (
            ExtractionError,
            KeywordIntentExtractor,
            create_intent_extractor,
        )

        templates = source.list_templates(args.tenant_id)
        if args.extractor == "keyword":
            extractor = KeywordIntentExtractor()
        else:
            if args.extractor == "openai":
                try:
                    settings.validate_llm_requirements()
                except ConfigError as exc:
                    print(f"Configuration error:\n{exc}", file=sys.stderr)
                    return 2
            extractor = create_intent_extractor(settings, templates)

        generator = SqlGenerator(
            template_source=source, extractor=extractor, settings=settings
        )
        try:
            result = generator.generate_from_query(args.question, tenant_context)
        except ExtractionError as exc:
            print(f"Intent extraction failed:\n{exc}", file=sys.stderr)
            return 1
        return _print_result(result)

    print(f"Command '{args.command}' is not implemented.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
