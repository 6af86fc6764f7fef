"""Read-only template sources and the JSON catalog loader."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from scoped_nl2sql.models.template import Template

CATALOG_FORMAT_VERSION = "1.0"


class CatalogError(RuntimeError):
    """Raised when templates cannot be loaded."""


class TemplateSource(ABC):
    """Read-only provider of template snapshots."""

    @abstractmethod
    def list_templates(self, tenant_scope: str | None = None) -> Sequence[Template]:
        """Return the templates visible to ``tenant_scope``."""

    def get_template(
        self, template_id: str, tenant_scope: str | None = None
    ) -> Template | None:
        for template in self.list_templates(tenant_scope):
            if template.id == template_id:
                return template
        return None


class StaticTemplateSource(TemplateSource):
    """In-memory source with shared templates and optional per-tenant extras."""

    def __init__(
        self,
        templates: Iterable[Template] = (),
        tenant_templates: Mapping[str, Iterable[Template]] | None = None,
    ) -> None:
        self._templates = tuple(templates)
        self._tenant_templates = {
            tenant_id: tuple(items)
            for tenant_id, items in (tenant_templates or {}).items()
        }
        _ensure_unique_ids(self._templates)
        for items in self._tenant_templates.values():
            _ensure_unique_ids(self._templates + items)

    def list_templates(self, tenant_scope: str | None = None) -> tuple[Template, ...]:
        if tenant_scope is None:
            return self._templates
        return self._templates + self._tenant_templates.get(tenant_scope, ())


def _ensure_unique_ids(templates: Sequence[Template]) -> None:
    seen: set[str] = set()
    for template in templates:
        if template.id in seen:
            raise CatalogError(f"Duplicate template id '{template.id}'.")
        seen.add(template.id)


def _parse_templates(payload: Any, where: str) -> list[Template]:
    if not isinstance(payload, list):
        raise CatalogError(f"Catalog {where} must be a list of templates.")
    templates: list[Template] = []
    for index, item in enumerate(payload):
        try:
            templates.append(Template.model_validate(item))
        except ValidationError as exc:
            raise CatalogError(
                f"Template #{index} in {where} is invalid:\n{exc}"
            ) from exc
    return templates


def load_template_catalog(path: Path) -> StaticTemplateSource:
    """Load a JSON template catalog into an immutable in-memory source."""
    if not path.exists():
        raise CatalogError(
            f"Template catalog not found at {path}. "
            "Set TEMPLATE_CATALOG_PATH to a catalog JSON file."
        )

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"Could not read template catalog: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Template catalog is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise CatalogError("Template catalog root must be a JSON object.")

    version = payload.get("catalog_format_version")
    if version != CATALOG_FORMAT_VERSION:
        raise CatalogError(
            "Unsupported catalog format version "
            f"{version!r}; expected {CATALOG_FORMAT_VERSION!r}."
        )

    templates = _parse_templates(payload.get("templates", []), "'templates'")
    tenants_payload = payload.get("tenant_templates", {})
    if not isinstance(tenants_payload, dict):
        raise CatalogError("Catalog 'tenant_templates' must be an object.")
    tenant_templates = {
        str(tenant_id): _parse_templates(items, f"'tenant_templates.{tenant_id}'")
        for tenant_id, items in tenants_payload.items()
    }
    return StaticTemplateSource(templates, tenant_templates)
