"""Template sources and template matching."""

from scoped_nl2sql.catalog.matcher import (
    MatchResult,
    TemplateScore,
    match_template,
    parameter_values_from_entities,
    score_template,
)
from scoped_nl2sql.catalog.source import (
    CATALOG_FORMAT_VERSION,
    CatalogError,
    StaticTemplateSource,
    TemplateSource,
    load_template_catalog,
)

__all__ = [
    "CATALOG_FORMAT_VERSION",
    "CatalogError",
    "MatchResult",
    "StaticTemplateSource",
    "TemplateScore",
    "TemplateSource",
    "load_template_catalog",
    "match_template",
    "parameter_values_from_entities",
    "score_template",
]
