"""Typed models shared across the generation pipeline."""

from scoped_nl2sql.models.generation import (
    ErrorKind,
    GenerationError,
    GenerationResult,
)
from scoped_nl2sql.models.template import (
    OperationType,
    ParameterConstraint,
    ParameterDefinition,
    ParameterType,
    StringFormat,
    Template,
    TenantContext,
)

__all__ = [
    "ErrorKind",
    "GenerationError",
    "GenerationResult",
    "OperationType",
    "ParameterConstraint",
    "ParameterDefinition",
    "ParameterType",
    "StringFormat",
    "Template",
    "TenantContext",
]
