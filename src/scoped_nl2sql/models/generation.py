"""Generation result contract and typed pipeline errors."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from scoped_nl2sql.models.template import OperationType


class ErrorKind(str, Enum):
    """Closed set of reasons a generation call can fail."""

    MISSING_REQUIRED_PARAMETER = "MissingRequiredParameter"
    TYPE_MISMATCH = "TypeMismatch"
    CONSTRAINT_VIOLATION = "ConstraintViolation"
    NO_APPLICABLE_TEMPLATE = "NoApplicableTemplate"
    UNSCOPABLE_TEMPLATE = "UnscopableTemplate"
    OPERATION_NOT_ALLOWED = "OperationNotAllowed"
    MALFORMED_STATEMENT = "MalformedStatement"

    @property
    def http_status(self) -> int:
        """Response status an API layer should map this kind to."""
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.MISSING_REQUIRED_PARAMETER: 400,
    ErrorKind.TYPE_MISMATCH: 400,
    ErrorKind.CONSTRAINT_VIOLATION: 400,
    ErrorKind.MALFORMED_STATEMENT: 400,
    ErrorKind.OPERATION_NOT_ALLOWED: 403,
    ErrorKind.UNSCOPABLE_TEMPLATE: 403,
    ErrorKind.NO_APPLICABLE_TEMPLATE: 422,
}


class GenerationError(RuntimeError):
    """Base error for pipeline stages; converted to a failed result by the generator."""

    kind: ErrorKind

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class GenerationResult(BaseModel):
    """Outcome of one generation call: SQL plus bindings, or one error."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    is_successful: bool
    sql: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)
    tenant_parameters: dict[str, Any] = Field(default_factory=dict)
    template_id: str | None = None
    operation_type: OperationType = OperationType.UNKNOWN
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @property
    def bound_parameters(self) -> dict[str, Any]:
        """Template and tenant bindings merged for a parameterized executor."""
        return {**self.parameters, **self.tenant_parameters}

    @classmethod
    def success(
        cls,
        *,
        sql: str,
        parameters: dict[str, Any],
        tenant_parameters: dict[str, Any],
        template_id: str,
        operation_type: OperationType,
    ) -> GenerationResult:
        return cls(
            is_successful=True,
            sql=sql,
            parameters=parameters,
            tenant_parameters=tenant_parameters,
            template_id=template_id,
            operation_type=operation_type,
        )

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        template_id: str | None = None,
    ) -> GenerationResult:
        return cls(
            is_successful=False,
            template_id=template_id,
            error_kind=kind,
            error_message=message,
        )
