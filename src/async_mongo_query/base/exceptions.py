from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Machine-readable codes carried by every QueryBuilderError."""

    COUNT_ERROR = "COUNT_ERROR"
    EXPLAIN_ERROR = "EXPLAIN_ERROR"
    QUERY_EXECUTION_ERROR = "QUERY_EXECUTION_ERROR"
    INVALID_OPERATOR = "INVALID_OPERATOR"


class QueryBuilderError(Exception):
    """Base exception for failures surfaced by the query builder.

    ``context`` holds whatever is needed to reconstruct the offending query
    (filter, options, populated fields) for debugging.
    """

    code: ErrorCode = ErrorCode.QUERY_EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context: Dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, code={self.code.value!r}, "
            f"context={self.context!r})"
        )


class CountError(QueryBuilderError):
    """Raised when counting documents for a filter fails."""

    code = ErrorCode.COUNT_ERROR

    def __init__(self, message: str = "Count failed", filter: Optional[Dict] = None):
        super().__init__(message, context={"filter": filter})

    @property
    def filter(self) -> Optional[Dict[str, Any]]:
        return self.context.get("filter")


class ExplainError(QueryBuilderError):
    """Raised when the execution plan for a query cannot be obtained."""

    code = ErrorCode.EXPLAIN_ERROR

    def __init__(
        self,
        message: str = "Explain failed",
        filter: Optional[Dict] = None,
        options: Optional[Dict] = None,
    ):
        super().__init__(message, context={"filter": filter, "options": options})

    @property
    def filter(self) -> Optional[Dict[str, Any]]:
        return self.context.get("filter")

    @property
    def options(self) -> Optional[Dict[str, Any]]:
        return self.context.get("options")


class QueryExecutionError(QueryBuilderError):
    """Raised when a find or aggregation fails."""

    code = ErrorCode.QUERY_EXECUTION_ERROR

    def __init__(
        self,
        message: str = "Query execution failed",
        filter: Optional[Dict] = None,
        options: Optional[Dict] = None,
        populated_fields: Optional[list] = None,
    ):
        super().__init__(
            message,
            context={
                "filter": filter,
                "options": options,
                "populated_fields": populated_fields,
            },
        )

    @property
    def filter(self) -> Optional[Dict[str, Any]]:
        return self.context.get("filter")

    @property
    def options(self) -> Optional[Dict[str, Any]]:
        return self.context.get("options")

    @property
    def populated_fields(self) -> Optional[list]:
        return self.context.get("populated_fields")


class InvalidOperatorError(QueryBuilderError, ValueError):
    """Raised in strict mode when a comparison operator is not recognised."""

    code = ErrorCode.INVALID_OPERATOR

    def __init__(self, field: str, operator: Any):
        super().__init__(
            f"Unknown comparison operator {operator!r} for field '{field}'",
            context={"field": field, "operator": operator},
        )
