"""
Structured exceptions and error responses for TodoGraph.

Provides consistent error handling across the API with:
- Custom exception classes
- Structured error response format
- FastAPI exception handlers
"""

from typing import Any, Dict, List, Optional, Sequence

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from todograph.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # e.g. ["body", "title"]
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g. "not_found", "cycle_detected")
    message: str
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class TodoGraphException(Exception):
    """Base exception for all TodoGraph errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(TodoGraphException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(TodoGraphException):
    """User-correctable input error. Never a server fault."""

    def __init__(
        self,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        error_code: str = "validation_error",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class SelfDependencyError(ValidationError):
    """Task cannot depend on itself."""

    def __init__(self, task_id: int):
        super().__init__(
            message="A task cannot depend on itself",
            error_code="self_dependency",
            details=[{
                "loc": ["body", "dependencies"],
                "msg": f"Task {task_id} lists itself as a dependency",
                "type": "self_dependency",
            }],
        )
        self.task_id = task_id


class CyclicDependencyError(ValidationError):
    """
    The dependency graph contains (or would contain) a cycle.

    `cycle` lists the task IDs along the cycle, starting and ending with
    the same ID.
    """

    def __init__(self, cycle: Sequence[int]):
        self.cycle = list(cycle)
        path = " -> ".join(str(task_id) for task_id in self.cycle)
        super().__init__(
            message="Circular dependency detected",
            error_code="cycle_detected",
            details=[{
                "loc": ["body", "dependencies"],
                "msg": f"Dependency chain {path} forms a cycle",
                "type": "cycle_error",
            }],
        )


class UpstreamUnavailableError(TodoGraphException):
    """The database or an external service could not be reached."""

    def __init__(self, service: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"{service} is unavailable",
            error_code="upstream_unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
        self.service = service


class DataIntegrityError(TodoGraphException):
    """Persisted data violates an invariant (e.g. a dependency cycle slipped in)."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="data_integrity_error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def todograph_exception_handler(request: Request, exc: TodoGraphException) -> JSONResponse:
    """Handle TodoGraphException and return structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.error_code,
            message=exc.message,
            details=exc.details,
        ).model_dump(),
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render FastAPI body/query validation errors in the same envelope."""
    details = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="validation_error",
            message="Request validation failed",
            details=details,
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": None,
        },
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(TodoGraphException, todograph_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
