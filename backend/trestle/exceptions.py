"""
Structured exceptions and error responses for Trestle.

Every scheduling rejection is a ``TrestleException`` subclass carrying an
error code, an HTTP status and optional details. The FastAPI handlers at the
bottom of this module render them as ``{"error", "message", "details"}``.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "cycle_detected")
    message: str
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class TrestleException(Exception):
    """Base exception for all Trestle errors."""

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
        # Last good schedule for the project; set by the mutation service
        self.snapshot = None
        super().__init__(message)


class NotFoundError(TrestleException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class UnknownTaskError(TrestleException):
    """A referenced task id does not exist in the project."""

    def __init__(self, task_id: str, project_id: Optional[str] = None):
        where = f" in project {project_id}" if project_id else ""
        super().__init__(
            message=f"Task {task_id} does not exist{where}",
            error_code="unknown_task",
            status_code=status.HTTP_404_NOT_FOUND,
            details=[{
                "loc": ["body"],
                "msg": f"Unknown task {task_id}",
                "type": "unknown_task",
            }],
        )
        self.task_id = task_id
        self.project_id = project_id


class CycleDetectedError(TrestleException):
    """The change would close a cycle in the task graph."""

    def __init__(self, path: Sequence[Any]):
        self.path = [str(node) for node in path]
        super().__init__(
            message="This change would create a cycle in the task graph",
            error_code="cycle_detected",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body"],
                "msg": "Cycle: " + " -> ".join(self.path),
                "type": "cycle_error",
            }],
        )


class DuplicateEdgeError(TrestleException):
    """An identical dependency already exists."""

    def __init__(self, predecessor_id: str, successor_id: str, dependency_type: str):
        super().__init__(
            message="This dependency already exists",
            error_code="duplicate_edge",
            status_code=status.HTTP_409_CONFLICT,
            details=[{
                "loc": ["body"],
                "msg": f"{dependency_type} {predecessor_id} -> {successor_id} is already present",
                "type": "duplicate_edge",
            }],
        )
        self.predecessor_id = predecessor_id
        self.successor_id = successor_id
        self.dependency_type = dependency_type


class SelfDependencyError(TrestleException):
    """Task cannot depend on itself."""

    def __init__(self, task_id: str):
        super().__init__(
            message="A task cannot depend on itself",
            error_code="self_dependency",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
        self.task_id = task_id


class CrossProjectEdgeError(TrestleException):
    """Cannot link tasks that belong to different projects."""

    def __init__(self, predecessor_project: str, successor_project: str):
        super().__init__(
            message="Cannot link tasks in different projects",
            error_code="cross_project_edge",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body"],
                "msg": f"Project {predecessor_project} != project {successor_project}",
                "type": "cross_project",
            }],
        )
        self.predecessor_project = predecessor_project
        self.successor_project = successor_project


class ValidationError(TrestleException):
    """Request validation error."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class InternalInconsistencyError(TrestleException):
    """A graph that passed validation could not be ordered."""

    def __init__(self, message: str, project_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="internal_inconsistency",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.project_id = project_id


# =============================================================================
# Exception Handlers
# =============================================================================

async def trestle_exception_handler(request: Request, exc: TrestleException) -> JSONResponse:
    """Handle TrestleException and return structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = logging.getLogger("trestle.error")
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
    app.add_exception_handler(TrestleException, trestle_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
