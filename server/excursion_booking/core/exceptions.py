"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-checkable error kinds carried in every problem response."""
    NOT_FOUND = "NOT_FOUND"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    INTEGRITY_FAULT = "INTEGRITY_FAULT"
    INTERNAL = "INTERNAL"


def problem_type(code: ErrorCode) -> str:
    """Relative problem type URI for an error code, e.g. ``/problems/insufficient-inventory``."""
    return f"/problems/{code.value.lower().replace('_', '-')}"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        code: ErrorCode,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        retryable: bool = False,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            code: Machine-checkable error kind
            detail: Human-readable explanation specific to this occurrence
            type_uri: Problem type URI; derived from ``code`` when omitted
            instance: URI reference that identifies the specific occurrence
            retryable: Whether the client may retry the same request
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.code = code
        self.detail = detail
        self.type_uri = type_uri or problem_type(code)
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
            "code": code.value,
            "retryable": retryable,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )


class ValidationError(ProblemDetailsException):
    """Invalid argument: malformed date, missing required field, bad value."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Invalid Argument",
            code=ErrorCode.INVALID_ARGUMENT,
            detail=detail,
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Exception for missing or invalid credentials."""

    def __init__(
        self,
        detail: str = "Authentication credentials are required",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=401,
            title="Authentication Required",
            code=ErrorCode.UNAUTHENTICATED,
            detail=detail,
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(ProblemDetailsException):
    """Actor mismatch or insufficient role."""

    def __init__(
        self,
        detail: str = "Insufficient permissions to access this resource",
        required_roles: Optional[list] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if required_roles:
            extensions["required_roles"] = required_roles

        super().__init__(
            status_code=403,
            title="Access Forbidden",
            code=ErrorCode.UNAUTHORIZED,
            detail=detail,
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            code=ErrorCode.NOT_FOUND,
            detail=detail,
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """The request raced with a concurrent change to the same resource."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            code=ErrorCode.CONFLICT,
            detail=detail,
            instance=instance,
            retryable=True,
            extensions=extensions,
        )


class PreconditionFailedError(ProblemDetailsException):
    """The resource is not in a state that allows the operation."""

    def __init__(
        self,
        detail: str,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=412,
            title="Precondition Failed",
            code=ErrorCode.PRECONDITION_FAILED,
            detail=detail,
            instance=instance,
            extensions=extensions,
        )


class InsufficientInventoryError(ProblemDetailsException):
    """Requested quantity exceeds the remaining capacity of a slot."""

    def __init__(
        self,
        requested_quantity: int,
        available_quantity: int,
        category: Optional[str] = None,
        date_time: Optional[str] = None,
        slot_id: Optional[int] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = "Not enough tickets"
            if category:
                detail += f" in category '{category}'"
            if date_time:
                detail += f" on {date_time}"
            detail += f": requested {requested_quantity}, available {available_quantity}"

        extensions = {
            "requested_quantity": requested_quantity,
            "available_quantity": available_quantity,
        }
        if slot_id is not None:
            extensions["slot_id"] = slot_id

        self.requested_quantity = requested_quantity
        self.available_quantity = available_quantity

        super().__init__(
            status_code=409,
            title="Insufficient Inventory",
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            detail=detail,
            instance=instance,
            extensions=extensions,
        )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI body validation failures as Problem Details with violations."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "type": problem_type(ErrorCode.INVALID_ARGUMENT),
            "title": "Validation Error",
            "status": 422,
            "code": ErrorCode.INVALID_ARGUMENT.value,
            "retryable": False,
            "detail": "The request data failed validation",
            "instance": request.url.path,
            "violations": violations,
        },
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    The full exception is logged server-side; the client only receives an
    error id it can quote.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception while processing request",
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
            "error": str(exc),
        },
        exc_info=exc,
    )

    problem_details = {
        "type": problem_type(ErrorCode.INTERNAL),
        "title": "Internal Server Error",
        "status": 500,
        "code": ErrorCode.INTERNAL.value,
        "retryable": False,
        "detail": "An unexpected error occurred while processing the request",
        "instance": request.url.path,
        "error_id": error_id,
        "timestamp": _utc_timestamp(),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
