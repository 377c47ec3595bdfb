"""
Error Handlers - Classroom Observation Platform
app/core/errors.py

Translates request-validation failures, HTTPExceptions, repository errors
and workflow errors into the standard ErrorResponse body.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import (
    AuthorizationError,
    ConcurrentModificationException,
    DuplicateEntityException,
    EntityNotFoundException,
    ForeignKeyViolationException,
    IncompleteObservationError,
    InvalidStateError,
    ObservationError,
    RepositoryException,
    ValidationFailedError,
)
from app.models.common import ErrorResponse

logger = logging.getLogger(__name__)


#  Validation Error Messages


FIELD_MESSAGES = {
    "time": {
        "missing": "Time is required",
        "value_error": "Invalid time format. Use HH:MM format",
    },
    "date": {
        "missing": "Date is required",
        "date_from_datetime_parsing": "Date must be a valid date (YYYY-MM-DD)",
        "date_parsing": "Date must be a valid date (YYYY-MM-DD)",
    },
    "teacherId": {
        "missing": "Teacher is required",
        "uuid_parsing": "Teacher ID must be a valid UUID format",
    },
    "branchId": {
        "missing": "Branch is required",
        "uuid_parsing": "Branch ID must be a valid UUID format",
    },
    "totalStudents": {
        "greater_than_equal": "Total students must be at least 1",
        "less_than_equal": "Total students cannot exceed 100",
    },
    "presentStudents": {
        "greater_than_equal": "Present students cannot be negative",
        "less_than_equal": "Present students cannot exceed 100",
    },
}

DEFAULT_MESSAGES = {
    "missing": "Field '{field}' is required",
    "string_too_short": "Field '{field}' is too short",
    "string_too_long": "Field '{field}' is too long",
    "string_pattern_mismatch": "Field '{field}' has invalid format",
    "less_than_equal": "Field '{field}' exceeds maximum allowed value",
    "greater_than_equal": "Field '{field}' is below minimum allowed value",
    "uuid_parsing": "Field '{field}' must be a valid UUID",
    "uuid_type": "Field '{field}' must be a valid UUID",
    "string_type": "Field '{field}' must be a string",
    "int_type": "Field '{field}' must be an integer",
    "int_parsing": "Field '{field}' must be a valid integer",
    "bool_parsing": "Field '{field}' must be true or false",
    "enum": "Field '{field}' has an unsupported value",
    "json_invalid": "Malformed JSON request body",
    "extra_forbidden": "Unknown field '{field}' is not allowed",
}


def get_validation_message(field: str, error_type: str, default: Optional[str] = None) -> str:
    if field in FIELD_MESSAGES:
        for key in FIELD_MESSAGES[field]:
            if key in error_type:
                return FIELD_MESSAGES[field][key]
    for key, template in DEFAULT_MESSAGES.items():
        if key in error_type:
            return template.format(field=field)
    return default or f"Invalid value for field '{field}'"


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def raise_error(status_code: int, error_code: str, message: str):
    raise HTTPException(
        status_code=status_code,
        detail={"error_code": error_code, "message": message},
    )


#  Handlers


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", "Request validation failed"
        )
    err = errors[0]
    error_type = err.get("type", "")
    loc = err.get("loc", [])
    if "json_invalid" in error_type:
        return error_response(
            status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "Malformed JSON request body"
        )
    field = ".".join(str(l) for l in loc if l not in ("body", "query", "path", "header"))
    message = get_validation_message(field, error_type, err.get("msg"))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        message,
        {"field": field, "type": error_type} if field else None,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict) and "error_code" in detail:
        return error_response(
            exc.status_code,
            detail["error_code"],
            detail.get("message", ""),
            detail.get("details"),
            headers=getattr(exc, "headers", None),
        )
    return error_response(
        exc.status_code, "HTTP_ERROR", str(detail), headers=getattr(exc, "headers", None)
    )


OBSERVATION_ERROR_STATUS = {
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_409_CONFLICT,
    IncompleteObservationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ValidationFailedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


async def observation_error_handler(request: Request, exc: ObservationError):
    status_code = OBSERVATION_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    details = {"errors": exc.errors} if isinstance(exc, ValidationFailedError) else None
    return error_response(status_code, exc.error_code, exc.reason, details)


async def repository_error_handler(request: Request, exc: RepositoryException):
    if isinstance(exc, EntityNotFoundException):
        code = "".join(
            f"_{c}" if c.isupper() and i else c for i, c in enumerate(exc.entity_type)
        ).upper()
        return error_response(
            status.HTTP_404_NOT_FOUND, f"{code}_NOT_FOUND", f"{exc.entity_type} not found"
        )
    if isinstance(exc, ConcurrentModificationException):
        return error_response(
            status.HTTP_409_CONFLICT,
            "CONFLICT",
            f"{exc.entity_type} was modified by another request, reload and retry",
        )
    if isinstance(exc, DuplicateEntityException):
        return error_response(status.HTTP_409_CONFLICT, "DUPLICATE_ENTITY", exc.message)
    if isinstance(exc, ForeignKeyViolationException):
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", exc.message)

    logger.error("Unhandled repository error: %s", exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "Internal server error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ObservationError, observation_error_handler)
    app.add_exception_handler(RepositoryException, repository_error_handler)
