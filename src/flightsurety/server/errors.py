# SPDX-License-Identifier: MIT
# Copyright (c) 2026 FlightSurety Contributors

"""Standardized REST error responses for the FlightSurety API.

All REST endpoints should use these helpers for consistent error format:
{
    "success": false,
    "error": {
        "code": "ERROR_CODE",
        "message": "Human readable message"
    }
}

Error codes follow the pattern: DOMAIN_SPECIFIC_ERROR
Examples: VALIDATION_MISSING_FIELD, NOT_FOUND_FLIGHT, LEDGER_SUSPENDED
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
import uuid

from starlette.responses import JSONResponse

from ..core.exceptions import (
    AlreadyExists,
    FlightSuretyException,
    InsufficientBalance,
    InsufficientStake,
    NotFoundError,
    OperationSuspended,
    Unauthorized,
    ValidationException,
)

logger = logging.getLogger(__name__)

# Debug mode: include exception details in error responses.
# Set FLIGHTSURETY_DEBUG=1 to enable.
_DEBUG = os.environ.get("FLIGHTSURETY_DEBUG", "0") == "1"

# =============================================================================
# STANDARD ERROR CODES
# =============================================================================

# Validation errors (400)
VALIDATION_MISSING_FIELD = "VALIDATION_MISSING_FIELD"
VALIDATION_INVALID_VALUE = "VALIDATION_INVALID_VALUE"
INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"

# Authorization errors (403)
FORBIDDEN_NOT_AUTHORIZED = "FORBIDDEN_NOT_AUTHORIZED"

# Not found errors (404)
NOT_FOUND_RESOURCE = "NOT_FOUND_RESOURCE"
NOT_FOUND_FLIGHT = "NOT_FOUND_FLIGHT"

# Conflict errors (409)
CONFLICT_ALREADY_EXISTS = "CONFLICT_ALREADY_EXISTS"

# Server errors (500)
INTERNAL_ERROR = "INTERNAL_ERROR"

# Service unavailable (503)
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
LEDGER_SUSPENDED = "LEDGER_SUSPENDED"


# =============================================================================
# ERROR RESPONSE HELPERS
# =============================================================================


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        code: Error code (e.g., VALIDATION_MISSING_FIELD)
        message: Human-readable error message
        status_code: HTTP status code (default 400)

    Returns:
        JSONResponse with standardized error format
    """
    return JSONResponse(
        {
            "success": False,
            "error": {
                "code": code,
                "message": message,
            },
        },
        status_code=status_code,
    )


def validation_error(message: str, code: str = VALIDATION_INVALID_VALUE) -> JSONResponse:
    """Create a 400 validation error response."""
    return error_response(code, message, status_code=400)


def missing_field_error(field_name: str) -> JSONResponse:
    """Create a 400 error for missing required field."""
    return error_response(
        VALIDATION_MISSING_FIELD,
        f"{field_name} is required",
        status_code=400,
    )


def forbidden_error(message: str = "Permission denied", code: str = FORBIDDEN_NOT_AUTHORIZED) -> JSONResponse:
    """Create a 403 forbidden error response."""
    return error_response(code, message, status_code=403)


def not_found_error(resource: str, code: str = NOT_FOUND_RESOURCE) -> JSONResponse:
    """Create a 404 not found error response."""
    return error_response(code, f"{resource} not found", status_code=404)


def conflict_error(message: str, code: str = CONFLICT_ALREADY_EXISTS) -> JSONResponse:
    """Create a 409 conflict error response."""
    return error_response(code, message, status_code=409)


def internal_error(
    message: str = "Internal server error",
    exc: BaseException | None = None,
) -> JSONResponse:
    """Create a 500 internal error response.

    Always includes a request_id for log correlation. In debug mode
    (FLIGHTSURETY_DEBUG=1) the exception type and message are included too.

    Args:
        message: Base error message.
        exc: Optional exception to extract detail from. If None, the
             exception currently being handled is used.
    """
    request_id = uuid.uuid4().hex[:12]

    error_body: dict = {
        "code": INTERNAL_ERROR,
        "message": message,
        "request_id": request_id,
    }

    if exc is None:
        exc = sys.exc_info()[1]

    if exc is not None:
        logger.error("request_id=%s %s: %s", request_id, type(exc).__name__, exc)
        if _DEBUG:
            error_body["exception"] = type(exc).__name__
            error_body["detail"] = str(exc)
            error_body["traceback"] = traceback.format_exception_only(type(exc), exc)[0].strip()

    return JSONResponse(
        {"success": False, "error": error_body},
        status_code=500,
    )


def service_unavailable_error(message: str, code: str = SERVICE_UNAVAILABLE) -> JSONResponse:
    """Create a 503 service unavailable error response."""
    return error_response(code, message, status_code=503)


def exception_response(exc: BaseException) -> JSONResponse:
    """Map a ledger exception to its standardized HTTP response."""
    if isinstance(exc, NotFoundError):
        code = NOT_FOUND_FLIGHT if exc.resource_type == "Flight" else NOT_FOUND_RESOURCE
        return not_found_error(f"{exc.resource_type} {exc.resource_id}", code=code)
    if isinstance(exc, Unauthorized):
        return forbidden_error(exc.message)
    if isinstance(exc, AlreadyExists):
        return conflict_error(exc.message)
    if isinstance(exc, OperationSuspended):
        return service_unavailable_error(exc.message, code=LEDGER_SUSPENDED)
    if isinstance(exc, ValidationException):
        return validation_error(exc.message)
    if isinstance(exc, InsufficientStake | InsufficientBalance):
        return validation_error(exc.message, code=INSUFFICIENT_FUNDS)
    if isinstance(exc, FlightSuretyException):
        return internal_error(exc.message, exc=exc)
    return internal_error(exc=exc)
