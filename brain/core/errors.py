"""
Custom exception hierarchy for Aramis Brain.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Insufficient data (no history, no pattern yet) is never an error: the
services return an empty list or None. Only structural failures (a missing
project or record) and store failures reach these classes.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("brain.errors")


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class BrainException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ProjectNotFoundError(BrainException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: int):
        super().__init__(
            message=f"Project {project_id} not found.",
            details={"project_id": project_id},
        )


class RecommendationNotFoundError(BrainException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "RECOMMENDATION_NOT_FOUND"

    def __init__(self, recommendation_id: int):
        super().__init__(
            message=f"Recommendation {recommendation_id} not found.",
            details={"recommendation_id": recommendation_id},
        )


class AnomalyNotFoundError(BrainException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ANOMALY_NOT_FOUND"

    def __init__(self, anomaly_id: int):
        super().__init__(
            message=f"Anomaly {anomaly_id} not found.",
            details={"anomaly_id": anomaly_id},
        )


class DataStoreError(BrainException):
    """A read or write against the relational store failed."""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DATA_STORE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(
            message=message,
            details={"operation": operation} if operation else {},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def brain_exception_handler(request: Request, exc: BrainException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error for %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
