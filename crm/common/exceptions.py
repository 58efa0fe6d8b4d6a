"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

BASE_ERROR_URI = "https://crm.vrism.in/errors"

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.extra = extra
        super().__init__(detail)


class BadRequestException(AppException):
    """400 — malformed or missing input, business-rule rejection."""

    def __init__(
        self,
        detail: str,
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        super().__init__(
            status_code=400,
            error_type="bad-request",
            title="Bad Request",
            detail=detail,
            errors=errors,
        )


class InsufficientBalanceException(AppException):
    """400 — leave request exceeds the remaining balance."""

    def __init__(self, leave_type: str, available: int, requested: int) -> None:
        super().__init__(
            status_code=400,
            error_type="insufficient-balance",
            title="Insufficient Balance",
            detail=(
                f"Not enough {leave_type} leave balance. "
                f"Available: {available}, Requested: {requested}."
            ),
            errors={"type": [f"Only {available} day(s) of {leave_type} leave left."]},
        )


class UnauthorizedException(AppException):
    """401 — missing, malformed or expired credentials."""

    def __init__(self, detail: str = "Authentication required.") -> None:
        super().__init__(
            status_code=401,
            error_type="unauthorized",
            title="Unauthorized",
            detail=detail,
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409 — unique-constraint / duplicate."""

    def __init__(self, field: str, value: Any, detail: Optional[str] = None) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=detail or f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class DuplicateAccountException(ConflictError):
    """409 — business name taken; points at the existing account and its assignee."""

    def __init__(
        self,
        business_name: str,
        existing_id: Any,
        assignee: Optional[dict[str, str]] = None,
    ) -> None:
        if assignee:
            detail = (
                "An account with this business name already exists. "
                f"It is currently assigned to {assignee['name']}."
            )
        else:
            detail = "An account with this business name already exists."
        super().__init__("business_name", business_name, detail=detail)
        self.extra = {
            "existing_account": str(existing_id),
            "assigned_to": assignee,
        }


class AlreadyTerminalException(AppException):
    """409 — the entity already reached a final state."""

    def __init__(self, entity_type: str, state: str) -> None:
        super().__init__(
            status_code=409,
            error_type="already-terminal",
            title="Already Terminal",
            detail=f"{entity_type} is already {state} and can no longer change.",
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    if exc.extra:
        body.update(exc.extra)
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=400,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 400,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "type": f"{BASE_ERROR_URI}/http-{exc.status_code}",
            "title": "HTTP Error",
            "status": exc.status_code,
            "detail": exc.detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        path=str(request.url.path),
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "type": f"{BASE_ERROR_URI}/internal",
            "title": "Internal Server Error",
            "status": 500,
            "detail": str(exc),
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)    # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
