"""
Domain exceptions and their HTTP translation.

Services raise these; the handlers registered by ``install_exception_handlers``
turn them into JSON responses of the form ``{"error", "message", "details"}``.
"""
from typing import Any, Dict, Iterable, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import settings


class MISError(Exception):
    """Base class for all domain errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, "details": self.details}


class ValidationFailed(MISError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation error"

    def __init__(self, field: str, message: Optional[str] = None, allowed: Optional[Iterable[str]] = None):
        self.field = field
        self.allowed = list(allowed) if allowed is not None else None
        if message is None:
            message = f"Invalid {field} value"
            if self.allowed:
                message += ". Must be one of: " + ", ".join(self.allowed)
        details: Dict[str, Any] = {"field": field}
        if self.allowed:
            details["allowed"] = self.allowed
        super().__init__(message, details)


class AuthenticationFailed(MISError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Authentication required"


class PermissionDenied(MISError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Access denied"

    def __init__(self, required_roles: Iterable[str], your_role: Optional[str] = None):
        self.required_roles = sorted(set(required_roles))
        message = "This endpoint requires one of the following roles: " + ", ".join(self.required_roles)
        super().__init__(message, {"required_roles": self.required_roles, "your_role": your_role})


class ResourceNotFound(MISError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} not found",
            {"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class Conflict(MISError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class InsufficientStock(Conflict):
    error = "Insufficient stock"

    def __init__(self, part_code: str, current_stock: int, requested: int):
        super().__init__(
            "Insufficient stock for issuance",
            {"part_code": part_code, "current_stock": current_stock, "requested": requested},
        )


def _json(status_code: int, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def _mis_error_handler(request: Request, exc: MISError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationFailed) else None
    return _json(exc.status_code, exc.to_dict(), headers)


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = str(err.get("msg", "invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{'.'.join(loc) or 'request'}: {msg}")
    body = {
        "error": "Validation error",
        "message": "; ".join(parts) or "Invalid request",
        "details": {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]},
    }
    return _json(status.HTTP_400_BAD_REQUEST, body)


async def _integrity_error_handler(request: Request, exc: IntegrityError):
    structlog.get_logger().warning("database_conflict", error=str(exc.orig))
    body = {"error": "Conflict", "message": "Record conflicts with existing data", "details": {}}
    if settings.show_error_details:
        body["details"]["db_error"] = str(exc.orig)
    return _json(status.HTTP_409_CONFLICT, body)


async def _database_error_handler(request: Request, exc: SQLAlchemyError):
    structlog.get_logger().error("database_error", error=str(exc))
    body = {"error": "Database error", "message": "Database error processing request", "details": {}}
    if settings.show_error_details:
        body["details"]["db_error"] = str(exc)
    return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, body)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MISError, _mis_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
