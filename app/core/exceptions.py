"""Service-layer errors and the global handlers that render them as JSON."""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "internal"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidInputError(ServiceError):
    """Missing or malformed field in a request payload."""

    kind = "invalid_input"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    kind = "not_found"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    """Duplicate code or scheduling collision (in-batch or against stored rows)."""

    kind = "conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class ReferentialIntegrityError(ServiceError):
    """A referenced code does not exist or breaks a business rule."""

    kind = "referential_integrity"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY)


class ForbiddenError(ServiceError):
    kind = "forbidden"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


def _req_id(request: Request) -> Optional[str]:
    return getattr(getattr(request, "state", object()), "request_id", None)


def _body(message: str, request: Request, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"message": message, **extra}
    rid = _req_id(request)
    if rid:
        body["request_id"] = rid
    return body


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("scheduling.errors")

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_body(exc.detail or "HTTP error", request),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(ServiceError)
    async def _service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=_body(exc.message, request, kind=exc.kind))

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content=_body("Validation error", request, errors=exc.errors()))

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        log.exception("Unhandled error request_id=%s", _req_id(request))
        return JSONResponse(status_code=500, content=_body("Internal server error", request))
