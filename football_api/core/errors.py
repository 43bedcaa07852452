"""
Application error taxonomy and its HTTP rendering.

Services raise these instead of ``HTTPException`` so the same code runs from
the API, the scheduler and scripts. ``register_exception_handlers`` turns them
into ``{"success": false, "message": ...}`` responses; anything that is not a
``FootballApiError`` becomes an opaque 500.
"""
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from football_api.core.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"


class FootballApiError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An error occurred"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class BadRequestError(FootballApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConnectivityError(BadRequestError):
    """The football data provider could not be reached."""

    default_message = "Failed to reach external football data API"


class InvalidUpstreamResponseError(BadRequestError):
    """The provider answered, but not with an array of records."""

    default_message = "Invalid response from external API"


class UnauthorizedError(FootballApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(FootballApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(FootballApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(FootballApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource conflict"


class MissingRequiredFieldError(FootballApiError):
    """
    A provider record lacks an identity field.

    Raised per record by the mappers. Batch syncs turn it into a skip; only
    the single-record league path lets it reach the caller.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, entity: str, fields: list[str]):
        self.entity = entity
        self.fields = fields
        super().__init__(f"Missing required {entity} data: {' or '.join(fields)}")


def error_body(message: str, data: Any = None) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if data is not None:
        body["data"] = data
    return body


async def football_api_error_handler(request: Request, exc: FootballApiError) -> JSONResponse:
    logger.info(
        f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}",
        extra={"error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.data))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query"))
    message = f"{field}: {first.get('msg')}" if field else "Validation failed"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(INTERNAL_ERROR_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FootballApiError, football_api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
