"""
Admin gate for the sync endpoints.

Credential issuance lives outside this service; here the caller proves the
admin role by presenting the shared ``ADMIN_TOKEN`` in the ``X-Admin-Token``
header.
"""
import hmac
from typing import Optional

from fastapi import Security
from fastapi.security import APIKeyHeader
from starlette.requests import Request

from football_api.core.config import settings
from football_api.core.errors import FootballApiError, ForbiddenError, UnauthorizedError
from football_api.core.logging import get_logger

logger = get_logger(__name__)

ADMIN_TOKEN_HEADER = "X-Admin-Token"

admin_token_header = APIKeyHeader(name=ADMIN_TOKEN_HEADER, auto_error=False)


class AdminNotConfiguredError(FootballApiError):
    status_code = 501
    default_message = "Admin functionality not enabled. Set ADMIN_TOKEN environment variable."


def require_admin(
    request: Request,
    admin_token: Optional[str] = Security(admin_token_header),
) -> str:
    """
    FastAPI dependency that only lets admin callers through.

    Raises:
        UnauthorizedError: header missing
        ForbiddenError: header present but wrong
        AdminNotConfiguredError: no ADMIN_TOKEN outside development
    """
    if not settings.ADMIN_TOKEN:
        if settings.is_development():
            logger.warning("ADMIN_TOKEN not configured - allowing admin request in development mode")
            return "_dev_skip_"
        raise AdminNotConfiguredError()

    if not admin_token:
        raise UnauthorizedError(f"Admin token missing. Provide {ADMIN_TOKEN_HEADER} header.")

    if not hmac.compare_digest(admin_token, settings.ADMIN_TOKEN):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid admin token attempt from {client}")
        raise ForbiddenError("Forbidden Access")

    return admin_token
