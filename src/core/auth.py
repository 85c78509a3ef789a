"""Authentication against the single shared API token."""
import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# linkding clients send "Token <secret>"; "Bearer <secret>" is accepted as well
TOKEN_SCHEMES = ("Token ", "Bearer ")

security = APIKeyHeader(name="Authorization", auto_error=False)


def extract_token(authorization: str | None) -> str | None:
    """Return the secret from an Authorization header value, or None."""
    if not authorization:
        return None
    for scheme in TOKEN_SCHEMES:
        if authorization.startswith(scheme):
            return authorization[len(scheme):].strip() or None
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Token"},
    )


async def verify_token(
    authorization: str | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Dependency that rejects requests without the configured API token.

    In DEV_MODE, bypasses the check.
    """
    if settings.dev_mode:
        return

    token = extract_token(authorization)
    if token is None:
        logger.warning("Rejected request without a token")
        raise _unauthorized("Not authenticated")

    # An unset API_TOKEN never matches
    if not settings.api_token or not secrets.compare_digest(
        token.encode(), settings.api_token.encode(),
    ):
        logger.warning("Rejected request with an invalid token")
        raise _unauthorized("Invalid token")
