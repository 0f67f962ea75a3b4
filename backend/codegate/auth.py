"""
Authentication for the admin endpoints.
A single shared secret (ADMIN_TOKEN) gates every admin operation.
"""

from typing import Optional

from fastapi import Request, HTTPException

from .config import settings
from .security import tokens_match
from .utils import get_client_ip
from .logging_config import get_logger

logger = get_logger(__name__)


def extract_admin_token(request: Request) -> Optional[str]:
    """Read the admin credential from Authorization: Bearer or X-Admin-Token."""
    auth_header = request.headers.get("Authorization")
    if auth_header:
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()

    token = request.headers.get("X-Admin-Token")
    return token.strip() if token and token.strip() else None


def require_admin(request: Request) -> None:
    """
    FastAPI dependency to require the admin credential.
    Raises 401 when no credential is sent and 403 when it does not match.
    """
    token = extract_admin_token(request)

    if not token:
        logger.warning(f"Admin access without credential from {get_client_ip(request)}")
        raise HTTPException(
            status_code=401,
            detail="Admin credential required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not settings.ADMIN_TOKEN:
        logger.error("Admin request rejected: ADMIN_TOKEN is not configured")
        raise HTTPException(status_code=403, detail="Invalid admin credential")

    if not tokens_match(token, settings.ADMIN_TOKEN):
        logger.warning(f"Invalid admin credential from {get_client_ip(request)}")
        raise HTTPException(status_code=403, detail="Invalid admin credential")
