"""
FastAPI Authentication Dependencies

Resolve the bearer token of a request into token claims. Role and ownership
decisions are made by the services, not here.
"""

from fastapi import Header, HTTPException, status
from typing import Optional
import logging

from .jwt_manager import TokenClaims, get_jwt_manager

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


def _verify(token: str) -> TokenClaims:
    result = get_jwt_manager().verify_token(token)
    if not result.get("valid"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.get("error", "Not authorized, invalid token"),
        )
    return result["claims"]


async def require_auth(
    authorization: Optional[str] = Header(None),
) -> TokenClaims:
    """
    Authentication dependency: a valid bearer token is required

    Raises:
        HTTPException 401: missing, invalid or expired token
    """
    token = _extract_bearer(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token provided",
        )
    return _verify(token)


__all__ = [
    "require_auth",
]
