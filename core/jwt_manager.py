"""
JWT Token Manager for the fundraising platform

Verifies the bearer tokens issued by the identity provider and issues tokens
with the same payload shape (``{"userId", "role"}``) for operators and tests.
"""

import jwt
import uuid
import logging
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class TokenClaims:
    """Claims the platform relies on"""
    user_id: str
    role: str


class JWTManager:
    """
    JWT Token Manager

    Features:
    - HS256 verification against a shared secret
    - Accepts the identity provider payload (``userId``) and standard ``sub``
    - Distinguishes expired tokens from otherwise invalid ones
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: str = "HS256",
        access_token_expiry: int = 604800,  # 7 days
    ):
        """
        Initialize JWT Manager

        Args:
            secret_key: Secret key for signing tokens (falls back to JWT_SECRET)
            algorithm: JWT algorithm (default: HS256)
            access_token_expiry: Access token expiry in seconds
        """
        import os

        self.secret_key = secret_key or os.getenv("JWT_SECRET")
        if not self.secret_key:
            raise ValueError("JWT_SECRET environment variable is required")
        self.algorithm = algorithm
        self.access_token_expiry = access_token_expiry

    def create_access_token(
        self,
        claims: TokenClaims,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create an access token

        Args:
            claims: Token claims
            expires_delta: Custom expiration time (optional)

        Returns:
            JWT access token string
        """
        now = datetime.now(tz=timezone.utc)
        expires = now + (expires_delta or timedelta(seconds=self.access_token_expiry))

        payload = {
            "userId": claims.user_id,
            "role": claims.role,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
            "jti": str(uuid.uuid4()),
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

        logger.debug(f"Created access token for user: {claims.user_id}, expires: {expires}")
        return token

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a JWT token

        Args:
            token: JWT token string

        Returns:
            Dictionary with verification result and claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except jwt.ExpiredSignatureError:
            return {
                "valid": False,
                "expired": True,
                "error": "Not authorized, token expired"
            }
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {e}")
            return {
                "valid": False,
                "expired": False,
                "error": "Not authorized, invalid token"
            }

        user_id = payload.get("userId") or payload.get("sub")
        role = payload.get("role")
        if not user_id or not role:
            return {
                "valid": False,
                "expired": False,
                "error": "Not authorized, invalid token"
            }

        return {
            "valid": True,
            "claims": TokenClaims(user_id=str(user_id), role=str(role)),
            "expires_at": datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc),
        }


# Singleton instance for application-wide use
_jwt_manager_instance: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create JWT manager singleton instance from settings"""
    global _jwt_manager_instance

    if _jwt_manager_instance is None:
        from .config import get_settings

        auth = get_settings().auth
        _jwt_manager_instance = JWTManager(
            secret_key=auth.jwt_secret or None,
            algorithm=auth.jwt_algorithm,
            access_token_expiry=auth.jwt_expire_seconds,
        )

    return _jwt_manager_instance


def reset_jwt_manager(manager: Optional[JWTManager] = None) -> None:
    """Replace the singleton (tests, secret rotation)"""
    global _jwt_manager_instance
    _jwt_manager_instance = manager


__all__ = ["TokenClaims", "JWTManager", "get_jwt_manager", "reset_jwt_manager"]
