"""
Authentication Utilities
JWT handling for tokens issued by the external auth service.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from finpulse.config import settings


def create_access_token(
    subject: str,
    workspace_id: str,
    expires_minutes: int = 30,
    extra_data: dict[str, Any] | None = None,
) -> str:
    """
    Create a JWT access token carrying the workspace claim.

    Tokens are normally issued by the auth service; this is used by local
    tooling and tests.

    Args:
        subject: Token subject (typically user ID)
        workspace_id: Workspace the user belongs to
        expires_minutes: Lifetime of the token
        extra_data: Additional data to include in token payload

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "workspace_id": workspace_id,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }

    if extra_data:
        payload.update(extra_data)

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        Token payload dict if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
        return payload
    except JWTError:
        return None
