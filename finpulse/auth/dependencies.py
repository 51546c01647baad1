"""
Authentication Dependencies
Resolves the workspace of the caller from its bearer token.
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from finpulse.auth.utils import decode_token

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI. Missing credentials resolve to None.
security = HTTPBearer(auto_error=False)


async def get_current_workspace_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[UUID]:
    """
    Dependency that returns the workspace id of the caller.

    Usage:
        @router.get("/")
        async def read(workspace_id: CurrentWorkspace):
            ...

    Returns:
        Workspace UUID, or None when the token is missing, invalid, expired,
        not an access token or has no workspace claim
    """
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials)
    if not payload:
        logger.debug("Rejected bearer token: invalid or expired")
        return None

    if payload.get("type", "access") != "access":
        return None

    workspace_id = payload.get("workspace_id")
    if not workspace_id:
        return None

    try:
        return UUID(str(workspace_id))
    except ValueError:
        logger.debug("Rejected bearer token: malformed workspace_id claim")
        return None


# Type alias for cleaner route signatures
CurrentWorkspace = Annotated[Optional[UUID], Depends(get_current_workspace_id)]
