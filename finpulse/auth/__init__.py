"""
Authentication Package
Resolves the caller's workspace from JWTs issued by the auth service.
"""

from finpulse.auth.dependencies import CurrentWorkspace, get_current_workspace_id
from finpulse.auth.rate_limit import limiter
from finpulse.auth.utils import create_access_token, decode_token

__all__ = [
    # Dependencies
    "CurrentWorkspace",
    "get_current_workspace_id",
    # Rate limiting
    "limiter",
    # Utils
    "create_access_token",
    "decode_token",
]
