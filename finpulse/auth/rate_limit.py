"""
Rate Limiting Utilities
Rate limiting configuration for the write endpoints.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from finpulse.config import settings

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

# Limit applied to every endpoint that writes
WRITE_RATE_LIMIT = settings.write_rate_limit
