"""slowapi limiter shared by the routers that need throttling."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from volunteer_connect.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)
