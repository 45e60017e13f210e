"""Per-client request rate limiting for the API routes."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=False,
)


@limiter.limit(settings.API_RATE_LIMIT)
async def api_rate_limit(request: Request) -> None:
    """Router dependency: every /api route draws from one budget per client IP."""
