"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Usage in routes:
    from fastapi import Request
    from lexer_world.core.rate_limit import limiter

    @router.get("/api/events")
    @limiter.limit(settings.events_rate_limit)
    async def list_events(request: Request, response: Response):
        ...

The limiter is attached to app.state in lexer_world.main together with
slowapi's RateLimitExceeded handler, which turns an exhausted bucket
into a 429.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
