from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from modules.localization.schemas import ErrorResponse


def caller_key_func(request: Request):
    # Forwarded callers are limited per user, anonymous ones per address
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id.strip()}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=caller_key_func,
)


async def rate_limit_handler(_request: Request, exc: Exception):
    """Custom rate limit handler that returns a 429 status code and an error body."""
    if isinstance(exc, RateLimitExceeded):
        body = ErrorResponse(
            error="Rate limit exceeded",
            error_code="rate_limited",
            details={"limit": str(exc.detail)},
        )
        return JSONResponse(status_code=429, content=body.model_dump())


def setup_rate_limiter(app: FastAPI):
    """
    Setup rate limiting for the FastAPI application.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


def get_limiter():
    """
    Returns the limiter instance.
    """
    return limiter
