"""Rate limiting configuration using slowapi.

Security: Limits request frequency on expensive endpoints (document
uploads). When auth is enabled, keys on the JWT subject so users behind a
shared IP do not throttle each other; unauthenticated requests fall back
to IP-based keying.

Usage in routers:
    from serenity.core.rate_limiting import limiter

    @router.post("/{client_id}/documents")
    @limiter.limit(settings.rate_limit_uploads)
    async def upload_document(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from serenity.core.config import settings


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Auth disabled: "{ip}" (local dev mode)
    - Auth enabled + valid JWT: "user:{sub}"
    - Auth enabled + no/invalid JWT: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    if not settings.auth_enabled:
        return get_remote_address(request)

    # Only the sub claim is needed for keying; deps.py does full validation.
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        try:
            payload = jwt.decode(
                token,
                settings.auth_secret.get_secret_value(),
                algorithms=["HS256"],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
            )
            sub = payload["sub"]
            if len(sub) <= 36:
                return f"user:{sub}"
        except (jwt.InvalidTokenError, KeyError):
            pass

    return f"unauth:{get_remote_address(request)}"


# In-memory storage (single instance). For multi-instance deployments
# configure Redis storage via RATELIMIT_STORAGE_URL.
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Return 429 Too Many Requests with the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
