import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from fastapi import HTTPException, Request, Response, status

from hoteldine.core.config import settings

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """
    The address a request is counted against.

    X-Forwarded-For is honoured only when the connecting peer is a trusted
    proxy; the client is then the right-most hop that is not itself trusted.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = settings.TRUSTED_PROXIES
    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded or peer not in trusted:
        return peer

    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return hops[0] if hops else peer


def _token_subject(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    return payload.get("sub")


def ip_key(request: Request) -> str:
    return f"ratelimit:ip:{client_ip(request)}"


def user_key(request: Request) -> str:
    subject = _token_subject(request)
    if subject:
        return f"ratelimit:user:{subject}"
    return ip_key(request)


class RedisRateLimit:
    """
    Fixed-window request limiter, used as a route dependency.

    The counter for a key is INCR'd on every request and expires `window`
    seconds after the first one. Once it passes `max_requests` the request is
    rejected with 429 and a `retryAfter` equal to the remaining window.
    If Redis is missing or errors the request is let through.
    """

    def __init__(
            self,
            window: int,
            max_requests: int,
            message: str = "Too many requests, please try again later.",
            key_func: Callable[[Request], str] = ip_key,
            scope: str = "",
    ):
        self.window = window
        self.max_requests = max_requests
        self.message = message
        self.key_func = key_func
        self.scope = scope

    async def __call__(self, request: Request, response: Response) -> None:
        redis_client = getattr(request.app.state, "redis_client", None)
        if redis_client is None:
            return

        key = self.key_func(request)
        if self.scope:
            key = f"{key}:{self.scope}"

        try:
            async with redis_client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.ttl(key)
                count, ttl = await pipe.execute()

            # First hit in the window, or a key that lost its expiry
            if ttl is None or ttl < 0:
                await redis_client.expire(key, self.window)
                ttl = self.window
        except Exception as e:
            logger.error(f"Rate limit check failed for '{key}', allowing request: {e}")
            return

        if count > self.max_requests:
            retry_after = max(1, min(int(ttl), self.window))
            logger.warning(f"Rate limit exceeded for '{key}' ({count}/{self.max_requests})")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": self.message,
                    "retryAfter": retry_after,
                    "limit": self.max_requests,
                    "window": self.window,
                },
                headers={"Retry-After": str(retry_after)},
            )

        reset_at = datetime.now(timezone.utc) + timedelta(seconds=int(ttl))
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.max_requests - count))
        response.headers["X-RateLimit-Reset"] = reset_at.isoformat()


user_rate_limit = RedisRateLimit(
    window=settings.RATE_LIMIT_WINDOW,
    max_requests=settings.RATE_LIMIT_USER_MAX,
    message="Too many requests from your account. Please try again later.",
    key_func=user_key,
)

ip_rate_limit = RedisRateLimit(
    window=settings.RATE_LIMIT_WINDOW,
    max_requests=settings.RATE_LIMIT_IP_MAX,
    message="Too many requests from this IP. Please try again later.",
    key_func=ip_key,
)

strict_rate_limit = RedisRateLimit(
    window=settings.RATE_LIMIT_STRICT_WINDOW,
    max_requests=settings.RATE_LIMIT_STRICT_MAX,
    message="Too many attempts. Please try again after some time.",
    key_func=user_key,
    scope="strict",
)
