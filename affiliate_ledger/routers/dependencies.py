"""
Shared request dependencies for the public ledger endpoints
"""
import logging

from fastapi import HTTPException, Request

from ..core.config import settings
from ..utils.rate_limit import get_rate_limiter

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Get client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First hop is the client
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limited(scope: str, max_setting: str, window_setting: str):
    """
    Build a dependency that throttles a route per client IP.

    Limits are read from settings on every call so they can be tuned without
    rebuilding the router.
    """

    def _check(request: Request) -> None:
        limit = getattr(settings, max_setting)
        window = getattr(settings, window_setting)
        ip = get_client_ip(request)
        decision = get_rate_limiter().hit(f"{scope}:{ip}", limit, window)
        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {scope} from {ip}")
            raise HTTPException(
                status_code=429,
                detail="Too many requests, please try again later.",
                headers={"Retry-After": str(decision.retry_after)},
            )

    return _check


click_rate_limit = rate_limited("clicks", "CLICK_RATE_LIMIT_MAX", "CLICK_RATE_LIMIT_WINDOW_SECONDS")
order_rate_limit = rate_limited("orders", "ORDER_RATE_LIMIT_MAX", "ORDER_RATE_LIMIT_WINDOW_SECONDS")
