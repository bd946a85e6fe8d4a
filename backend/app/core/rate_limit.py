"""Per-source rate limiting for PIN verification.

``RateLimiter.check`` is the only thing callers depend on. The default
implementation keeps counters in the ``limits`` storage named by
``RATE_LIMIT_STORAGE_URI``: ``memory://`` for a single process, or a shared
store such as ``redis://`` when several instances serve traffic.
"""

import logging
import typing

import limits
from fastapi import Request
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from starlette.concurrency import run_in_threadpool

from app.core.config import settings

LOGGER = logging.getLogger(__name__)


class RateLimiter(typing.Protocol):
    async def check(self, key: str) -> bool:
        """Record one attempt for ``key``; False once the key is over its limit."""


class LimitsRateLimiter:
    def __init__(self, rate: str, storage_uri: str = "memory://") -> None:
        self.item = limits.parse(rate)
        self.storage = storage_from_string(storage_uri)
        self.strategy = MovingWindowRateLimiter(self.storage)
        self._in_process = storage_uri.startswith("memory://")

    async def check(self, key: str) -> bool:
        if self._in_process:
            allowed = self.strategy.hit(self.item, key)
        else:
            allowed = await run_in_threadpool(self.strategy.hit, self.item, key)
        if not allowed:
            LOGGER.warning("Rate limit %s exceeded for %s", self.item, key)
        return allowed

    def reset(self) -> None:
        self.storage.reset()


def get_rate_limit_key(request: Request) -> str:
    """Identify the caller by its peer address.

    Forwarding headers are only read when the peer is one of
    ``TRUSTED_PROXIES``; the client address is then the right-most hop that
    is not itself a trusted proxy.
    """
    peer = request.client.host if request.client and request.client.host else None
    trusted = settings.TRUSTED_PROXIES
    if peer is None or peer not in trusted:
        return f"ip:{peer or 'unknown'}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        hops = [h.strip() for h in forwarded.split(",") if h.strip()]
        for hop in reversed(hops):
            if hop not in trusted:
                return f"ip:{hop}"
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return f"ip:{real_ip.strip()}"
    return f"ip:{peer}"


verify_limiter = LimitsRateLimiter(settings.VERIFY_RATE_LIMIT, settings.RATE_LIMIT_STORAGE_URI)


def get_verify_limiter() -> RateLimiter:
    return verify_limiter
