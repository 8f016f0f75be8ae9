# Overview: Fixed-window rate limiting per client IP, one counter set per endpoint class.

"""
Rate limiting.

Four independent classes, each a fixed window keyed by client IP:

    general        RATE_LIMIT_MAX_REQUESTS per RATE_LIMIT_WINDOW_MS (100 / 15 min)
    auth           5 per 15 minutes
    payment        3 per minute
    notification   10 per minute

The general class is enforced for every /api request (health endpoints and
CORS preflights excepted); the others are stacked on routes with
@rate_limited(...). Counters live in process memory (limits MemoryStorage)
and are owned by the app instance, so separate workers count separately.

On a hit the client gets 429 with a fixed message and a Retry-After header,
and a RATE_LIMIT_EXCEEDED security event is logged.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from functools import wraps

from flask import current_app, has_request_context, request
from limits import RateLimitItem, RateLimitItemPerMinute, RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from .config import Settings
from .errors import RateLimitError
from .observability.logger import security_log


EXTENSION_KEY = "oem_rate_limiter"

GENERAL = "general"
AUTH = "auth"
PAYMENT = "payment"
NOTIFICATION = "notification"

EXEMPT_PREFIXES = ("/api/health",)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    item: RateLimitItem
    message: str


def default_policies(settings: Settings) -> dict[str, RateLimitPolicy]:
    window_seconds = max(1, settings.RATE_LIMIT_WINDOW_MS // 1000)
    policies = (
        RateLimitPolicy(
            GENERAL,
            RateLimitItemPerSecond(settings.RATE_LIMIT_MAX_REQUESTS, window_seconds),
            "Too many requests from this IP, please try again later.",
        ),
        RateLimitPolicy(
            AUTH,
            RateLimitItemPerMinute(5, 15),
            "Too many authentication attempts, please try again later.",
        ),
        RateLimitPolicy(
            PAYMENT,
            RateLimitItemPerMinute(3, 1),
            "Too many payment attempts, please try again later.",
        ),
        RateLimitPolicy(
            NOTIFICATION,
            RateLimitItemPerMinute(10, 1),
            "Too many notification attempts, please try again later.",
        ),
    )
    return {p.name: p for p in policies}


class RateLimiter:
    def __init__(self, policies: dict[str, RateLimitPolicy]):
        self.policies = dict(policies)
        self.storage = MemoryStorage()
        self.strategy = FixedWindowRateLimiter(self.storage)

    def hit(self, name: str, key: str) -> None:
        """Count one request for `key`; raise RateLimitError once the window is full."""
        policy = self.policies[name]
        if self.strategy.hit(policy.item, name, key):
            return

        stats = self.strategy.get_window_stats(policy.item, name, key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        security_log(
            "RATE_LIMIT_EXCEEDED",
            limiter=name,
            ip=key,
            path=request.path if has_request_context() else None,
            method=request.method if has_request_context() else None,
        )
        raise RateLimitError(policy.message, retry_after=retry_after)

    def reset(self) -> None:
        self.storage.reset()


def current_limiter() -> RateLimiter:
    return current_app.extensions[EXTENSION_KEY]


def client_key() -> str:
    return request.remote_addr or "unknown"


def enforce_general_limit() -> None:
    """before_request hook."""
    if request.method == "OPTIONS":
        return
    path = request.path
    if not path.startswith("/api") or path.startswith(EXEMPT_PREFIXES):
        return
    current_limiter().hit(GENERAL, client_key())


def rate_limited(name: str):
    """Apply an additional rate-limit class to a route, ahead of auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            current_limiter().hit(name, client_key())
            return f(*args, **kwargs)

        return decorated_function

    return decorator
