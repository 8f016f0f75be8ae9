# Overview: Request-scoped context handed explicitly to route handlers.

"""
RequestContext carries everything a handler needs to know about the caller.

It is created once per request (before_request), is immutable, and is
passed as the first positional argument to every route function by the
auth decorators. Authenticating produces a *new* context with the identity
attached; the response observers read the final one back via
current_context().
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime

from flask import g, request

from .time_utils import utcnow


ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    role: str

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "role": self.role}


@dataclass(frozen=True)
class RequestContext:
    request_id: str
    method: str
    path: str
    ip: str | None
    user_agent: str | None
    received_at: datetime
    started_at: float
    identity: Identity | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def user_id(self) -> str | None:
        return self.identity.id if self.identity else None

    @property
    def actor(self) -> str:
        """User id for logging; "anonymous" when unauthenticated."""
        return self.identity.id if self.identity else ANONYMOUS

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000

    def with_identity(self, identity: Identity) -> "RequestContext":
        return replace(self, identity=identity)


def begin_request_context() -> RequestContext:
    ctx = RequestContext(
        request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex,
        method=request.method,
        path=request.path,
        ip=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        received_at=utcnow(),
        started_at=time.perf_counter(),
    )
    g.request_context = ctx
    return ctx


def current_context() -> RequestContext:
    ctx = g.get("request_context")
    if ctx is None:
        ctx = begin_request_context()
    return ctx


def bind_identity(ctx: RequestContext, identity: Identity) -> RequestContext:
    """Return ctx with identity attached and publish it for the observers."""
    authed = ctx.with_identity(identity)
    g.request_context = authed
    return authed
