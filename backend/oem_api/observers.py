# Overview: Response observers registered once on the app's after_request chain.

"""
Response observers.

Each observer sees the final RequestContext and the outgoing response after
the view (or the error translator) has produced it. They are side effects
only: they must never change the body or status. A failing observer is
logged and skipped so it can never break a response.

    TimingObserver          aggregate timings, Prometheus series, slow-request log
    RequestAuditObserver    one audit record per request (health excluded)
    SecurityEventObserver   auth attempts and every 4xx/5xx response
    DataAccessObserver      who touched orders/compliance/payments, and how many rows
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from flask import Flask, Response, request

from .context import RequestContext, current_context
from .observability.logger import audit_log, performance_log, request_log, security_log
from .observability.metrics import MetricsAggregator, PrometheusMetrics


logger = logging.getLogger(__name__)

HEALTH_PREFIX = "/api/health"
AUTH_PREFIX = "/api/auth"
SENSITIVE_PREFIXES = ("/api/orders", "/api/compliance", "/api/payments")
SLOW_REQUEST_MS = 1000

_ACTIONS = {"GET": "read", "POST": "create", "PUT": "update", "PATCH": "update", "DELETE": "delete"}


class ResponseObserver(Protocol):
    def observe(self, ctx: RequestContext, response: Response) -> None:
        ...


def _route_label() -> str:
    rule = request.url_rule
    return rule.rule if rule is not None else "unmatched"


def _response_size(response: Response) -> int:
    if response.content_length is not None:
        return response.content_length
    if response.is_streamed:
        return 0
    return len(response.get_data())


class TimingObserver:
    def __init__(self, aggregator: MetricsAggregator, prometheus: PrometheusMetrics,
                 slow_threshold_ms: float = SLOW_REQUEST_MS):
        self.aggregator = aggregator
        self.prometheus = prometheus
        self.slow_threshold_ms = slow_threshold_ms

    def observe(self, ctx: RequestContext, response: Response) -> None:
        elapsed_ms = ctx.elapsed_ms()
        self.aggregator.record(ctx.path, elapsed_ms)
        self.prometheus.observe_request(ctx.method, _route_label(), response.status_code, elapsed_ms / 1000)
        if elapsed_ms > self.slow_threshold_ms:
            performance_log(
                "SLOW_REQUEST", elapsed_ms,
                method=ctx.method, path=ctx.path, status_code=response.status_code,
            )


class RequestAuditObserver:
    def observe(self, ctx: RequestContext, response: Response) -> None:
        if ctx.path.startswith(HEALTH_PREFIX):
            return
        elapsed_ms = ctx.elapsed_ms()
        request_log(ctx.method, ctx.path, response.status_code, elapsed_ms, ctx.ip, ctx.actor)
        audit_log(
            "API_RESPONSE",
            ctx.actor,
            request_id=ctx.request_id,
            method=ctx.method,
            path=ctx.path,
            ip=ctx.ip,
            user_agent=ctx.user_agent,
            status_code=response.status_code,
            response_time_ms=round(elapsed_ms, 2),
            response_size=_response_size(response),
            success=200 <= response.status_code < 300,
        )


class SecurityEventObserver:
    def observe(self, ctx: RequestContext, response: Response) -> None:
        status = response.status_code
        base = {"method": ctx.method, "path": ctx.path, "ip": ctx.ip, "user_agent": ctx.user_agent}

        if ctx.path.startswith(AUTH_PREFIX):
            success = status < 400
            security_log(
                "AUTH_SUCCESS" if success else "AUTH_FAILURE",
                success=success, user_id=ctx.user_id or "unknown", status_code=status, **base,
            )

        if status >= 400:
            security_log(
                "API_ERROR",
                error_type="server_error" if status >= 500 else "client_error",
                status_code=status, user_id=ctx.actor, **base,
            )


def _record_count(response: Response) -> int:
    if response.status_code >= 400 or not response.is_json:
        return 0
    payload = response.get_json(silent=True) or {}
    data = payload.get("data")
    if data is None:
        return 1 if payload.get("success") else 0
    if isinstance(data, list):
        return len(data)
    if isinstance(data, dict) and "pagination" in data:
        return sum(len(v) for v in data.values() if isinstance(v, list))
    return 1


class DataAccessObserver:
    def observe(self, ctx: RequestContext, response: Response) -> None:
        if not ctx.path.startswith(SENSITIVE_PREFIXES):
            return
        audit_log(
            "DATA_ACCESS",
            ctx.actor,
            resource=ctx.path.split("/")[2],
            action=_ACTIONS.get(ctx.method, ctx.method.lower()),
            method=ctx.method,
            path=ctx.path,
            ip=ctx.ip,
            record_count=_record_count(response),
            success=200 <= response.status_code < 300,
        )


def default_observers(aggregator: MetricsAggregator, prometheus: PrometheusMetrics) -> list[ResponseObserver]:
    return [
        TimingObserver(aggregator, prometheus),
        RequestAuditObserver(),
        SecurityEventObserver(),
        DataAccessObserver(),
    ]


def register_observers(app: Flask, observers: Iterable[ResponseObserver]) -> None:
    chain = list(observers)
    app.extensions["oem_response_observers"] = chain

    @app.after_request
    def notify_observers(response):
        ctx = current_context()
        for observer in chain:
            try:
                observer.observe(ctx, response)
            except Exception:
                logger.exception("Response observer %s failed", type(observer).__name__)
        return response
