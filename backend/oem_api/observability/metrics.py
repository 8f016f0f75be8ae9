"""
Request metrics.

MetricsAggregator keeps the running request/latency summary served by
/api/health/metrics. PrometheusMetrics owns a private CollectorRegistry so
each app instance (and each test) starts from zero.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass

import psutil
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from ..time_utils import to_utc_z, utcnow


DURATION_BUCKETS = (0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10)


@dataclass
class RequestTiming:
    url: str = ""
    time_ms: float = 0.0


class MetricsAggregator:
    """Process-wide request counters, owned by the app instance."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.total_response_time_ms = 0.0
            self.slowest = RequestTiming()
            self.fastest = RequestTiming(time_ms=math.inf)

    def record(self, url: str, duration_ms: float) -> None:
        with self._lock:
            self.total_requests += 1
            self.total_response_time_ms += duration_ms
            if duration_ms > self.slowest.time_ms:
                self.slowest = RequestTiming(url, duration_ms)
            if duration_ms < self.fastest.time_ms:
                self.fastest = RequestTiming(url, duration_ms)

    @property
    def average_response_time_ms(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.total_response_time_ms / self.total_requests

    def snapshot(self) -> dict:
        with self._lock:
            fastest = None if math.isinf(self.fastest.time_ms) else self.fastest
            return {
                "total_requests": self.total_requests,
                "total_response_time_ms": round(self.total_response_time_ms, 2),
                "average_response_time_ms": round(self.average_response_time_ms, 2),
                "slowest_request": {"url": self.slowest.url, "time_ms": round(self.slowest.time_ms, 2)},
                "fastest_request": (
                    {"url": fastest.url, "time_ms": round(fastest.time_ms, 2)} if fastest else None
                ),
                "timestamp": to_utc_z(utcnow()),
            }


class PrometheusMetrics:
    """Counter/histogram/gauge families exported at /api/health/prometheus."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "route", "status_code"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "route", "status_code"],
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )
        self.memory_usage = Gauge(
            "memory_usage_bytes",
            "Memory usage in bytes",
            ["type"],
            registry=self.registry,
        )
        self.cache_connected = Gauge(
            "cache_connected",
            "1 when the cache endpoint answered the last probe",
            registry=self.registry,
        )

    def observe_request(self, method: str, route: str, status_code: int, duration_seconds: float) -> None:
        labels = {"method": method, "route": route, "status_code": str(status_code)}
        self.http_requests_total.labels(**labels).inc()
        self.http_request_duration.labels(**labels).observe(duration_seconds)

    def refresh_memory(self) -> dict:
        info = psutil.Process().memory_info()
        usage = {"rss": info.rss, "vms": info.vms}
        for kind, value in usage.items():
            self.memory_usage.labels(type=kind).set(value)
        return usage

    def export(self) -> tuple[bytes, str]:
        self.refresh_memory()
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
