# Overview: Service-layer health checks and runtime metrics.

"""
Three tiers:
- shallow: uptime plus up/down per dependency; no provider round-trips
- detailed: timed probes against every dependency plus process memory/cpu
- metrics: request timing aggregates, memory, cache state (JSON); the
  Prometheus text export lives on PrometheusMetrics

A dependency that is down makes the overall status DEGRADED (HTTP 503).
"""

from __future__ import annotations

import logging
import os
import platform
import time
from typing import Callable

import psutil
from sqlalchemy import text

from ..config import Settings
from ..extensions import db
from ..observability.metrics import MetricsAggregator, PrometheusMetrics
from ..time_utils import to_utc_z, utcnow
from .cache_client import cache_connected
from .integrations import Integrations


logger = logging.getLogger(__name__)

PROCESS_STARTED = time.monotonic()

STATUS_OK = "OK"
STATUS_DEGRADED = "DEGRADED"


def uptime_seconds() -> float:
    return round(time.monotonic() - PROCESS_STARTED, 3)


def _check_database() -> None:
    db.session.execute(text("SELECT 1"))


def _database_ok() -> bool:
    try:
        _check_database()
        return True
    except Exception:
        db.session.rollback()
        logger.exception("Database health check failed")
        return False


def _timed_probe(name: str, probe: Callable[[], None]) -> dict:
    started = time.perf_counter()
    status = "ok"
    try:
        probe()
    except Exception:
        status = "error"
        logger.exception("%s health check failed", name)
        if name == "database":
            db.session.rollback()
    return {
        "status": status,
        "response_time": round((time.perf_counter() - started) * 1000, 2),
        "last_check": to_utc_z(utcnow()),
    }


def _not_configured() -> dict:
    return {"status": "not_configured", "response_time": 0, "last_check": to_utc_z(utcnow())}


def _base(settings: Settings) -> dict:
    return {
        "status": STATUS_OK,
        "timestamp": to_utc_z(utcnow()),
        "uptime": uptime_seconds(),
        "environment": settings.APP_ENV,
        "version": settings.APP_VERSION,
    }


def _process_usage() -> tuple[dict, dict]:
    proc = psutil.Process()
    mem = proc.memory_info()
    cpu = proc.cpu_times()
    memory = {"rss": mem.rss, "vms": mem.vms, "percent": round(proc.memory_percent(), 2)}
    return memory, {"user": cpu.user, "system": cpu.system}


def shallow_status(settings: Settings, integrations: Integrations) -> dict:
    report = _base(settings)
    services = {
        "database": "ok" if _database_ok() else "error",
        "razorpay": "ok" if integrations.razorpay.is_configured else "error",
        "twilio": "ok" if integrations.whatsapp.is_configured else "error",
    }
    report["services"] = services
    if any(state != "ok" for state in services.values()):
        report["status"] = STATUS_DEGRADED
    return report


def detailed_status(settings: Settings, integrations: Integrations) -> dict:
    report = _base(settings)
    report["memory"], report["cpu"] = _process_usage()

    services = {"database": _timed_probe("database", _check_database)}
    services["razorpay"] = (
        _timed_probe("razorpay", integrations.razorpay.ping)
        if integrations.razorpay.is_configured else _not_configured()
    )
    services["twilio"] = (
        _timed_probe("twilio", integrations.whatsapp.ping)
        if integrations.whatsapp.is_configured else _not_configured()
    )
    if integrations.cache is not None:
        services["cache"] = _timed_probe("cache", integrations.cache.ping)
    else:
        services["cache"] = _not_configured()

    report["services"] = services
    if any(s["status"] == "error" for s in services.values()):
        report["status"] = STATUS_DEGRADED
    return report


def runtime_metrics(
    settings: Settings,
    integrations: Integrations,
    aggregator: MetricsAggregator,
    prometheus: PrometheusMetrics,
) -> dict:
    memory, cpu = _process_usage()
    prometheus.refresh_memory()
    connected = cache_connected(integrations.cache)
    prometheus.cache_connected.set(1 if connected else 0)
    return {
        "timestamp": to_utc_z(utcnow()),
        "uptime": uptime_seconds(),
        "memory": memory,
        "cpu": cpu,
        "process": {
            "pid": os.getpid(),
            "python_version": platform.python_version(),
            "platform": platform.system().lower(),
            "arch": platform.machine(),
        },
        "environment": {"app_env": settings.APP_ENV, "port": settings.PORT},
        "performance": aggregator.snapshot(),
        "cache": {"configured": integrations.cache is not None, "connected": connected},
    }
