# Overview: Optional Redis cache connection (feature disabled when unconfigured).

from __future__ import annotations

import logging

import redis


logger = logging.getLogger(__name__)


def connect_cache(url: str | None, token: str | None) -> redis.Redis | None:
    """
    Build a Redis client when both URL and token are configured.

    The connection is lazy: nothing is contacted until the first command, so
    an unreachable cache never blocks startup.
    """
    if not url or not token:
        logger.info("Redis configuration missing - running without cache")
        return None
    try:
        return redis.Redis.from_url(
            url,
            password=token,
            socket_connect_timeout=10,
            socket_timeout=5,
            health_check_interval=30,
        )
    except ValueError as e:
        # from_url accepts redis://, rediss:// and unix:// only
        logger.warning("Unusable Redis URL - running without cache: %s", e)
        return None


def cache_connected(client: redis.Redis | None) -> bool:
    if client is None:
        return False
    try:
        return bool(client.ping())
    except redis.RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False
