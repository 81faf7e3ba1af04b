import logging

import redis
from arq.connections import RedisSettings

from review_scheduler.core import config

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


def get_redis_settings() -> RedisSettings:
    return RedisSettings.from_dsn(config.REDIS_URL)


def get_redis_client() -> redis.Redis:
    """Shared synchronous client; connections are opened on first command."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            config.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        logger.info('Redis client configured for %s', config.REDIS_URL.rsplit('@', 1)[-1])
    return _redis_client
