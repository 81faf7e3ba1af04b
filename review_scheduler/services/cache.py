"""Redis-backed cache for directory lookups.

Values are stored as JSON with a TTL. A Redis outage never fails a request:
reads fall back to a miss and writes are skipped.
"""

import json
import logging
from typing import Any

import redis

from review_scheduler.core import config
from review_scheduler.core.redis_client import get_redis_client

logger = logging.getLogger(__name__)

REVIEWER_LIST_KEY = 'reviewers:active'


class RedisCache:
    def __init__(self, client: redis.Redis | None = None, ttl_seconds: int = config.REVIEWER_CACHE_TTL_SECONDS):
        self._client = client
        self.ttl_seconds = ttl_seconds

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    def get(self, key: str) -> Any | None:
        try:
            value = self.client.get(key)
        except redis.RedisError as exc:
            logger.warning('Cache get failed for %s: %s', key, exc)
            return None

        if value is None:
            logger.debug('Cache miss: %s', key)
            return None
        logger.debug('Cache hit: %s', key)
        return json.loads(value)

    def set(self, key: str, value: Any) -> bool:
        try:
            self.client.setex(key, self.ttl_seconds, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning('Cache set failed for %s: %s', key, exc)
            return False
        return True

    def remove(self, key: str) -> bool:
        try:
            self.client.delete(key)
        except redis.RedisError as exc:
            logger.warning('Cache delete failed for %s: %s', key, exc)
            return False
        return True


reviewer_cache = RedisCache()
