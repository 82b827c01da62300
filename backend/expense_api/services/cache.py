"""
Redis-backed cache used to memoize expensive read endpoints.

The cache is only an accelerator: every operation swallows Redis failures,
logs them, and reports a miss or a no-op so callers fall through to the
database.
"""

import logging
from typing import List, Optional

import redis

from ..core.settings import get_settings

logger = logging.getLogger(__name__)


class RedisCache:
    """String key/value cache with optional TTL and glob-pattern key listing"""

    def __init__(self, client: Optional[redis.Redis] = None):
        if client is None:
            settings = get_settings()
            client = redis.Redis.from_url(
                settings.cache_url,
                decode_responses=True,
                socket_timeout=settings.cache_socket_timeout_s,
                socket_connect_timeout=settings.cache_socket_timeout_s,
            )
        self.client = client

    def healthcheck(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis healthcheck failed: {e}")
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        try:
            if ttl_seconds:
                self.client.setex(key, ttl_seconds, value)
            else:
                self.client.set(key, value)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        if not keys:
            return True
        try:
            self.client.delete(*keys)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {keys}: {e}")
            return False

    def keys(self, pattern: str) -> List[str]:
        """List keys matching a glob pattern using SCAN rather than KEYS"""
        try:
            return list(self.client.scan_iter(match=pattern, count=500))
        except redis.RedisError as e:
            logger.warning(f"Cache scan failed for {pattern}: {e}")
            return []

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching pattern; returns how many were removed"""
        keys = self.keys(pattern)
        if keys and self.delete(*keys):
            return len(keys)
        return 0


# Global instance - will be initialized when first accessed
redis_cache = None

def get_cache() -> RedisCache:
    """Get or create the Redis cache instance"""
    global redis_cache
    if redis_cache is None:
        redis_cache = RedisCache()
    return redis_cache
