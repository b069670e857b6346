import json
import logging
import redis
from typing import Optional, Any, Iterable

from app.config import get_settings

settings = get_settings()

logger = logging.getLogger(__name__)

# Short timeouts: the cache is an optimisation and must never stall a request
redis_client = redis.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    socket_connect_timeout=1,
    socket_timeout=1,
)


class CacheService:
    """
    Redis cache for product details.

    Every operation swallows Redis errors and reports a miss or a failed
    write instead, so the database stays the source of truth.
    """

    def __init__(self, client: redis.Redis = None, ttl: int = None):
        self.client = client or redis_client
        self.ttl = ttl or settings.CACHE_TTL

    def _make_key(self, prefix: str, key: str) -> str:
        """Create a namespaced cache key."""
        return f"{prefix}:{key}"

    def get(self, prefix: str, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Returns:
            Cached value or None if not found or Redis is unavailable
        """
        cache_key = self._make_key(prefix, key)
        try:
            value = self.client.get(cache_key)
            if value:
                return json.loads(value)
            return None
        except (redis.RedisError, json.JSONDecodeError) as e:
            logger.debug(f"Cache read failed for {cache_key}: {e}")
            return None

    def set(self, prefix: str, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set a value in cache with TTL.

        Returns:
            True if successful, False otherwise
        """
        cache_key = self._make_key(prefix, key)
        ttl = ttl or self.ttl
        try:
            serialized = json.dumps(value, default=str)
            self.client.setex(cache_key, ttl, serialized)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.debug(f"Cache write failed for {cache_key}: {e}")
            return False

    def delete(self, prefix: str, key: str) -> bool:
        return self.delete_many(prefix, [key])

    def delete_many(self, prefix: str, keys: Iterable[str]) -> bool:
        """Drop several entries of one prefix in a single round trip."""
        cache_keys = [self._make_key(prefix, key) for key in keys]
        if not cache_keys:
            return True
        try:
            self.client.delete(*cache_keys)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache invalidation failed for {cache_keys}: {e}")
            return False


# Singleton cache service instance
cache_service = CacheService()
