import json
import logging
from typing import Any, Optional

import redis

from retailer.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Connections are opened lazily on first command
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)


class CacheService:
    """
    Best-effort Redis cache for product details and reporting snapshots.

    Keys are namespaced as ``<namespace>:<key>`` and values are stored as
    JSON with a TTL. Redis being unavailable is never an error for callers:
    reads become misses and writes are skipped.
    """

    def __init__(self, client: redis.Redis = None, ttl: int = None, enabled: bool = None):
        self.client = client or redis_client
        self.ttl = ttl or settings.CACHE_TTL
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled

    @staticmethod
    def key(namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    def get(self, namespace: str, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or a Redis failure."""
        if not self.enabled:
            return None
        try:
            raw = self.client.get(self.key(namespace, key))
        except redis.RedisError as e:
            logger.debug(f"Cache read skipped for {namespace}:{key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Dropping undecodable cache entry {namespace}:{key}")
            self.delete(namespace, key)
            return None

    def set(self, namespace: str, key: str, value: Any, ttl: int = None) -> bool:
        if not self.enabled:
            return False
        try:
            payload = json.dumps(value, default=str)
            self.client.setex(self.key(namespace, key), ttl or self.ttl, payload)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.debug(f"Cache write skipped for {namespace}:{key}: {e}")
            return False

    def delete(self, namespace: str, key: str) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.delete(self.key(namespace, key))
            return True
        except redis.RedisError as e:
            logger.debug(f"Cache delete skipped for {namespace}:{key}: {e}")
            return False

    def ping(self) -> bool:
        """Raises redis.RedisError when the server is unreachable."""
        return bool(self.client.ping())


# Singleton cache service instance
cache_service = CacheService()
