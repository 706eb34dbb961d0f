# storefront/services/cache_service.py
import json

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CacheService:
    """
    Read-through cache for list/detail endpoints.
    -values are stored as JSON with a TTL
    -writes invalidate a whole key prefix (products:*, categories:* ...)
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def get_json(self, key: str):
        raw = self.redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    @redis_retry()
    def set_json(self, key: str, value, ttl: int) -> None:
        self.redis.set(name=key, value=json.dumps(value), ex=ttl)

    @redis_retry()
    def invalidate(self, prefix: str) -> int:
        # SCAN instead of KEYS so a large keyspace does not block redis
        keys = list(self.redis.scan_iter(match=f"{prefix}:*", count=500))
        if not keys:
            return 0
        logger.info(f"Invalidating {len(keys)} cache keys under {prefix}:*")
        return self.redis.delete(*keys)
