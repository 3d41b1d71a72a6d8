"""
Redis caching primitives for frequently read camp and organization data.

Every operation degrades to "no cache" when Redis is down: reads miss,
writes and deletes report failure, and nothing is raised to the caller.
"""

import json
import logging
from typing import Any, Optional

from .config import CACHE_ENABLED
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class CacheTTL:
    """Cache lifetimes in seconds"""

    SHORT = 60
    MEDIUM = 300
    LONG = 1800
    VERY_LONG = 7200


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value is None:
                logger.debug(f"❌ Cache MISS: {key}")
                return None
            logger.debug(f"✅ Cache HIT: {key}")
            return json.loads(value)
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern (e.g. 'camps:list:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = client.keys(pattern)
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


# Global cache instance
cache = Cache(enabled=CACHE_ENABLED)


# Cache key builders


def _format_key_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def get_cache_key(entity: str, entity_id: Any = None, sub_entity: Optional[str] = None) -> str:
    """Build 'entity', 'entity:id' or 'entity:id:sub_entity'"""
    parts = [entity]
    if entity_id is not None:
        parts.append(str(entity_id))
        if sub_entity:
            parts.append(sub_entity)
    return ":".join(parts)


def get_list_cache_key(
    entity: str, filters: Optional[dict] = None, page: int = 1, page_size: int = 20
) -> str:
    """
    Build a list key from filters and pagination.

    None-valued filters are dropped and the rest sorted by name, so equal
    filter sets always map to the same key:
        camps:list:organization_id=5&status=active:page=1&page_size=20
    """
    filter_str = "&".join(
        f"{name}={_format_key_value(value)}"
        for name, value in sorted((filters or {}).items())
        if value is not None
    )
    pagination = f"page={page}&page_size={page_size}"
    if filter_str:
        return f"{entity}:list:{filter_str}:{pagination}"
    return f"{entity}:list:{pagination}"


# Cache statistics (for monitoring)


def get_cache_stats() -> dict:
    client = cache._get_client()
    if not client:
        return {"available": False}

    try:
        info = client.info()
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "available": True,
            "used_memory": info.get("used_memory_human"),
            "connected_clients": info.get("connected_clients"),
            "keyspace_hits": hits,
            "keyspace_misses": misses,
            "hit_rate": (hits / max(hits + misses, 1)) * 100,
        }
    except Exception as e:
        logger.error(f"❌ Failed to get cache stats: {e}")
        return {"available": False, "error": str(e)}
