"""
Shared Redis connection and hybrid in-memory + Redis rate limiting.

Counters live in process memory and are written through to Redis every few
seconds, so a burst of requests costs one Redis round trip instead of one per
request.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .security_utils import get_client_ip

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None

# {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0

# After a failed connect, skip new attempts for this many seconds
REDIS_RETRY_INTERVAL = int(os.getenv("REDIS_RETRY_INTERVAL", "30"))
_last_connect_failure = 0.0

_CONNECTION_OPTIONS = {
    "decode_responses": True,
    "socket_connect_timeout": 5,
    "socket_timeout": 10,
    "retry_on_timeout": True,
    "health_check_interval": 30,
    "max_connections": 20,
}


def _mask_url(redis_url: str) -> str:
    if "@" not in redis_url:
        return "****"
    credentials, host = redis_url.split("@", 1)
    return f"{credentials.split(':')[0]}:****@{host}"


def get_redis_client() -> redis.Redis:
    """
    Get or create the process-wide Redis client.

    REDIS_URL wins when set; otherwise REDIS_HOST/REDIS_PORT/REDIS_PASSWORD/
    REDIS_DB/REDIS_SSL are used. Raises if the server does not answer PING.
    """
    global redis_client, _last_connect_failure

    if redis_client is not None:
        return redis_client
    if time.time() - _last_connect_failure < REDIS_RETRY_INTERVAL:
        raise redis.ConnectionError("Redis unavailable (retry backoff)")

    redis_url = os.getenv("REDIS_URL")
    try:
        if redis_url:
            logger.info(f"📡 Connecting to Redis via URL: {_mask_url(redis_url)}")
            client = redis.from_url(redis_url, **_CONNECTION_OPTIONS)
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
            logger.info(
                f"📡 Connecting to Redis at {redis_host}:{redis_port} "
                f"({'with' if redis_ssl else 'without'} SSL)"
            )
            client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=os.getenv("REDIS_PASSWORD") or None,
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=redis_ssl,
                **_CONNECTION_OPTIONS,
            )
        client.ping()
    except Exception as e:
        _last_connect_failure = time.time()
        logger.error(f"❌ Failed to connect to Redis: {e}")
        raise

    logger.info("✅ Redis connected")
    redis_client = client
    return redis_client


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [
            k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)
        ]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def _load_window(key: str, window_seconds: int, client: Optional[redis.Redis], now: int) -> dict:
    """Seed a memory window from Redis so limits survive across workers"""
    if client is None:
        return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}
    try:
        redis_count = client.get(key)
        redis_ttl = client.ttl(key)
        if redis_count and redis_ttl > 0:
            return {"count": int(redis_count), "reset_time": now + redis_ttl, "last_redis_sync": now}
    except Exception as e:
        logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis]
) -> tuple[bool, int, int]:
    """Count a request against a fixed window.

    With no Redis client the window is tracked in this process only.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    try:
        now = int(time.time())
        cleanup_expired_cache()

        with cache_lock:
            if key not in memory_cache:
                memory_cache[key] = _load_window(key, window_seconds, client, now)
            entry = memory_cache[key]

            if now >= entry["reset_time"]:
                entry["count"] = 0
                entry["reset_time"] = now + window_seconds
                entry["last_redis_sync"] = 0

            is_allowed = entry["count"] < limit
            if is_allowed:
                entry["count"] += 1

            if client is not None and now - entry.get("last_redis_sync", 0) >= MEMORY_CACHE_SYNC_INTERVAL:
                try:
                    client.set(key, entry["count"], ex=window_seconds)
                    entry["last_redis_sync"] = now
                    logger.debug(f"📡 Synced {key} to Redis: {entry['count']}/{limit}")
                except Exception as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

            return is_allowed, entry["count"], max(0, entry["reset_time"] - now)

    except Exception as e:
        logger.error(f"❌ Rate limit check failed: {e}")
        logger.warning("🔒 Denying request due to rate limiting error (fail-closed mode)")
        return False, limit, 0


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_ip: bool = True,
):
    """Reject the request with 429 once the caller is over its window"""
    try:
        client = get_redis_client()
    except Exception as e:
        logger.warning(f"⚠️ Redis unavailable, rate limiting {key_prefix} in memory only: {e}")
        client = None

    key = f"{key_prefix}:{get_client_ip(request) or 'unknown'}" if use_ip else f"{key_prefix}:global"
    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        signing_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="signing")

        @router.post("/{request_id}/sign")
        async def sign(..., _: None = Depends(signing_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter
