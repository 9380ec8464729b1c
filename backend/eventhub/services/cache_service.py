"""
Redis caching service for event listings.

CACHING STRATEGY
================

What we cache:
  - Filtered event listing responses (JSON-serialized, attendee counts included)
  - Cache key pattern: "events:list:{filters-json}"

Invalidation:
  - Any booking or cancellation changes attendee counts, and any event
    create/update/delete changes the listing itself, so every mutation
    deletes all "events:list:*" keys
  - TTL-based expiry as safety net

Single-event reads and the popular ranking are never cached: booking
screens need live attendee counts.

Redis is advisory only. Any Redis failure is logged and treated as a miss,
so the API keeps working (uncached) during an outage.
"""

import json
from typing import Optional

import redis.asyncio as redis
from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_cache_lookup

logger = get_logger(__name__)
settings = get_settings()

EVENT_LIST_PREFIX = "events:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        logger.info("redis_connected", url=settings.REDIS_URL)
        _redis_client = client

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(filters_key: str) -> str:
    return f"{EVENT_LIST_PREFIX}{filters_key}"


async def get_cached_events(filters_key: str) -> Optional[list[dict]]:
    client = await get_redis()
    if not client:
        return None

    key = make_event_list_key(filters_key)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        record_cache_lookup("error")
        return None

    if data:
        record_cache_lookup("hit")
        return json.loads(data)
    record_cache_lookup("miss")
    return None


async def set_cached_events(filters_key: str, events: list[dict]) -> None:
    client = await get_redis()
    if not client:
        return

    key = make_event_list_key(filters_key)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(events, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """Delete every cached event listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
