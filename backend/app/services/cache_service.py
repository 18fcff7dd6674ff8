"""
Redis cache for show listings.

Only the catalog listing is cached. Seat maps are never cached: a stale
seat map would show taken seats as free, and the ledger is cheap to read.

Cache key pattern: "shows:list:page={page}&size={size}&upcoming={upcoming}"
Invalidation: every key under "shows:list:" is deleted when a show is
created; the TTL is a safety net.

Redis is advisory. Any Redis failure is logged and treated as a cache miss.
"""

import json
from typing import Optional

import redis.asyncio as redis
from fastapi import Request

from app.core.config import Settings
from app.core.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "shows:list:"


class ShowListCache:
    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = 300):
        self.client = client
        self.ttl = ttl

    @classmethod
    async def connect(cls, settings: Settings) -> "ShowListCache":
        """Build a cache from settings; returns a disabled cache if Redis is off or unreachable."""
        if not settings.REDIS_ENABLED:
            return cls(None, settings.REDIS_CACHE_TTL)

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
            return cls(None, settings.REDIS_CACHE_TTL)

        logger.info("redis_connected", url=settings.REDIS_URL)
        return cls(client, settings.REDIS_CACHE_TTL)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    @staticmethod
    def _key(page: int, page_size: int, upcoming_only: bool) -> str:
        return f"{KEY_PREFIX}page={page}&size={page_size}&upcoming={upcoming_only}"

    async def get(self, page: int, page_size: int, upcoming_only: bool) -> Optional[dict]:
        if not self.enabled:
            return None

        key = self._key(page, page_size, upcoming_only)
        try:
            data = await self.client.get(key)
        except redis.RedisError as e:
            logger.error("cache_get_error", key=key, error=str(e))
            return None
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
        return None

    async def set(self, page: int, page_size: int, upcoming_only: bool, data: dict) -> None:
        if not self.enabled:
            return

        key = self._key(page, page_size, upcoming_only)
        try:
            await self.client.setex(key, self.ttl, json.dumps(data, default=str))
        except redis.RedisError as e:
            logger.error("cache_set_error", key=key, error=str(e))

    async def invalidate(self) -> None:
        if not self.enabled:
            return

        try:
            deleted = 0
            async for key in self.client.scan_iter(match=f"{KEY_PREFIX}*", count=100):
                await self.client.delete(key)
                deleted += 1
            logger.info("cache_invalidated", keys_deleted=deleted)
        except redis.RedisError as e:
            logger.error("cache_invalidation_error", error=str(e))

    async def stats(self) -> dict:
        if not self.enabled:
            return {"status": "disabled"}

        try:
            info = await self.client.info("stats")
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


def get_show_cache(request: Request) -> ShowListCache:
    cache = getattr(request.app.state, "show_cache", None)
    return cache if cache is not None else ShowListCache(None)
