"""Redis cache layer for asset lookups."""

import json
import logging
from typing import Optional

import redis.asyncio as redis

from .models import AssetRecord


class RedisCache:
    """Redis cache for short code -> asset record lookups.

    Cached records are used for lookups and visibility checks only. View
    counts always come from the store's increment, never from here.

    Each code has a generation counter that ``invalidate`` bumps. An entry
    is stored with the generation read before its row was fetched and is
    ignored once the counter has moved on, so a lookup that raced a
    visibility change or delete cannot bring the old row back.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Default TTL for cached items
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = redis_url is not None
        self.client: Optional[redis.Redis] = None

        if redis_url:
            self.logger.info(f"Redis cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self.enabled:
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except Exception as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    async def get_record(self, short_code: str) -> Optional[AssetRecord]:
        """Get a cached record.

        Args:
            short_code: The short code

        Returns:
            Cached record or None
        """
        if not self.enabled or not self.client:
            return None

        try:
            raw, generation = await self.client.mget(
                self.get_cache_key(short_code), self.get_generation_key(short_code)
            )
        except Exception as e:
            self.logger.error(f"Cache get error: {e}")
            return None

        if not raw:
            return None
        try:
            entry = json.loads(raw)
            if entry["generation"] != int(generation or 0):
                self.logger.debug(f"Ignoring outdated cache entry for {short_code}")
                return None
            return AssetRecord.from_dict(entry["record"])
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Dropping unreadable cache entry for {short_code}: {e}")
            await self.invalidate(short_code)
            return None

    async def generation(self, short_code: str) -> Optional[int]:
        """Current generation of a short code, read before fetching its row.

        Returns:
            The generation, or None if the cache is unusable
        """
        if not self.enabled or not self.client:
            return None

        try:
            return int(await self.client.get(self.get_generation_key(short_code)) or 0)
        except Exception as e:
            self.logger.error(f"Cache generation error: {e}")
            return None

    async def set_record(self, record: AssetRecord, generation: int, ttl: Optional[int] = None) -> bool:
        """Cache a record under its short code.

        Args:
            record: Record to cache
            generation: Generation read before the record was fetched
            ttl: Optional TTL override (seconds)

        Returns:
            True if successful
        """
        if not self.enabled or not self.client:
            return False

        try:
            ttl = ttl or self.ttl_seconds
            entry = {"generation": generation, "record": record.to_dict()}
            await self.client.setex(self.get_cache_key(record.short_code), ttl, json.dumps(entry))
            return True
        except Exception as e:
            self.logger.error(f"Cache set error: {e}")
            return False

    async def invalidate(self, short_code: str) -> bool:
        """Retire any cached record for a short code.

        Bumps the code's generation before deleting the entry, so a record
        fetched earlier and written afterwards is never served.

        Args:
            short_code: The short code

        Returns:
            True if an entry was deleted
        """
        if not self.enabled or not self.client:
            return False

        try:
            await self.client.incr(self.get_generation_key(short_code))
            result = await self.client.delete(self.get_cache_key(short_code))
            return result > 0
        except Exception as e:
            self.logger.error(f"Cache delete error: {e}")
            return False

    async def ping(self) -> bool:
        """Check the Redis connection."""
        if not self.enabled or not self.client:
            return True
        try:
            await self.client.ping()
            return True
        except Exception as e:
            self.logger.error(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")

    def get_cache_key(self, short_code: str) -> str:
        """Generate cache key for short code."""
        return f"snaplinks:asset:{short_code}"

    def get_generation_key(self, short_code: str) -> str:
        # No expiry: an expired counter would read as 0 and revive old entries
        return f"snaplinks:generation:{short_code}"
