"""
Lookup Cache Gateway

Memoizes resolved business emails in Redis:
- Deterministic key built from the four identity fields
- 30 day expiry on every write
- Failures are logged and treated as a miss, never raised
"""
import logging
from typing import Optional

import redis.asyncio as aioredis

from app.core.config import settings

logger = logging.getLogger(__name__)


def compute_cache_key(record) -> str:
    """firstName_lastName_companyName_linkedin, lower-cased."""
    parts = [
        record.first_name or "",
        record.last_name or "",
        record.company_name or "",
        record.linkedin or "",
    ]
    return "_".join(part.lower() for part in parts)


def get_redis_client() -> aioredis.Redis:
    """Get async Redis client."""
    return aioredis.from_url(settings.REDIS_URL, decode_responses=True)


class CacheGateway:
    """Best-effort get/put against the key-value store."""

    def __init__(
        self,
        client: Optional[aioredis.Redis] = None,
        ttl_seconds: Optional[int] = None,
        prefix: Optional[str] = None,
    ):
        self.redis = client if client is not None else get_redis_client()
        self.ttl_seconds = ttl_seconds or settings.CACHE_TTL_SECONDS
        self.prefix = settings.CACHE_KEY_PREFIX if prefix is None else prefix

    def _redis_key(self, cache_key: str) -> str:
        return f"{self.prefix}{cache_key}"

    async def get(self, cache_key: str) -> Optional[str]:
        try:
            value = await self.redis.get(self._redis_key(cache_key))
        except Exception as e:
            logger.error(f"Error reading lookup cache for {cache_key}: {e}")
            return None

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        if value:
            logger.info(f"Cache hit for: {cache_key}")
            return value
        return None

    async def put(self, cache_key: str, email: str, ttl_seconds: Optional[int] = None) -> None:
        if not email:
            return  # negative results are never cached
        try:
            await self.redis.set(
                self._redis_key(cache_key),
                email,
                ex=ttl_seconds or self.ttl_seconds,
            )
            logger.info(f"Stored in cache: {cache_key}")
        except Exception as e:
            logger.error(f"Error storing lookup cache for {cache_key}: {e}")

    async def close(self):
        await self.redis.aclose()
