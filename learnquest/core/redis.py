# ============================================================================
# Redis Connection
# ============================================================================
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

class RedisCache:
    """Redis caching utility. Read-through cache only: every error is logged
    and treated as a miss so the database stays the source of truth."""

    def __init__(self, client: redis.Redis, prefix: str = "learnquest"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True
        )
        return cls(client)

    def key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *[str(p) for p in parts]])

    async def ping(self) -> bool:
        return await self.client.ping()

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            data = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        return json.loads(data) if data else None

    async def set_json(self, key: str, value: Any, ttl: int = 3600) -> None:
        try:
            await self.client.setex(key, ttl, json.dumps(value, default=str))
        except RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"Cache delete failed for {keys}: {e}")

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching a glob pattern, returns how many were removed"""
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern, count=100)]
            if keys:
                await self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"Cache pattern delete failed for {pattern}: {e}")
            return 0
        return len(keys)

    async def close(self) -> None:
        await self.client.aclose()
