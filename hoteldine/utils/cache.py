import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def make_cache_key(prefix: str, *params: Any) -> str:
    """
    Build a colon-joined cache key. Dict params are serialized with sorted keys
    so that equal dicts always map to the same key.
    """
    parts = [prefix]
    for param in params:
        if param is None:
            parts.append("null")
        elif isinstance(param, dict):
            parts.append(json.dumps(param, sort_keys=True, separators=(",", ":")))
        else:
            parts.append(str(param))
    return ":".join(parts)


class CacheStore:
    """
    Best-effort JSON cache over Redis.

    Every method swallows Redis errors and reports a miss / failure instead,
    so callers always fall back to the database.
    """

    def __init__(self, redis_client: Optional[redis.Redis]):
        self.redis = redis_client

    @property
    def available(self) -> bool:
        return self.redis is not None

    async def get_json(self, key: str) -> Optional[Any]:
        if self.redis is None:
            return None
        try:
            if cached := await self.redis.get(key):
                return json.loads(cached)
        except Exception as e:
            logger.error(f"Cache read error for key '{key}': {e}", exc_info=True)
        return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if self.redis is None:
            return False
        try:
            await self.redis.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except Exception as e:
            logger.warning(f"Cache write error for key '{key}': {e}", exc_info=True)
            return False

    async def delete(self, key: str) -> int:
        """Delete a key, or every key matching it when it contains '*'."""
        if self.redis is None:
            return 0
        try:
            if "*" in key:
                keys = [k async for k in self.redis.scan_iter(match=key)]
                if not keys:
                    return 0
                deleted = await self.redis.delete(*keys)
                logger.info(f"Invalidated {deleted} cache keys matching '{key}'")
                return deleted
            return await self.redis.delete(key)
        except Exception as e:
            logger.error(f"Cache delete error for key '{key}': {e}")
            return 0

    async def stats(self) -> dict:
        if self.redis is None:
            return {"available": False, "message": "Redis not available"}
        try:
            return {
                "available": True,
                "dbSize": await self.redis.dbsize(),
            }
        except Exception as e:
            logger.error(f"Error getting cache stats: {e}")
            return {"available": False, "error": str(e)}
