import json
import hashlib
from typing import Any, Optional

import redis.asyncio as aioredis

from tablekit import config
from tablekit.observability.metrics import CACHE_LOOKUPS

# Module-level client (lazy init)
_client: Optional[aioredis.Redis] = None


def _get_client() -> aioredis.Redis:
    global _client
    if _client is None:
        _client = aioredis.from_url(config.REDIS_URL, decode_responses=True)
    return _client


async def close_cache() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
    _client = None


class Cache:
    """JSON values in Redis under content-addressed keys."""

    def __init__(self, ttl_seconds: Optional[int] = None, client: Optional[Any] = None):
        self.ttl = ttl_seconds if ttl_seconds is not None else config.SUGGESTION_CACHE_TTL
        self._client = client

    @property
    def client(self) -> Any:
        return self._client if self._client is not None else _get_client()

    @staticmethod
    def build_key(prefix: str, payload: dict) -> str:
        raw = json.dumps(payload, sort_keys=True, default=str)
        digest = hashlib.sha256(raw.encode()).hexdigest()
        return f"{prefix}:{digest}"

    async def get_json(self, key: str) -> Optional[dict]:
        data = await self.client.get(key)
        if not data:
            CACHE_LOOKUPS.labels("miss").inc()
            return None
        CACHE_LOOKUPS.labels("hit").inc()
        return json.loads(data)

    async def set_json(self, key: str, value: dict) -> None:
        await self.client.setex(key, self.ttl, json.dumps(value, default=str))

