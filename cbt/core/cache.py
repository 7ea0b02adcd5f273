import json
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional, Dict
import time
import logging

from cbt.core.config import settings

logger = logging.getLogger(__name__)

class CacheBackend(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> bool:
        pass

    def _serialize(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def _deserialize(self, value: str) -> Any:
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

class MemoryCacheBackend(CacheBackend):
    """Process-local backend; values are kept serialized so callers never share state with the store."""

    def __init__(self):
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry["expiry"] and time.time() >= entry["expiry"]:
                del self._entries[key]
                return None
            return self._deserialize(entry["payload"])

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if ttl is None:
            ttl = settings.CACHE_TTL
        async with self._lock:
            self._entries[key] = {
                "payload": self._serialize(value),
                "expiry": time.time() + ttl if ttl > 0 else 0,
            }
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> bool:
        async with self._lock:
            self._entries.clear()
            return True

class RedisCacheBackend(CacheBackend):
    def __init__(self, redis_url: str):
        import redis.asyncio as redis
        self.redis = redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self.redis.get(key)
            return self._deserialize(value) if value else None
        except Exception as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if ttl is None:
            ttl = settings.CACHE_TTL
        try:
            serialized = self._serialize(value)
            if ttl == 0:
                await self.redis.set(key, serialized)
            else:
                await self.redis.setex(key, ttl, serialized)
            return True
        except Exception as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.redis.delete(key) > 0
        except Exception as e:
            logger.error(f"Redis DELETE error for key {key}: {e}")
            return False

    async def clear(self) -> bool:
        try:
            async for key in self.redis.scan_iter(match=f"{settings.AUTOSAVE_KEY_PREFIX}:*"):
                await self.redis.delete(key)
            return True
        except Exception as e:
            logger.error(f"Redis CLEAR error: {e}")
            return False

def create_cache_backend() -> CacheBackend:
    if settings.REDIS_URL:
        logger.info("Initializing Redis autosave backend")
        return RedisCacheBackend(settings.REDIS_URL)

    logger.info("Using in-memory autosave backend")
    return MemoryCacheBackend()

cache_backend = create_cache_backend()

class AutosaveStorage:
    """Durable per-attempt answer ledgers, keyed by exam and submission."""

    def __init__(self, backend: CacheBackend, ttl: Optional[int] = None):
        self.backend = backend
        self.ttl = settings.AUTOSAVE_TTL if ttl is None else ttl

    def key_for(self, exam_id: str, submission_id: str) -> str:
        return f"{settings.AUTOSAVE_KEY_PREFIX}:{exam_id}:{submission_id}"

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        return await self.backend.get(key)

    async def save(self, key: str, payload: Dict[str, Any]) -> bool:
        return await self.backend.set(key, payload, ttl=self.ttl)

    async def discard(self, key: str) -> bool:
        return await self.backend.delete(key)

    async def clear(self) -> bool:
        return await self.backend.clear()

autosave_storage = AutosaveStorage(cache_backend)
