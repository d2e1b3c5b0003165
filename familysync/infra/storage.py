"""Device-scoped key/value storage.

Two backends are provided: a JSON file on the device (the default) and
Redis, for deployments where several processes share one device profile.
Values are JSON-serializable scalars.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from familysync.core.config import Settings
from familysync.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalStore(ABC):
    """Async key/value store for small device-scoped values."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Get a value, or None if the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Set a value."""

    @abstractmethod
    async def delete(self, *keys: str) -> None:
        """Remove keys; absent keys are ignored."""

    async def close(self) -> None:
        """Release resources."""


class JsonFileStore(LocalStore):
    """Store backed by a single JSON file.

    The whole file is rewritten on every change through a temporary file
    and an atomic rename.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        try:
            data = json.loads(text)
        except ValueError as e:
            self._quarantine(e)
            return {}
        if not isinstance(data, dict):
            self._quarantine(TypeError(f"expected an object, got {type(data).__name__}"))
            return {}
        return data

    def _quarantine(self, error: Exception) -> None:
        """Move a corrupt file aside so the next write does not destroy it."""
        backup = self.path.with_suffix(self.path.suffix + ".corrupt")
        logger.error(f"Corrupt preferences file {self.path} moved to {backup}: {error}")
        try:
            self.path.replace(backup)
        except OSError as e:
            raise StorageError(f"Could not move aside corrupt file {self.path}: {e}") from e

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            return self._read().get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    async def delete(self, *keys: str) -> None:
        async with self._lock:
            data = self._read()
            removed = [key for key in keys if key in data]
            for key in removed:
                del data[key]
            if removed:
                self._write(data)


class RedisStore(LocalStore):
    """Store backed by Redis, values JSON-encoded under a key prefix."""

    def __init__(self, redis: Redis, prefix: str = "familysync") -> None:
        self.redis = redis
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:prefs:{key}"

    async def get(self, key: str) -> Any | None:
        try:
            value = await self.redis.get(self._key(key))
        except RedisError as e:
            raise StorageError(f"Redis read failed: {e}") from e
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError as e:
            raise StorageError(f"Corrupt value under {self._key(key)}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.redis.set(self._key(key), json.dumps(value))
        except RedisError as e:
            raise StorageError(f"Redis write failed: {e}") from e

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.redis.delete(*(self._key(key) for key in keys))
        except RedisError as e:
            raise StorageError(f"Redis delete failed: {e}") from e

    async def close(self) -> None:
        await self.redis.aclose()


def create_local_store(config: Settings) -> LocalStore:
    """Build the store selected by ``STORAGE_BACKEND``.

    Args:
        config: Application settings

    Returns:
        A ready-to-use LocalStore
    """
    if config.STORAGE_BACKEND == "redis":
        pool = ConnectionPool.from_url(str(config.REDIS_URL), decode_responses=True)
        logger.info(f"Using Redis preferences store at {config.REDIS_HOST}:{config.REDIS_PORT}")
        return RedisStore(Redis(connection_pool=pool), prefix=config.REDIS_KEY_PREFIX)

    logger.info(f"Using file preferences store at {config.LOCAL_STORE_PATH}")
    return JsonFileStore(config.LOCAL_STORE_PATH)
