"""
PaperDesk Profile Storage

Key-value persistence for user records. Values are JSON-serializable
dictionaries; backends raise StorageError instead of returning sentinels so
callers can tell a failed write from a successful one.
"""

import copy
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis
from redis.exceptions import RedisError

from config.settings import ProfileStoreBackend, get_settings
from core.errors import StorageError
from utils.logger import storage_logger as logger


class ProfileStore(ABC):
    """get/set/delete over string keys."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryProfileStore(ProfileStore):
    """Process-local store; values are deep-copied in and out."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        try:
            # Reject anything a real backend could not serialize
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}") from e
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class RedisProfileStore(ProfileStore):
    """
    Redis-backed store with prefixed keys.

    Args:
        client: Existing redis client; built from settings.redis_url if omitted
        prefix: Key namespace
    """

    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        settings = get_settings()
        self.prefix = prefix or settings.redis_key_prefix
        self._client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._client.get(self._key(key))
        except RedisError as e:
            logger.error(f"Redis GET failed for key {key}: {e}")
            raise StorageError(f"Failed to read {key}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise StorageError(f"Corrupt record at {key}: {e}") from e

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}") from e
        try:
            self._client.set(self._key(key), payload)
        except RedisError as e:
            logger.error(f"Redis SET failed for key {key}: {e}")
            raise StorageError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except RedisError as e:
            logger.error(f"Redis DELETE failed for key {key}: {e}")
            raise StorageError(f"Failed to delete {key}: {e}") from e


def create_profile_store() -> ProfileStore:
    """Build the store selected by ``profile_store_backend``."""
    settings = get_settings()
    if settings.profile_store_backend == ProfileStoreBackend.REDIS:
        logger.info(f"Using Redis profile store at {settings.redis_url}")
        return RedisProfileStore()
    logger.info("Using in-memory profile store")
    return MemoryProfileStore()
