"""
Valkey (Redis-compatible) client backing the settings cache.

Simple wrapper around redis-py. Connection URL from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
Callers that treat the cache as optional catch redis.RedisError themselves.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("invoicing:settings", {...}, expire_seconds=300)
        value = client.get_json("invoicing:settings")  # None if missing
    """

    def __init__(self, url: str):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        """
        Health check.

        Returns True if Valkey responds.
        Raises redis.ConnectionError if unreachable.
        """
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """Get value by key. None if the key doesn't exist."""
        return self._client.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Set key to value, with a TTL when expire_seconds is given."""
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, value)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> bool:
        """
        Delete key.

        Returns True if key existed and was deleted, False if key didn't exist.
        """
        return self._client.delete(key) > 0

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        """Set key to a JSON-serialized value."""
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        """
        Get and deserialize JSON value.

        Returns None if key doesn't exist.
        Raises ValueError if value is not valid JSON.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
