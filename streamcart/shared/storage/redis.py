"""
Redis client manager for the live fan-out relay.
"""

import threading
from typing import Dict

from loguru import logger
from redis.asyncio import Redis

from ..config import config
from .mongo import hide_password


class RedisManager:
    """
    Labelled `redis.asyncio` client manager.

    Connection strings come from `REDIS_URL_<LABEL>` keys; the `default`
    label falls back to REDIS_URL_DEFAULT, REDIS_URL, then localhost.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized"):
            return

        self._clients: Dict[str, Redis] = {}
        self._connection_strings: Dict[str, str] = {}
        self._lock = threading.Lock()

        for key, value in config.items():
            if key.startswith("REDIS_URL_") and value:
                self._connection_strings[key[len("REDIS_URL_"):].lower()] = value

        if "default" not in self._connection_strings:
            self._connection_strings["default"] = config.get_redis_url("default")

        logger.info("Loaded {} Redis connection strings: {}", len(self._connection_strings), list(self._connection_strings))

        self._initialized = True

    def get_client(self, label: str | None = None) -> Redis:
        if label is None:
            label = "default"

        with self._lock:
            if label not in self._clients:
                if label not in self._connection_strings:
                    raise ValueError(f"No Redis connection string found for label '{label}'")

                url = self._connection_strings[label]
                logger.info("Open Redis client for label '{}': {}", label, hide_password(url))
                self._clients[label] = Redis.from_url(url)

            return self._clients[label]

    async def close_all(self):
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()

        for label, client in clients:
            try:
                await client.aclose()
                logger.info("Closed Redis client for label '{}'", label)
            except Exception as e:
                logger.error("Error closing Redis client for label '{}': {}", label, e)


def get_redis_manager() -> RedisManager:
    return RedisManager()


def get_redis_client(label: str | None = None) -> Redis:
    return get_redis_manager().get_client(label)
