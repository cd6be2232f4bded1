"""
Centralized environment configuration.

Values are layered, later sources overriding earlier ones:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, developer-local, never committed)
3) System environment variables
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger


class EnvironConfig:
    """
    Singleton configuration that merges env files and the process environment,
    providing dictionary-like access with default values.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        root = Path(__file__).parent.parent.parent

        example_path = root / "env.example"
        if example_path.exists():
            self._config.update(dotenv_values(example_path))
            logger.info("Loaded environment variables from {}", example_path)

        local_path = root / "env.local"
        if local_path.exists():
            self._config.update(dotenv_values(local_path))
            logger.info("Loaded and overrode environment variables from {}", local_path)

        self._config.update(os.environ)

    def __getitem__(self, key):
        if key not in self._config:
            raise KeyError(f"Configuration key '{key}' not found")

        return self._config[key]

    def get(self, key, default=None):
        value = self._config.get(key)
        return default if value is None else value

    def reload(self):
        """Reload configuration from files and environment."""
        self._config.clear()
        self._load_config()
        logger.info("Configuration reloaded")

    def __contains__(self, key):
        return key in self._config

    def __iter__(self):
        return iter(self._config)

    def keys(self):
        return self._config.keys()

    def items(self):
        return self._config.items()

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return str(value).strip().lower() in {"true", "1", "yes", "on"}

    def get_int(self, key: str, default: int) -> int:
        raw = (self.get(key) or "").strip()
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Invalid integer for {}: '{}', defaulting to {}", key, raw, default)
            return default

    def get_float(self, key: str, default: float) -> float:
        raw = (self.get(key) or "").strip()
        if not raw:
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning("Invalid number for {}: '{}', defaulting to {}", key, raw, default)
            return default

    def get_redis_url(self, label: str = "default") -> str:
        """
        Get Redis connection URL for a specific label.

        `default` resolves REDIS_URL_DEFAULT, then REDIS_URL, then localhost;
        any other label resolves REDIS_URL_<LABEL> or an empty string.
        """
        if label == "default":
            return self.get("REDIS_URL_DEFAULT") or self.get("REDIS_URL") or "redis://localhost:6379"

        return self.get(f"REDIS_URL_{label.upper()}", "")

    def get_mongo_url(self, label: str = "default") -> str:
        """
        Get MongoDB connection URL for a specific label.

        `default` resolves MONGO_URL_DEFAULT, then MONGO_URL, then localhost;
        any other label resolves MONGO_URL_<LABEL> or an empty string.
        """
        if label == "default":
            return self.get("MONGO_URL_DEFAULT") or self.get("MONGO_URL") or "mongodb://localhost:27017"

        return self.get(f"MONGO_URL_{label.upper()}", "")

    def get_mongo_max_pool_size(self) -> int:
        size = self.get_int("MONGO_MAX_POOL_SIZE", 5)
        if 1 <= size <= 100:
            return size

        logger.warning("MONGO_MAX_POOL_SIZE value {} is out of range (1-100), defaulting to 5", size)
        return 5

    def get_mongo_server_selection_timeout(self) -> int:
        timeout = self.get_int("MONGO_SERVER_SELECTION_TIMEOUT", 30000)
        if timeout > 0:
            return timeout

        logger.warning("MONGO_SERVER_SELECTION_TIMEOUT value {} must be positive, defaulting to 30000", timeout)
        return 30000


config = EnvironConfig()
