from pydantic import BaseModel

from streamcart.shared.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG", False)

    # When enabled, external integrations use stubs and avoid network calls.
    DEMO_MODE: bool = config.get_bool("DEMO_MODE", True)

    API_HOST: str = config.get("API_HOST", "0.0.0.0").strip()
    API_PORT: int = config.get_int("API_PORT", 8000)
    API_WORKERS: int = config.get_int("API_WORKERS", 1)
    API_CORS_ORIGINS: list[str] = [
        x.strip() for x in config.get("API_CORS_ORIGINS", "*").split(",") if x.strip()
    ]

    MONGO_LABEL: str = config.get("MONGO_LABEL", "default").strip()
    MONGO_DB_NAME: str = config.get("MONGO_DB_NAME", "streamcart").strip()

    # LiveKit configuration
    LIVEKIT_URL: str | None = (config.get("LIVEKIT_URL") or "").strip() or None
    LIVEKIT_API_KEY: str | None = (config.get("LIVEKIT_API_KEY") or "").strip() or None
    LIVEKIT_API_SECRET: str | None = (config.get("LIVEKIT_API_SECRET") or "").strip() or None
    STREAM_TOKEN_TTL_SECONDS: int = config.get_int("STREAM_TOKEN_TTL_SECONDS", 3600)

    # Live aggregation
    LIVE_BROADCAST_INTERVAL_SECONDS: float = config.get_float("LIVE_BROADCAST_INTERVAL_SECONDS", 2.0)
    LIVE_TRENDING_LIMIT: int = config.get_int("LIVE_TRENDING_LIMIT", 5)

    # "local" keeps fan-out in-process, "redis" relays through Redis pub/sub
    LIVE_FANOUT_BACKEND: str = config.get("LIVE_FANOUT_BACKEND", "local").strip().lower()
    LIVE_FANOUT_REDIS_LABEL: str = config.get("LIVE_FANOUT_REDIS_LABEL", "default").strip()
    LIVE_FANOUT_CHANNEL_PREFIX: str = config.get("LIVE_FANOUT_CHANNEL_PREFIX", "streamcart:live").strip()

    CHAT_HISTORY_PAGE_SIZE: int = config.get_int("CHAT_HISTORY_PAGE_SIZE", 50)

    # Logfire tracing of FastAPI, pymongo and pydantic
    LOGFIRE_ENABLE: bool = config.get_bool("LOGFIRE_ENABLE", False)
    LOGFIRE_TOKEN: str | None = (config.get("LOGFIRE_TOKEN") or "").strip() or None
    LOGFIRE_SERVICE_NAME: str = config.get("LOGFIRE_SERVICE_NAME", "streamcart-live").strip()


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
