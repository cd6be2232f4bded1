"""LiveKit helper service.

Thin wrapper around the `livekit-api` package that issues time-limited
room credentials for live sessions.

Usage:
    from streamcart.services.integrations.livekit_service import livekit_service

    token = livekit_service.create_access_token(
        identity="user-123",
        room="live_se_01h...",
        can_publish=False,
    )
"""

from __future__ import annotations

from datetime import timedelta

from livekit import api
from loguru import logger

from streamcart.app_config import AppEnvironConfig, get_app_environ_config
from streamcart.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class LivekitService:
    """Service wrapper for LiveKit token issuance."""

    def __init__(self, cfg: AppEnvironConfig | None = None) -> None:
        self._cfg = cfg or get_app_environ_config()
        self._demo_mode = bool(getattr(self._cfg, "DEMO_MODE", True))
        logger.info("LivekitService initialized (demo_mode={})", self._demo_mode)

    @property
    def url(self) -> str | None:
        return self._cfg.LIVEKIT_URL

    @property
    def default_ttl(self) -> int:
        return self._cfg.STREAM_TOKEN_TTL_SECONDS

    def create_access_token(
        self,
        identity: str,
        room: str,
        name: str | None = None,
        can_publish: bool = False,
        can_subscribe: bool = True,
        can_publish_data: bool = True,
        ttl_seconds: int | None = None,
    ) -> str:
        """Create and return a LiveKit JWT access token.

        Args:
            identity: Unique identity for the participant
            room: Room name to grant access to
            name: Display name for the participant (optional)
            can_publish: Grant permission to publish tracks (default: False)
            can_subscribe: Grant permission to subscribe to tracks (default: True)
            can_publish_data: Grant permission to publish data (default: True)
            ttl_seconds: Token lifetime, defaults to STREAM_TOKEN_TTL_SECONDS

        Returns:
            JWT token string

        Raises:
            AppError: If LIVEKIT_API_KEY or LIVEKIT_API_SECRET is not configured
        """
        ttl = ttl_seconds or self.default_ttl

        if self._demo_mode:
            # Demo-safe token: deterministic placeholder (NOT a real JWT).
            return f"DEMO_RTC_TOKEN::{identity}::{room}"

        api_key = self._cfg.LIVEKIT_API_KEY
        api_secret = self._cfg.LIVEKIT_API_SECRET

        if not api_key or not api_secret:
            logger.error("LIVEKIT_API_KEY or LIVEKIT_API_SECRET not configured")
            raise AppError(
                errcode=AppErrorCode.E_STREAM_PROVIDER_NOT_CONFIGURED,
                errmesg="RTC provider credentials must be configured. Set them in env.local or environment variables.",
                status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
            )

        logger.info(f"Creating LiveKit access token for identity={identity}, room={room}, publish={can_publish}")

        token = api.AccessToken(api_key, api_secret).with_identity(identity).with_ttl(timedelta(seconds=ttl))
        if name:
            token = token.with_name(name)

        grants = api.VideoGrants(
            room_join=True,
            room=room,
            can_publish=can_publish,
            can_subscribe=can_subscribe,
            can_publish_data=can_publish_data,
        )
        return token.with_grants(grants).to_jwt()


livekit_service = LivekitService()
