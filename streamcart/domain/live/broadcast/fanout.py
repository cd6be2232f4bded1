"""Publishing of session-wide events.

`LocalFanout` hands frames straight to this process's hub. `RedisFanout`
publishes them on a Redis channel per session and relays every message
received on those channels into the local hub, so all API workers
reach their own sockets.
"""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger
from redis.asyncio import Redis

from .frames import encode_frame
from .hub import SessionHub


class LocalFanout:
    def __init__(self, hub: SessionHub) -> None:
        self.hub = hub

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def publish(self, session_id: str, event: str, data: Any = None) -> None:
        await self.hub.deliver(session_id, encode_frame(event, data))


class RedisFanout:
    def __init__(self, redis_client: Redis, hub: SessionHub, channel_prefix: str = "streamcart:live") -> None:
        self.redis_client = redis_client
        self.hub = hub
        self.channel_prefix = channel_prefix
        self._listener: asyncio.Task | None = None
        self._ready = asyncio.Event()

    def channel_for(self, session_id: str) -> str:
        return f"{self.channel_prefix}:{session_id}"

    def session_of(self, channel: str | bytes) -> str | None:
        if isinstance(channel, bytes):
            channel = channel.decode()
        prefix = f"{self.channel_prefix}:"
        if not channel.startswith(prefix):
            return None
        return channel[len(prefix):]

    async def start(self) -> None:
        if self._listener is not None and not self._listener.done():
            return
        self._ready.clear()
        self._listener = asyncio.create_task(self._listen(), name="live-fanout-listener")
        ready = asyncio.create_task(self._ready.wait())
        await asyncio.wait({self._listener, ready}, return_when=asyncio.FIRST_COMPLETED)
        ready.cancel()
        if self._listener.done():
            # the listener exited before subscribing
            task, self._listener = self._listener, None
            error = task.exception()
            logger.error("Redis fan-out failed to subscribe to {}:*: {}", self.channel_prefix, error)
            if error is not None:
                raise error
            return
        logger.info("Redis fan-out listening on {}:*", self.channel_prefix)

    async def stop(self) -> None:
        task, self._listener = self._listener, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Redis fan-out stopped")

    async def publish(self, session_id: str, event: str, data: Any = None) -> None:
        await self.redis_client.publish(self.channel_for(session_id), encode_frame(event, data))

    async def _listen(self) -> None:
        pubsub = self.redis_client.pubsub()
        try:
            await pubsub.psubscribe(f"{self.channel_prefix}:*")
            self._ready.set()
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    continue
                session_id = self.session_of(message["channel"])
                if session_id is None:
                    continue
                payload = message["data"]
                if isinstance(payload, bytes):
                    payload = payload.decode()
                try:
                    await self.hub.deliver(session_id, payload)
                except Exception as e:
                    logger.error("Relaying frame to session {} failed: {}", session_id, e)
        finally:
            await pubsub.aclose()


Fanout = LocalFanout | RedisFanout
