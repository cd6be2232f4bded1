"""Per-process registry of open live sockets grouped into session rooms."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from loguru import logger

from .frames import encode_frame


class FrameSink(Protocol):
    async def send_text(self, data: str) -> None: ...


class SessionHub:
    """Fans frames out to every socket subscribed to a session room.

    A socket whose send fails is dropped from the hub; the others still
    receive the frame.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, FrameSink] = {}
        self._rooms: dict[str, set[str]] = {}
        self._room_of: dict[str, str] = {}

    def attach(self, connection_id: str, socket: FrameSink) -> None:
        self._sockets[connection_id] = socket

    def detach(self, connection_id: str) -> None:
        self.unsubscribe(connection_id)
        self._sockets.pop(connection_id, None)

    def subscribe(self, session_id: str, connection_id: str) -> None:
        current = self._room_of.get(connection_id)
        if current == session_id:
            return
        if current is not None:
            self.unsubscribe(connection_id)
        self._rooms.setdefault(session_id, set()).add(connection_id)
        self._room_of[connection_id] = session_id

    def unsubscribe(self, connection_id: str) -> None:
        session_id = self._room_of.pop(connection_id, None)
        if session_id is None:
            return
        members = self._rooms.get(session_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                self._rooms.pop(session_id, None)

    def room_size(self, session_id: str) -> int:
        return len(self._rooms.get(session_id, ()))

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._sockets

    async def send_to(self, connection_id: str, event: str, data: Any = None) -> bool:
        socket = self._sockets.get(connection_id)
        if socket is None:
            return False
        try:
            await socket.send_text(encode_frame(event, data))
            return True
        except Exception as e:
            logger.warning("Send to {} failed, dropping socket: {}", connection_id, e)
            self.detach(connection_id)
            return False

    async def deliver(self, session_id: str, message: str) -> int:
        """Send an encoded frame to the room. Returns the number of sockets reached."""
        targets = [
            (connection_id, self._sockets[connection_id])
            for connection_id in self._rooms.get(session_id, ())
            if connection_id in self._sockets
        ]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(socket.send_text(message) for _, socket in targets),
            return_exceptions=True,
        )
        delivered = 0
        for (connection_id, _), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("Broadcast to {} failed, dropping socket: {}", connection_id, result)
                self.detach(connection_id)
            else:
                delivered += 1
        return delivered
