"""Deliver events to connections and rooms.

Delivery is fire-and-forget and at most once.  A recipient whose socket
has gone away between enumeration and send just misses the event; that
is logged at debug level and never raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol

from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send_json(self, data: Any) -> None: ...


class BroadcastRouter:
    """Send ``{"event": ..., "data": ...}`` frames over attached transports."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry
        self._transports: Dict[str, Transport] = {}

    def attach(self, connection_id: str, transport: Transport) -> None:
        self._transports[connection_id] = transport

    def detach(self, connection_id: str) -> Optional[Transport]:
        return self._transports.pop(connection_id, None)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._transports

    def clear(self) -> None:
        self._transports.clear()

    async def to_connection(self, connection_id: str, event: str, payload: Mapping[str, Any]) -> None:
        transport = self._transports.get(connection_id)
        if transport is None:
            logger.debug("Dropping %s for unknown connection %s", event, connection_id)
            return
        try:
            await transport.send_json({"event": event, "data": dict(payload)})
        except Exception as exc:
            logger.debug("Failed to deliver %s to %s: %s", event, connection_id, exc)

    async def to_room_except_sender(
        self, room_id: str, sender_id: str, event: str, payload: Mapping[str, Any]
    ) -> None:
        for member in self.registry.members(room_id):
            if member.connection_id != sender_id:
                await self.to_connection(member.connection_id, event, payload)

    async def to_room(self, room_id: str, event: str, payload: Mapping[str, Any]) -> None:
        for member in self.registry.members(room_id):
            await self.to_connection(member.connection_id, event, payload)
