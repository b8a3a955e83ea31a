"""Document replication between participants.

The server never holds a copy of a room's document.  Edits are relayed as
full snapshots and each recipient keeps whichever snapshot arrived last.
There is no merge step.

New joiners are brought up to date by the clients themselves: every
member that sees a ``joined`` event answers with ``sync-code`` carrying
its own local buffer, and that buffer is handed to the joiner.  The
joiner receives its own ``joined`` as well, so it also hands its own
(usually empty) buffer to itself.  Which snapshot ends up on screen is
decided by the order they arrive in.
"""

from __future__ import annotations

import abc
import logging
from typing import Optional

from . import events
from .broadcast import BroadcastRouter
from .models import DocumentPayload
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class DocumentRelay(abc.ABC):
    """How document text moves between the members of a room."""

    @abc.abstractmethod
    async def relay_edit(self, room_id: str, sender_id: str, code: str) -> None:
        """Propagate an edit made by ``sender_id`` to the rest of the room."""

    @abc.abstractmethod
    async def hand_off(self, sender_id: str, target_id: str, code: Optional[str]) -> bool:
        """Deliver a snapshot to one connection.  Return whether it was sent."""


class LastWriteWinsRelay(DocumentRelay):
    def __init__(self, registry: SessionRegistry, router: BroadcastRouter) -> None:
        self.registry = registry
        self.router = router

    async def relay_edit(self, room_id: str, sender_id: str, code: str) -> None:
        payload = DocumentPayload(code=code).to_wire()
        await self.router.to_room_except_sender(room_id, sender_id, events.CODE_CHANGE, payload)

    async def hand_off(self, sender_id: str, target_id: str, code: Optional[str]) -> bool:
        sender = self.registry.get(sender_id)
        target = self.registry.get(target_id)
        if sender is None or target is None or sender.room_id != target.room_id:
            logger.debug("Dropping snapshot from %s to %s: not in the same room", sender_id, target_id)
            return False
        await self.router.to_connection(target_id, events.CODE_CHANGE, DocumentPayload(code=code).to_wire())
        return True
