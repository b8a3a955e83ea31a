"""In-memory registry of room participants.

A room has no record of its own: its membership is whatever participants
currently point at it, and an empty room simply stops showing up.  Each
connection is in at most one room at a time.

The registry does no locking.  All mutations are plain dict operations
performed from the coordinator, which handles one event at a time on the
event loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Participant:
    connection_id: str
    display_name: str
    room_id: str


class SessionRegistry:
    def __init__(self) -> None:
        self._participants: Dict[str, Participant] = {}

    def join(self, connection_id: str, room_id: str, display_name: str) -> Participant:
        """Record membership, replacing any earlier entry for the connection."""
        participant = Participant(connection_id, display_name, room_id)
        self._participants[connection_id] = participant
        return participant

    def members(self, room_id: str) -> List[Participant]:
        return [p for p in self._participants.values() if p.room_id == room_id]

    def remove(self, connection_id: str) -> Optional[Participant]:
        return self._participants.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[Participant]:
        return self._participants.get(connection_id)

    def rooms(self) -> List[str]:
        return sorted({p.room_id for p in self._participants.values()})

    def clear(self) -> None:
        self._participants.clear()

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)
