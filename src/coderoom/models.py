"""Pydantic models for websocket frames and event payloads.

Inbound payloads are validated against the model registered for their
event name before any handler runs.  Field names follow Python
conventions; the camelCase names used on the wire are declared as
aliases, and outbound payloads are always dumped by alias.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from . import events


class Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Frame(BaseModel):
    """Envelope of every websocket message."""

    event: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


# Client -> server


class JoinPayload(Payload):
    room_id: str = Field(..., alias="roomId", min_length=1)
    username: str = Field(..., min_length=1, max_length=64)


class LeavePayload(Payload):
    pass


class CodeChangePayload(Payload):
    room_id: str = Field(..., alias="roomId", min_length=1)
    code: str


class SyncCodePayload(Payload):
    socket_id: str = Field(..., alias="socketId", min_length=1)
    # A client that has not typed anything yet has no buffer at all.
    code: Optional[str] = None


class RunCodePayload(Payload):
    room_id: str = Field(..., alias="roomId", min_length=1)
    code: str
    language: str = Field(..., min_length=1)


INBOUND_PAYLOADS: Dict[str, Type[Payload]] = {
    events.JOIN: JoinPayload,
    events.LEAVE: LeavePayload,
    events.CODE_CHANGE: CodeChangePayload,
    events.SYNC_CODE: SyncCodePayload,
    events.RUN_CODE: RunCodePayload,
}


# Server -> client


class ClientInfo(Payload):
    socket_id: str = Field(..., alias="socketId")
    username: str


class JoinedPayload(Payload):
    clients: List[ClientInfo]
    username: str
    socket_id: str = Field(..., alias="socketId")


class DisconnectedPayload(Payload):
    socket_id: str = Field(..., alias="socketId")
    username: str


class DocumentPayload(Payload):
    code: Optional[str] = None


class CodeOutputPayload(Payload):
    output: str
    error: str
    success: bool
    type: str


class ErrorPayload(Payload):
    message: str
    event: Optional[str] = None
