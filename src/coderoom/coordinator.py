"""Room coordination: the event layer between sockets and the services.

The coordinator owns the session registry, the broadcast router, the
document relay and the execution orchestrator.  It is built once at
application startup and torn down at shutdown.

Membership and document events are handled one at a time: each is
processed to completion, including every send it causes, before the next
one starts.  Run requests are different.  They are validated like any
other event, then executed in a background task so that compiling and
running a program never holds up the rest of the room.  Only the final
``code-output`` broadcast goes back through the event lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from pydantic import ValidationError

from . import events
from .broadcast import BroadcastRouter, Transport
from .config import Config
from .documents import DocumentRelay, LastWriteWinsRelay
from .executor import ExecutionResult
from .models import (
    INBOUND_PAYLOADS,
    ClientInfo,
    CodeChangePayload,
    CodeOutputPayload,
    DisconnectedPayload,
    ErrorPayload,
    Frame,
    JoinedPayload,
    JoinPayload,
    LeavePayload,
    RunCodePayload,
    SyncCodePayload,
)
from .orchestrator import ExecutionOrchestrator, ExecutionRequest
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'frame'}: {err['msg']}" for err in exc.errors()
    )


class RoomCoordinator:
    def __init__(
        self,
        orchestrator: ExecutionOrchestrator,
        registry: Optional[SessionRegistry] = None,
        router: Optional[BroadcastRouter] = None,
        relay: Optional[DocumentRelay] = None,
        run_policy: str = "race",
    ) -> None:
        self.orchestrator = orchestrator
        self.registry = registry if registry is not None else SessionRegistry()
        self.router = router if router is not None else BroadcastRouter(self.registry)
        self.relay = relay if relay is not None else LastWriteWinsRelay(self.registry, self.router)
        self.run_policy = run_policy

        self._events = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        # Per-room state for the "queue" and "reject" run policies.
        self._room_locks: Dict[str, asyncio.Lock] = {}
        self._room_pending: Dict[str, int] = {}

        self._handlers = {
            events.JOIN: self.on_join,
            events.LEAVE: self.on_leave,
            events.CODE_CHANGE: self.on_code_change,
            events.SYNC_CODE: self.on_sync_code,
        }

    @classmethod
    def from_config(cls, config: Config) -> "RoomCoordinator":
        return cls(ExecutionOrchestrator.from_config(config), run_policy=config.run_policy)

    # Connection lifecycle

    def connect(self, connection_id: str, transport: Transport) -> None:
        self.router.attach(connection_id, transport)
        logger.debug("Connection %s attached", connection_id)

    async def disconnect(self, connection_id: str) -> None:
        async with self._events:
            self.router.detach(connection_id)
            await self._leave(connection_id)
        logger.debug("Connection %s detached", connection_id)

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.registry.clear()
        self.router.clear()
        logger.info("Coordinator shut down (%d run(s) cancelled)", len(tasks))

    # Inbound frames

    async def handle_frame(self, connection_id: str, raw: Any) -> None:
        """Validate one decoded frame and route it to its handler."""
        try:
            frame = Frame.model_validate(raw)
        except ValidationError as exc:
            await self.reject(connection_id, f"Malformed frame: {_describe(exc)}")
            return

        model = INBOUND_PAYLOADS.get(frame.event)
        if model is None:
            await self.reject(connection_id, f"Unknown event: {frame.event}", frame.event)
            return
        try:
            payload = model.model_validate(frame.data)
        except ValidationError as exc:
            await self.reject(connection_id, f"Invalid {frame.event} payload: {_describe(exc)}", frame.event)
            return

        if isinstance(payload, RunCodePayload):
            self.submit_run(connection_id, payload)
            return
        async with self._events:
            await self._handlers[frame.event](connection_id, payload)

    async def reject(self, connection_id: str, message: str, event: Optional[str] = None) -> None:
        """Report a refused frame or request to its sender only.

        Must not be called while holding the event lock.
        """
        logger.warning("Rejected frame from %s: %s", connection_id, message)
        payload = ErrorPayload(message=message, event=event).to_wire()
        async with self._events:
            await self.router.to_connection(connection_id, events.ERROR, payload)

    # Membership

    async def on_join(self, connection_id: str, payload: JoinPayload) -> None:
        previous = self.registry.get(connection_id)
        if previous is not None and previous.room_id != payload.room_id:
            await self._leave(connection_id)

        self.registry.join(connection_id, payload.room_id, payload.username)
        clients = [
            ClientInfo(socket_id=member.connection_id, username=member.display_name)
            for member in self.registry.members(payload.room_id)
        ]
        joined = JoinedPayload(clients=clients, username=payload.username, socket_id=connection_id).to_wire()
        logger.info(
            "%s (%s) joined room %s (%d member(s))",
            payload.username,
            connection_id,
            payload.room_id,
            len(clients),
        )
        await self.router.to_room_except_sender(payload.room_id, connection_id, events.JOINED, joined)
        await self.router.to_connection(connection_id, events.JOINED, joined)

    async def on_leave(self, connection_id: str, payload: LeavePayload) -> None:
        await self._leave(connection_id)

    async def _leave(self, connection_id: str) -> None:
        participant = self.registry.remove(connection_id)
        if participant is None:
            return
        logger.info("%s (%s) left room %s", participant.display_name, connection_id, participant.room_id)
        notice = DisconnectedPayload(socket_id=connection_id, username=participant.display_name).to_wire()
        await self.router.to_room(participant.room_id, events.DISCONNECTED, notice)

    # Documents

    async def on_code_change(self, connection_id: str, payload: CodeChangePayload) -> None:
        await self.relay.relay_edit(payload.room_id, connection_id, payload.code)

    async def on_sync_code(self, connection_id: str, payload: SyncCodePayload) -> None:
        await self.relay.hand_off(connection_id, payload.socket_id, payload.code)

    # Execution

    def submit_run(self, connection_id: str, payload: RunCodePayload) -> asyncio.Task:
        request = ExecutionRequest(room_id=payload.room_id, source_text=payload.code, language=payload.language)
        participant = self.registry.get(connection_id)
        logger.info(
            "Run request from %s in room %s: language=%s, %d chars",
            participant.display_name if participant else connection_id,
            request.room_id,
            request.language,
            len(request.source_text),
        )
        task = asyncio.create_task(self._execute(connection_id, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _execute(self, connection_id: str, request: ExecutionRequest) -> None:
        room_id = request.room_id
        if self.run_policy == "reject" and self._room_pending.get(room_id):
            await self.reject(connection_id, f"A run is already in progress in room {room_id}", events.RUN_CODE)
            return

        self._room_pending[room_id] = self._room_pending.get(room_id, 0) + 1
        try:
            if self.run_policy == "queue":
                lock = self._room_locks.setdefault(room_id, asyncio.Lock())
                async with lock:
                    result = await self.orchestrator.dispatch(request)
                    await self._publish(room_id, result)
            else:
                result = await self.orchestrator.dispatch(request)
                await self._publish(room_id, result)
        finally:
            self._room_pending[room_id] -= 1
            if not self._room_pending[room_id]:
                del self._room_pending[room_id]
                self._room_locks.pop(room_id, None)

    async def _publish(self, room_id: str, result: ExecutionResult) -> None:
        payload = CodeOutputPayload(
            output=result.stdout,
            error=result.stderr,
            success=result.success,
            type=result.kind.value,
        ).to_wire()
        async with self._events:
            await self.router.to_room(room_id, events.CODE_OUTPUT, payload)
