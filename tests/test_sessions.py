"""Tests for the participant registry and the broadcast router."""

from __future__ import annotations

import asyncio

from coderoom.broadcast import BroadcastRouter
from coderoom.sessions import Participant, SessionRegistry


def _ids(members):
    return {(m.connection_id, m.display_name) for m in members}


def test_members_reflect_latest_join():
    registry = SessionRegistry()
    registry.join("a", "room-1", "alice")
    registry.join("b", "room-1", "bob")
    registry.join("c", "room-2", "carol")
    # Re-joining overwrites the earlier mapping.
    registry.join("b", "room-1", "bobby")

    assert _ids(registry.members("room-1")) == {("a", "alice"), ("b", "bobby")}
    assert _ids(registry.members("room-2")) == {("c", "carol")}
    assert len(registry) == 3


def test_join_moves_connection_between_rooms():
    registry = SessionRegistry()
    registry.join("a", "room-1", "alice")
    registry.join("a", "room-2", "alice")

    assert registry.members("room-1") == []
    assert registry.get("a") == Participant("a", "alice", "room-2")


def test_remove_and_empty_room_disappears():
    registry = SessionRegistry()
    registry.join("a", "room-1", "alice")

    removed = registry.remove("a")
    assert removed == Participant("a", "alice", "room-1")
    assert "a" not in registry
    assert registry.rooms() == []
    assert registry.remove("a") is None


def test_router_targets(transport_factory):
    async def scenario():
        registry = SessionRegistry()
        router = BroadcastRouter(registry)
        transports = {cid: transport_factory() for cid in ("a", "b", "c")}
        for cid, transport in transports.items():
            router.attach(cid, transport)
        registry.join("a", "r", "alice")
        registry.join("b", "r", "bob")
        registry.join("c", "other", "carol")

        await router.to_connection("c", "ping", {"n": 1})
        await router.to_room_except_sender("r", "a", "edit", {"n": 2})
        await router.to_room("r", "out", {"n": 3})
        return transports

    transports = asyncio.run(scenario())
    assert transports["a"].frames == [{"event": "out", "data": {"n": 3}}]
    assert transports["b"].frames == [
        {"event": "edit", "data": {"n": 2}},
        {"event": "out", "data": {"n": 3}},
    ]
    assert transports["c"].frames == [{"event": "ping", "data": {"n": 1}}]


def test_router_ignores_gone_recipients(transport_factory):
    async def scenario():
        registry = SessionRegistry()
        router = BroadcastRouter(registry)
        healthy = transport_factory()
        broken = transport_factory(fail=True)
        router.attach("a", healthy)
        router.attach("b", broken)
        registry.join("a", "r", "alice")
        registry.join("b", "r", "bob")
        # "c" is a member that already lost its transport.
        registry.join("c", "r", "carol")

        await router.to_room("r", "out", {})
        await router.to_connection("nobody", "out", {})
        return healthy

    healthy = asyncio.run(scenario())
    assert healthy.names() == ["out"]
