"""Collaborative code room server package.

Participants join a room over a websocket, share one program with
last-write-wins replication, and run it through a bounded compile-and-run
sandbox whose result is broadcast to the whole room.

The top-level modules include:

* ``config`` – configuration handling for environment variables.
* ``models`` / ``events`` – websocket event names and payload schemas.
* ``sessions`` – the in-memory registry of room participants.
* ``broadcast`` – delivery of events to connections and rooms.
* ``documents`` – document relay and hand-off to new joiners.
* ``workspace`` – ephemeral per-run scratch directories.
* ``executor`` – language-specific compile/run engines.
* ``orchestrator`` – dispatch of run requests to executors.
* ``coordinator`` – wiring of inbound events to all of the above.
* ``api`` – FastAPI application exposing the websocket and health checks.
"""
