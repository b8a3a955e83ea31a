"""Websocket event names.

Every frame on the socket is ``{"event": <name>, "data": {...}}``.
"""

# Client -> server
JOIN = "join"
LEAVE = "leave"
SYNC_CODE = "sync-code"
RUN_CODE = "run-code"

# Both directions
CODE_CHANGE = "code-change"

# Server -> client
JOINED = "joined"
DISCONNECTED = "disconnected"
CODE_OUTPUT = "code-output"
ERROR = "error"
