"""
FastAPI application for the collaborative editor server.

This module configures the FastAPI application, exposes the health
endpoints and the websocket that participants connect to.  All room state
lives in a :class:`~coderoom.coordinator.RoomCoordinator` that is created
when the application starts and torn down when it stops; the websocket
endpoint only translates between frames and coordinator calls.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..config import Config
from ..coordinator import RoomCoordinator


logger = logging.getLogger("coderoom")

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[coderoom] %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

logger.setLevel(logging.INFO)


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application.  ``config`` defaults to the environment."""
    config = config or Config.from_env()
    logger.setLevel(config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Loaded config: allowed_langs=%s, compiler=%s, compile_timeout=%s, run_timeout=%s, "
            "workspace_path=%s, run_policy=%s",
            config.allowed_langs,
            config.compiler,
            config.compile_timeout_seconds,
            config.run_timeout_seconds,
            config.workspace_path,
            config.run_policy,
        )
        app.state.coordinator = RoomCoordinator.from_config(config)
        try:
            yield
        finally:
            await app.state.coordinator.shutdown()

    app = FastAPI(title="Collaborative Code Room", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> Dict[str, Any]:
        return {
            "status": "ok",
            "message": "Collaborative code room server",
            "endpoints": {"health": "/health", "websocket": "/ws"},
        }

    @app.get("/health")
    async def health(request: Request) -> Dict[str, Any]:
        """Return a simple health check response."""
        coordinator: RoomCoordinator = request.app.state.coordinator
        return {
            "status": "ok",
            "connections": len(coordinator.registry),
            "rooms": len(coordinator.registry.rooms()),
            "languages": coordinator.orchestrator.supported_languages,
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        coordinator: RoomCoordinator = websocket.app.state.coordinator
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        coordinator.connect(connection_id, websocket)
        logger.info("Connection %s accepted", connection_id)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
                text = message.get("text")
                if text is None:
                    await coordinator.reject(connection_id, "Frames must be JSON objects")
                    continue
                try:
                    raw = json.loads(text)
                except json.JSONDecodeError:
                    await coordinator.reject(connection_id, "Frames must be JSON objects")
                    continue
                await coordinator.handle_frame(connection_id, raw)
        except WebSocketDisconnect:
            logger.info("Connection %s disconnected", connection_id)
        except Exception:
            logger.exception("Error on connection %s", connection_id)
        finally:
            await coordinator.disconnect(connection_id)

    return app


app = create_app()
