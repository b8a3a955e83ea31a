from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from coderoom.executor import ExecutionResult, ResultKind


class FakeTransport:
    """Collects frames instead of writing them to a socket."""

    def __init__(self, fail: bool = False) -> None:
        self.frames: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)

    def events(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        return [f["data"] for f in self.frames if name is None or f["event"] == name]

    def names(self) -> List[str]:
        return [f["event"] for f in self.frames]


class FakeOrchestrator:
    """Records requests; optionally holds each one until released."""

    supported_languages = ["cpp"]

    def __init__(self, hold: bool = False) -> None:
        self.hold = hold
        self.requests = []
        self.gates: Dict[str, asyncio.Event] = {}

    def release(self, source_text: str) -> None:
        self.gates.setdefault(source_text, asyncio.Event()).set()

    async def dispatch(self, request) -> ExecutionResult:
        self.requests.append(request)
        if self.hold:
            await self.gates.setdefault(request.source_text, asyncio.Event()).wait()
        return ExecutionResult(
            success=True,
            stdout=f"ran {request.source_text}",
            stderr="",
            kind=ResultKind.EXECUTION_RESULT,
        )


@pytest.fixture
def transport_factory():
    return FakeTransport
