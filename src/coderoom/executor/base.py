"""
Base interfaces and dataclasses for code execution backends.

All concrete executors should inherit from :class:`CodeExecutor` and
implement the :meth:`execute` method.  Executors run untrusted code
snippets and return an :class:`ExecutionResult` describing the outcome.
:meth:`CodeExecutor.run` wraps every execution in a fresh
:class:`~coderoom.workspace.Workspace` that is removed on every exit path.

Only process-level guards are applied here: wall-clock timeouts, output
ceilings, an empty environment for the user program and a private working
directory.  There is no namespace, cgroup or seccomp isolation, so the
service must itself run inside a container or VM that is acceptable to
compromise.
"""

from __future__ import annotations

import abc
import asyncio
import codecs
import logging
import os
import signal
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ..workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)

STDOUT_TRUNCATED_MARKER = "\n[Output truncated - too long]"
STDERR_TRUNCATED_MARKER = "\n[Error output truncated - too long]"
NO_OUTPUT_PLACEHOLDER = "No output"

# Upper bound on how long we keep reading pipes after the process is gone.
_DRAIN_GRACE_SECONDS = 1.0
_READ_CHUNK = 4096


class ResultKind(str, Enum):
    EXECUTION_RESULT = "execution-result"
    COMPILATION_ERROR = "compilation-error"
    RUNTIME_ERROR = "runtime-error"
    UNSUPPORTED_LANGUAGE = "unsupported-language"
    SERVER_ERROR = "server-error"


@dataclass
class ExecutionResult:
    """Result of running a code snippet.

    Attributes
    ----------
    success: bool
        Whether the pipeline produced a normal run of the program.
    stdout: str
        Standard output captured from the program.
    stderr: str
        Standard error, compiler diagnostics or an error message.
    kind: ResultKind
        Which stage produced the result and how it ended.
    exit_code: int, optional
        Exit status of the last process run, if one was started.
    duration_ms: int
        Wall-clock time of the last process run in milliseconds.
    """

    success: bool
    stdout: str
    stderr: str
    kind: ResultKind
    exit_code: Optional[int] = None
    duration_ms: int = 0

    @classmethod
    def failure(cls, kind: ResultKind, message: str) -> "ExecutionResult":
        return cls(success=False, stdout="", stderr=message, kind=kind)


@dataclass
class ProcessOutput:
    """Raw outcome of one bounded subprocess invocation."""

    stdout: str
    stderr: str
    exit_code: Optional[int]
    duration_ms: int
    timed_out: bool = False
    truncated: bool = False


class LaunchError(Exception):
    """The operating system refused to start a process."""

    def __init__(self, executable: str, cause: OSError) -> None:
        super().__init__(f"Execution failed: cannot start {executable}: {cause.strerror or cause}")
        self.executable = executable
        self.cause = cause


class _StreamCapture:
    """Incrementally decode one output stream up to ``limit`` characters."""

    def __init__(self, limit: int, marker: str) -> None:
        self.limit = limit
        self.marker = marker
        self.truncated = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._parts: List[str] = []
        self._size = 0

    def feed(self, chunk: bytes) -> bool:
        """Add ``chunk``; return True when this chunk crossed the limit."""
        if self.truncated:
            return False
        text = self._decoder.decode(chunk)
        room = self.limit - self._size
        if len(text) > room:
            self._parts.append(text[:room])
            self._size = self.limit
            self.truncated = True
            return True
        self._parts.append(text)
        self._size += len(text)
        return False

    def text(self) -> str:
        if not self.truncated:
            tail = self._decoder.decode(b"", final=True)
            room = self.limit - self._size
            if len(tail) > room:
                tail = tail[:room]
                self.truncated = True
            self._parts.append(tail)
            self._size += len(tail)
        if self.truncated:
            return "".join(self._parts) + self.marker
        return "".join(self._parts)


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        # The child leads its own session; the group outlives it while any
        # process it forked is still running.
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


async def _reap(process: asyncio.subprocess.Process) -> None:
    try:
        await asyncio.wait_for(process.wait(), _DRAIN_GRACE_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("Process %s did not exit after SIGKILL", process.pid)


def append_notice(text: str, notice: str) -> str:
    return f"{text}\n{notice}" if text else notice


class CodeExecutor(abc.ABC):
    """
    Abstract base class defining the interface for code executors.

    Subclasses set :attr:`language`, the workspace file names, and
    override :meth:`execute`.  Callers use :meth:`run`, which allocates
    the workspace and guarantees its removal.
    """

    language: str = ""
    source_name: str = "main"
    artifact_name: str = "main.out"

    def __init__(
        self,
        workspaces: WorkspaceManager,
        timeout: int = 5,
        max_stdout_chars: int = 10_000,
        max_stderr_chars: int = 5_000,
    ) -> None:
        """
        Parameters
        ----------
        workspaces: WorkspaceManager
            Allocates the scratch directory for each run.
        timeout: int, optional
            Maximum wall-clock time (in seconds) for the user program.
            If it does not finish in time it is killed and the result
            reports a timeout.
        max_stdout_chars: int, optional
            Ceiling on captured standard output.  Exceeding it kills
            the program and truncates the stream.
        max_stderr_chars: int, optional
            Same as ``max_stdout_chars`` for standard error.
        """
        self.workspaces = workspaces
        self.timeout = timeout
        self.max_stdout_chars = max_stdout_chars
        self.max_stderr_chars = max_stderr_chars

    async def run(self, code: str) -> ExecutionResult:
        with self.workspaces.open(self.source_name, self.artifact_name) as workspace:
            return await self.execute(workspace, code)

    @abc.abstractmethod
    async def execute(self, workspace: Workspace, code: str) -> ExecutionResult:
        """Write ``code`` into ``workspace`` and run it.

        Expected failures (rejected source, crashing or runaway programs,
        processes that cannot be launched) are reported through the
        returned :class:`ExecutionResult`.  Anything else is raised.
        """
        raise NotImplementedError

    async def _run_subprocess(
        self,
        args: List[str],
        cwd: Path,
        timeout: float,
        env: Optional[Dict[str, str]] = None,
        max_stdout_chars: Optional[int] = None,
        max_stderr_chars: Optional[int] = None,
    ) -> ProcessOutput:
        """
        Run ``args`` in ``cwd`` and capture its output within bounds.

        Both streams are read incrementally.  The process is killed when
        ``timeout`` elapses or when either stream exceeds its ceiling;
        the affected stream then ends with a truncation marker.  If the
        calling task is cancelled the process is killed before the
        cancellation propagates.

        Raises
        ------
        LaunchError
            If the executable cannot be started.
        """
        stdout_capture = _StreamCapture(
            max_stdout_chars if max_stdout_chars is not None else self.max_stdout_chars,
            STDOUT_TRUNCATED_MARKER,
        )
        stderr_capture = _StreamCapture(
            max_stderr_chars if max_stderr_chars is not None else self.max_stderr_chars,
            STDERR_TRUNCATED_MARKER,
        )

        start_time = time.perf_counter()
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(args[0], exc) from exc

        async def pump(reader: asyncio.StreamReader, capture: _StreamCapture) -> None:
            while True:
                chunk = await reader.read(_READ_CHUNK)
                if not chunk:
                    break
                if capture.feed(chunk):
                    logger.info("Output ceiling reached for pid %s; killing", process.pid)
                    _kill(process)

        pumps = [
            asyncio.create_task(pump(process.stdout, stdout_capture)),
            asyncio.create_task(pump(process.stderr, stderr_capture)),
        ]
        timed_out = False
        try:
            try:
                await asyncio.wait_for(process.wait(), timeout)
            except asyncio.TimeoutError:
                timed_out = process.returncode is None
            # Nothing from the program's session may outlive the run.
            _kill(process)
            await _reap(process)
            _, pending = await asyncio.wait(pumps, timeout=_DRAIN_GRACE_SECONDS)
            for task in pending:
                task.cancel()
        finally:
            _kill(process)
            if process.returncode is None:
                await _reap(process)
            for task in pumps:
                task.cancel()
            duration = int((time.perf_counter() - start_time) * 1000)

        return ProcessOutput(
            stdout=stdout_capture.text(),
            stderr=stderr_capture.text(),
            exit_code=process.returncode,
            duration_ms=duration,
            timed_out=timed_out,
            truncated=stdout_capture.truncated or stderr_capture.truncated,
        )
