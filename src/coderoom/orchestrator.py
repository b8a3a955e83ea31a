"""Dispatch run requests to language executors.

The orchestrator is the only place where execution faults are converted
into results: whatever goes wrong below it comes back as an
:class:`~coderoom.executor.ExecutionResult`, so the transport layer never
sees an exception from a user's program.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

from .config import Config
from .executor import CodeExecutor, CppExecutor, ExecutionResult, ResultKind
from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionRequest:
    room_id: str
    source_text: str
    language: str


class ExecutionOrchestrator:
    """Route each request to the executor registered for its language."""

    def __init__(self, executors: Iterable[CodeExecutor], allowed_langs: Iterable[str] | None = None) -> None:
        self.executors: Dict[str, CodeExecutor] = {ex.language: ex for ex in executors}
        if allowed_langs is not None:
            allowed = {lang.lower() for lang in allowed_langs}
            self.executors = {lang: ex for lang, ex in self.executors.items() if lang in allowed}

    @classmethod
    def from_config(cls, config: Config) -> "ExecutionOrchestrator":
        workspaces = WorkspaceManager(config.workspace_path)
        cpp = CppExecutor(
            workspaces,
            compiler=config.compiler,
            compiler_flags=config.compiler_flags,
            compile_timeout=config.compile_timeout_seconds,
            timeout=config.run_timeout_seconds,
            max_stdout_chars=config.max_stdout_chars,
            max_stderr_chars=config.max_stderr_chars,
        )
        return cls([cpp], allowed_langs=config.allowed_langs)

    @property
    def supported_languages(self) -> List[str]:
        return sorted(self.executors)

    async def dispatch(self, request: ExecutionRequest) -> ExecutionResult:
        language = (request.language or "").lower()
        executor = self.executors.get(language)
        if executor is None:
            logger.warning("Unsupported language %r requested for room %s", request.language, request.room_id)
            supported = ", ".join(self.supported_languages) or "none"
            return ExecutionResult.failure(
                ResultKind.UNSUPPORTED_LANGUAGE,
                f"Language '{request.language}' is not supported yet. Currently supported: {supported}",
            )

        logger.info(
            "Executing %s code for room %s (%d chars)", language, request.room_id, len(request.source_text)
        )
        try:
            result = await executor.run(request.source_text)
        except Exception as exc:
            logger.exception("Unhandled error while executing code for room %s", request.room_id)
            return ExecutionResult.failure(ResultKind.SERVER_ERROR, f"Server error: {exc}")

        logger.info(
            "Execution finished for room %s: type=%s, exit_code=%s, duration_ms=%s",
            request.room_id,
            result.kind.value,
            result.exit_code,
            result.duration_ms,
        )
        return result
