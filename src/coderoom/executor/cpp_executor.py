"""
Executor for C++ programs.

The C++ executor writes the submitted translation unit to ``main.cpp``
in the workspace, compiles it with the configured compiler under its
own deadline, and runs the resulting binary with an empty environment.
Compilation runs with the server's environment because the toolchain
needs ``PATH`` and friends; the user program never sees it.
"""

from __future__ import annotations

from typing import List, Optional

from ..workspace import Workspace, WorkspaceManager
from .base import (
    NO_OUTPUT_PLACEHOLDER,
    CodeExecutor,
    ExecutionResult,
    LaunchError,
    ProcessOutput,
    ResultKind,
    append_notice,
)

# Compiler diagnostics are not user-program output and get a generous ceiling.
COMPILER_OUTPUT_LIMIT = 1024 * 1024

DEFAULT_COMPILER_FLAGS = ["-std=c++17", "-Wall", "-Wextra", "-O2"]


class CppExecutor(CodeExecutor):
    """Compile and run C++ source in an isolated directory."""

    language = "cpp"
    source_name = "main.cpp"
    artifact_name = "main"

    def __init__(
        self,
        workspaces: WorkspaceManager,
        compiler: str = "g++",
        compiler_flags: Optional[List[str]] = None,
        compile_timeout: int = 10,
        timeout: int = 5,
        max_stdout_chars: int = 10_000,
        max_stderr_chars: int = 5_000,
    ) -> None:
        super().__init__(workspaces, timeout, max_stdout_chars, max_stderr_chars)
        self.compiler = compiler
        self.compiler_flags = list(DEFAULT_COMPILER_FLAGS if compiler_flags is None else compiler_flags)
        self.compile_timeout = compile_timeout

    async def execute(self, workspace: Workspace, code: str) -> ExecutionResult:
        workspace.source_path.write_text(code, encoding="utf-8")

        cmd = [
            self.compiler,
            *self.compiler_flags,
            "-o",
            str(workspace.artifact_path),
            str(workspace.source_path),
        ]
        try:
            build = await self._run_subprocess(
                cmd,
                workspace.root_dir,
                timeout=self.compile_timeout,
                max_stdout_chars=COMPILER_OUTPUT_LIMIT,
                max_stderr_chars=COMPILER_OUTPUT_LIMIT,
            )
        except LaunchError as exc:
            return ExecutionResult.failure(ResultKind.SERVER_ERROR, str(exc))

        if build.timed_out or build.exit_code != 0:
            return self._compile_failure(build)

        try:
            run = await self._run_subprocess(
                [str(workspace.artifact_path)],
                workspace.root_dir,
                timeout=self.timeout,
                env={},
            )
        except LaunchError as exc:
            return ExecutionResult.failure(ResultKind.SERVER_ERROR, str(exc))
        return self._run_outcome(run)

    def _compile_failure(self, build: ProcessOutput) -> ExecutionResult:
        diagnostics = build.stderr or build.stdout
        if build.timed_out:
            diagnostics = append_notice(
                diagnostics, f"Compilation timed out after {self.compile_timeout} seconds."
            )
        elif not diagnostics:
            diagnostics = f"Compiler exited with code {build.exit_code}."
        return ExecutionResult(
            success=False,
            stdout="",
            stderr=diagnostics,
            kind=ResultKind.COMPILATION_ERROR,
            exit_code=build.exit_code,
            duration_ms=build.duration_ms,
        )

    def _run_outcome(self, run: ProcessOutput) -> ExecutionResult:
        stdout = run.stdout or NO_OUTPUT_PLACEHOLDER
        stderr = run.stderr
        if run.timed_out:
            kind = ResultKind.RUNTIME_ERROR
            stderr = append_notice(stderr, f"Execution timed out after {self.timeout} seconds.")
        elif run.truncated or run.exit_code == 0:
            # Hitting an output ceiling is a resource guard, not a program failure.
            kind = ResultKind.EXECUTION_RESULT
        elif run.exit_code is not None and run.exit_code < 0:
            kind = ResultKind.RUNTIME_ERROR
            stderr = append_notice(stderr, f"Process terminated by signal {-run.exit_code}.")
        else:
            kind = ResultKind.RUNTIME_ERROR
            stderr = append_notice(stderr, f"Process exited with code {run.exit_code}.")
        return ExecutionResult(
            success=kind is ResultKind.EXECUTION_RESULT,
            stdout=stdout,
            stderr=stderr,
            kind=kind,
            exit_code=run.exit_code,
            duration_ms=run.duration_ms,
        )
