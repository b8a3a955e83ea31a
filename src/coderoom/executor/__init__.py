"""
Execution backends for submitted code.

This package exposes concrete executors for supported languages.  The
orchestrator selects an executor by the language tag of a run request.
Each executor writes the code into a fresh workspace, invokes the
toolchain and the program under time and output limits, and returns the
captured result.  Additional languages can be added by implementing the
``CodeExecutor`` interface from ``base.py`` and registering the executor
with the orchestrator.
"""

from .base import CodeExecutor, ExecutionResult, LaunchError, ResultKind
from .cpp_executor import CppExecutor

__all__ = [
    "CodeExecutor",
    "CppExecutor",
    "ExecutionResult",
    "LaunchError",
    "ResultKind",
]
