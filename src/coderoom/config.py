"""Configuration loader.

The collaboration server reads its configuration from environment variables so
that the same image can run locally, under docker-compose or on Cloud Run.
Defaults are chosen so that local development works out of the box.

Environment variables:

``CODEROOM_ALLOWED_LANGS``
    Comma-separated list of languages that may be executed.  Defaults to
    ``cpp``.  A language must also have a registered executor to be usable.

``CODEROOM_COMPILER``
    C++ compiler executable.  Defaults to ``g++``.

``CODEROOM_COMPILER_FLAGS``
    Flags passed to the compiler before ``-o``.  Defaults to
    ``-std=c++17 -Wall -Wextra -O2``.

``CODEROOM_COMPILE_TIMEOUT_SECONDS``
    Wall-clock timeout for the compile step.  Default is 10.

``CODEROOM_RUN_TIMEOUT_SECONDS``
    Wall-clock timeout for running the compiled program.  Default is 5.

``CODEROOM_MAX_STDOUT_CHARS`` / ``CODEROOM_MAX_STDERR_CHARS``
    Output ceilings.  A program exceeding either one is killed and the
    stream is truncated.  Defaults are 10000 and 5000.

``CODEROOM_WORKSPACE_PATH``
    Base directory under which one scratch directory per run is created.
    Defaults to ``coderoom`` inside the system temp directory.

``CODEROOM_RUN_POLICY``
    What to do with a run request while another one is in flight for the
    same room: ``race`` (run both), ``queue`` (run one after the other) or
    ``reject``.  Defaults to ``race``.

``CODEROOM_CORS_ORIGINS``
    Comma-separated list of allowed CORS origins.  Defaults to ``*``.

``LOG_LEVEL``
    Level of the ``coderoom`` logger.  Defaults to ``INFO``.

``PORT``
    The port on which the server listens.  Cloud Run sets this; otherwise
    defaults to 3001.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from dataclasses import dataclass, field
from typing import List

RUN_POLICIES = ("race", "queue", "reject")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _int_var(name: str, default: int, minimum: int = 1) -> int:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        parsed = int(val)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {val}")
    if parsed < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {parsed}")
    return parsed


@dataclass
class Config:
    """Centralised configuration object."""

    allowed_langs: List[str] = field(default_factory=lambda: ["cpp"])
    compiler: str = "g++"
    compiler_flags: List[str] = field(
        default_factory=lambda: ["-std=c++17", "-Wall", "-Wextra", "-O2"]
    )
    compile_timeout_seconds: int = 10
    run_timeout_seconds: int = 5
    max_stdout_chars: int = 10_000
    max_stderr_chars: int = 5_000
    workspace_path: str = field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "coderoom")
    )
    run_policy: str = "race"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 3001

    @classmethod
    def load(cls) -> "Config":
        defaults = cls()

        allowed_langs = [
            lang.lower()
            for lang in _split_list(os.getenv("CODEROOM_ALLOWED_LANGS", "cpp"))
        ]

        compiler = os.getenv("CODEROOM_COMPILER", defaults.compiler).strip()
        if not compiler:
            raise ValueError("CODEROOM_COMPILER must not be empty")
        flags_env = os.getenv("CODEROOM_COMPILER_FLAGS")
        compiler_flags = (
            shlex.split(flags_env) if flags_env is not None else defaults.compiler_flags
        )

        run_policy = os.getenv("CODEROOM_RUN_POLICY", defaults.run_policy).lower()
        if run_policy not in RUN_POLICIES:
            raise ValueError(
                f"Invalid CODEROOM_RUN_POLICY: {run_policy}. Use one of {', '.join(RUN_POLICIES)}."
            )

        cors_origins = _split_list(os.getenv("CODEROOM_CORS_ORIGINS", "*")) or ["*"]

        return cls(
            allowed_langs=allowed_langs,
            compiler=compiler,
            compiler_flags=compiler_flags,
            compile_timeout_seconds=_int_var("CODEROOM_COMPILE_TIMEOUT_SECONDS", 10),
            run_timeout_seconds=_int_var("CODEROOM_RUN_TIMEOUT_SECONDS", 5),
            max_stdout_chars=_int_var("CODEROOM_MAX_STDOUT_CHARS", 10_000),
            max_stderr_chars=_int_var("CODEROOM_MAX_STDERR_CHARS", 5_000),
            workspace_path=os.getenv("CODEROOM_WORKSPACE_PATH", defaults.workspace_path),
            run_policy=run_policy,
            cors_origins=cors_origins,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=_int_var("PORT", 3001),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """
        Alternate constructor used by the API to load configuration.

        This wrapper calls :meth:`load` to construct the configuration.
        It exists to provide a more intuitive name when consumed in
        application code.
        """
        return cls.load()
