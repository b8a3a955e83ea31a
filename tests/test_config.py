from __future__ import annotations

import pytest

from coderoom.config import Config

ENV_VARS = [
    "CODEROOM_ALLOWED_LANGS",
    "CODEROOM_COMPILER",
    "CODEROOM_COMPILER_FLAGS",
    "CODEROOM_COMPILE_TIMEOUT_SECONDS",
    "CODEROOM_RUN_TIMEOUT_SECONDS",
    "CODEROOM_MAX_STDOUT_CHARS",
    "CODEROOM_MAX_STDERR_CHARS",
    "CODEROOM_WORKSPACE_PATH",
    "CODEROOM_RUN_POLICY",
    "CODEROOM_CORS_ORIGINS",
    "LOG_LEVEL",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Config.from_env()
    assert config.allowed_langs == ["cpp"]
    assert config.compiler == "g++"
    assert config.compiler_flags == ["-std=c++17", "-Wall", "-Wextra", "-O2"]
    assert config.compile_timeout_seconds == 10
    assert config.run_timeout_seconds == 5
    assert config.max_stdout_chars == 10_000
    assert config.max_stderr_chars == 5_000
    assert config.run_policy == "race"
    assert config.cors_origins == ["*"]
    assert config.port == 3001


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CODEROOM_ALLOWED_LANGS", " CPP , python,")
    monkeypatch.setenv("CODEROOM_COMPILER", "clang++")
    monkeypatch.setenv("CODEROOM_COMPILER_FLAGS", "-std=c++20 -O0")
    monkeypatch.setenv("CODEROOM_RUN_TIMEOUT_SECONDS", "2")
    monkeypatch.setenv("CODEROOM_WORKSPACE_PATH", str(tmp_path))
    monkeypatch.setenv("CODEROOM_RUN_POLICY", "Queue")
    monkeypatch.setenv("CODEROOM_CORS_ORIGINS", "http://a.test,http://b.test")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = Config.load()
    assert config.allowed_langs == ["cpp", "python"]
    assert config.compiler == "clang++"
    assert config.compiler_flags == ["-std=c++20", "-O0"]
    assert config.run_timeout_seconds == 2
    assert config.workspace_path == str(tmp_path)
    assert config.run_policy == "queue"
    assert config.cors_origins == ["http://a.test", "http://b.test"]
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name,value",
    [
        ("CODEROOM_RUN_TIMEOUT_SECONDS", "soon"),
        ("CODEROOM_MAX_STDOUT_CHARS", "0"),
        ("CODEROOM_RUN_POLICY", "lottery"),
        ("CODEROOM_COMPILER", "  "),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        Config.load()
