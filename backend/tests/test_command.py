"""Unit tests for map_renderer.utils.command.

Tests cover:
    - Successful command execution (zero exit code)
    - Failure handling and error message propagation (nonzero exit code)
    - Missing executables and timeouts reported as CommandError

Monkeypatching is used to avoid actual subprocess execution, ensuring tests
are isolated, fast, and reliable.

See Also:
    - backend/map_renderer/utils/command.py for implementation details.
"""

import pathlib
import subprocess
from typing import Any

import pytest

from map_renderer.utils import command


def test_run_command_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """Command with zero return code should pass."""
    calls: list[list[str]] = []

    def fake_run(
        args: list[str],
        **kwargs: Any,
    ) -> subprocess.CompletedProcess[str]:
        """Mock subprocess.run to return a successful CompletedProcess."""
        calls.append(args)
        return subprocess.CompletedProcess(
            args=args,
            returncode=0,
            stdout="ok",
            stderr="",
        )

    monkeypatch.setattr(command.subprocess, "run", fake_run)
    command.run_command(["echo", "ok"])
    assert calls == [["echo", "ok"]]


def test_run_command_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """Command errors raise CommandError with message."""

    def fake_run(
        *args: Any,
        **kwargs: Any,
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(
            args=[],
            returncode=1,
            stdout="",
            stderr="fail\n",
        )

    monkeypatch.setattr(command.subprocess, "run", fake_run)
    with pytest.raises(command.CommandError, match="^fail$"):
        command.run_command(["false"])


def test_run_command_missing_executable(monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing executable is reported as CommandError."""

    def fake_run(*args: Any, **kwargs: Any) -> None:
        raise FileNotFoundError("no such file")

    monkeypatch.setattr(command.subprocess, "run", fake_run)
    with pytest.raises(command.CommandError, match="Executable not found: rsvg"):
        command.run_command(["rsvg", "in.svg"])


def test_run_command_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    """A command exceeding its timeout is reported as CommandError."""

    def fake_run(*args: Any, **kwargs: Any) -> None:
        raise subprocess.TimeoutExpired(cmd="slow", timeout=kwargs["timeout"])

    monkeypatch.setattr(command.subprocess, "run", fake_run)
    with pytest.raises(command.CommandError, match="timed out after 1.5 seconds"):
        command.run_command(["slow"], timeout=1.5)


def test_run_command_converts_paths(monkeypatch: pytest.MonkeyPatch) -> None:
    """Path arguments and the working directory are passed through."""
    seen: dict[str, Any] = {}

    def fake_run(
        args: list[str], **kwargs: Any
    ) -> subprocess.CompletedProcess[str]:
        seen["args"] = args
        seen["cwd"] = kwargs["cwd"]
        return subprocess.CompletedProcess(args=args, returncode=0)

    monkeypatch.setattr(command.subprocess, "run", fake_run)
    command.run_command(
        ["convert", pathlib.Path("/tmp/a.svg")], workdir=pathlib.Path("/tmp")
    )
    assert seen["args"] == ["convert", "/tmp/a.svg"]
    assert seen["cwd"] == pathlib.Path("/tmp")
