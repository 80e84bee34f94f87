"""Safe execution wrapper for external command-line tools.

This module provides a small interface for running helper executables
(such as an SVG to PNG rasterizer) as subprocesses. Non-zero exit codes,
missing executables and timeouts are all reported as CommandError so that
callers only need to handle a single exception type.

Example:
    Rasterize an SVG with rsvg-convert:
        >>> from map_renderer.utils.command import run_command, CommandError

        >>> try:
        ...     run_command(
        ...         ["rsvg-convert", "-o", "map.png", "map.svg"],
        ...         timeout=30.0,
        ...     )
        ... except CommandError as e:
        ...     print(f"Conversion failed: {e}")
"""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable


class CommandError(RuntimeError):
    """Exception raised when a subprocess command fails.

    The message holds the stderr output of the failed command, or a
    description of why the command could not be run at all (executable
    not found, timeout expired).

    Example:
        Handle command failures:
            >>> try:
            ...     run_command(["rsvg-convert", "missing.svg"])
            ... except CommandError as e:
            ...     print(f"Command failed: {e}")
    """


def run_command(
    command: Iterable[str | pathlib.Path],
    workdir: pathlib.Path | None = None,
    timeout: float | None = None,
) -> None:
    """Execute a command and raise on failure.

    Captures both stdout and stderr, and raises CommandError if the command
    cannot be started, does not finish within ``timeout`` seconds, or exits
    with a non-zero status code.

    Args:
        command: Iterable arguments to execute (e.g., ["rsvg-convert", ...]).
        workdir: Optional working directory for the command execution.
        timeout: Optional limit in seconds; None waits indefinitely.

    Raises:
        CommandError: if the command fails for any reason. The exception
            message contains the stderr output from the command when there
            is one.

    Example:
        Run with a working directory and timeout:
            >>> run_command(
            ...     ["rsvg-convert", "-o", "out.png", "in.svg"],
            ...     workdir=pathlib.Path("/tmp"),
            ...     timeout=10.0,
            ... )
    """
    args = [str(part) for part in command]
    try:
        result = subprocess.run(
            args,
            cwd=workdir,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(f"Executable not found: {args[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(
            f"Command timed out after {timeout} seconds: {args[0]}"
        ) from exc
    if result.returncode != 0:
        raise CommandError(result.stderr.strip() or "Unknown command failure")
