"""External process execution for build engines.

This module handles:
- Late interpolation of environment references in command arguments
- Executing a command with stdout/stderr streamed to the log and captured
- Returning the exit code without raising on failure

Classifying a non-zero exit is left to the caller.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

from container_build.errors import BuildExecutionError
from container_build.types import BuildCommand, ExecResult

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND_EXIT_CODE = 127

_ENV_REFERENCE = re.compile(r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")


def interpolate(value: str, env: Mapping[str, str] | None = None) -> str:
    """Expand $NAME and ${NAME} references in a single argument.

    References to unset variables are left untouched.

    Args:
        value: Argument to expand.
        env: Variables to expand from; defaults to os.environ.

    Returns:
        The expanded argument.
    """
    variables = os.environ if env is None else env

    def _replace(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        return variables.get(name, match.group(0))

    return _ENV_REFERENCE.sub(_replace, value)


def _pump(stream: IO[str], sink: list[str], level: int) -> None:
    for line in iter(stream.readline, ""):
        sink.append(line)
        logger.log(level, "%s", line.rstrip("\n"))
    stream.close()


def get_exec_output(
    command: str,
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> ExecResult:
    """Run a command, streaming and capturing its output.

    Args:
        command: Binary to execute.
        args: Arguments, already interpolated.
        cwd: Working directory.
        env: Full environment for the child (inherits os.environ if not set).
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        ExecResult with the exit code and captured output. A missing binary
        yields exit code 127 and a "command not found" stderr.

    Raises:
        BuildExecutionError: If the command times out or cannot be started.
    """
    argv = [command, *args]
    logger.debug("Executing: %s", " ".join(argv))

    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError:
        logger.error("Command not found: %s", command)
        return ExecResult(
            exit_code=COMMAND_NOT_FOUND_EXIT_CODE,
            stdout="",
            stderr=f"command not found: {command}\n",
        )
    except OSError as e:
        raise BuildExecutionError(
            f"Failed to execute {command}: {e}",
            code="execution_error",
        ) from e

    stdout: list[str] = []
    stderr: list[str] = []
    if proc.stdout is None or proc.stderr is None:
        proc.kill()
        proc.wait()
        raise BuildExecutionError(
            f"Failed to capture output of {command}",
            code="execution_error",
        )
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, stdout, logging.INFO), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, stderr, logging.INFO), daemon=True),
    ]
    for reader in readers:
        reader.start()

    try:
        exit_code = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired as e:
        proc.kill()
        proc.wait()
        raise BuildExecutionError(
            f"{command} timed out after {timeout} seconds",
            exit_code=-1,
            code="build_timeout",
        ) from e
    finally:
        for reader in readers:
            reader.join()

    return ExecResult(exit_code=exit_code, stdout="".join(stdout), stderr="".join(stderr))


class CommandExecutor:
    """Runs engine commands with late argument interpolation."""

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.env = env
        self.timeout = timeout
        self.cwd = cwd

    def run(self, build_command: BuildCommand) -> ExecResult:
        """Interpolate every argument once, then execute the command."""
        args = [interpolate(arg, self.env) for arg in build_command.args]
        return get_exec_output(
            build_command.command,
            args,
            cwd=self.cwd,
            env=self.env,
            timeout=self.timeout,
        )


__all__ = ["CommandExecutor", "get_exec_output", "interpolate"]
