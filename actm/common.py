"""
Common utilities shared across actm modules.
"""

from __future__ import annotations

import os
import re
import subprocess
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

# Timeouts in seconds
PROBE_TIMEOUT = 5
MUTATION_TIMEOUT = 300

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


class CommandOutcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class CommandResult:
    """
    Result of running one external command.

    Attributes:
        command: Argument vector that was executed
        outcome: success, timeout or error
        exit_code: Process exit code (-1 when the process did not finish)
        stdout: Standard output
        stderr: Standard error
        duration_seconds: Wall time spent
        error_message: Human-readable error message if not successful
    """
    command: tuple[str, ...]
    outcome: CommandOutcome
    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome == CommandOutcome.SUCCESS

    @property
    def output(self) -> str:
        """stdout followed by stderr."""
        return self.stdout + self.stderr

    def display(self) -> str:
        return " ".join(self.command)


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value


def run_command(args: Sequence[str], timeout: float = PROBE_TIMEOUT) -> CommandResult:
    """
    Run a command without a shell and capture its output.

    Never raises: a missing executable, a non-zero exit or any OS error is an
    ERROR outcome, an expired time bound is a TIMEOUT outcome.

    Args:
        args: Command and arguments
        timeout: Timeout in seconds

    Returns:
        CommandResult
    """
    command = tuple(args)
    start_time = time.time()

    try:
        proc = subprocess.run(
            list(command),
            capture_output=True,
            stdin=subprocess.DEVNULL,
            text=True,
            timeout=timeout,
            check=False,
            env={**os.environ, "TERM": "dumb", "NO_COLOR": "1"},
        )
    except subprocess.TimeoutExpired as e:
        return CommandResult(
            command=command,
            outcome=CommandOutcome.TIMEOUT,
            exit_code=-1,
            stdout=_decode(e.stdout),
            stderr=_decode(e.stderr),
            duration_seconds=time.time() - start_time,
            error_message=f"Command timed out after {timeout}s: {' '.join(command)}",
        )
    except FileNotFoundError:
        return CommandResult(
            command=command,
            outcome=CommandOutcome.ERROR,
            exit_code=-1,
            stdout="",
            stderr="",
            duration_seconds=time.time() - start_time,
            error_message=f"Command not found: {command[0] if command else ''}",
        )
    except (OSError, ValueError) as e:
        return CommandResult(
            command=command,
            outcome=CommandOutcome.ERROR,
            exit_code=-1,
            stdout="",
            stderr="",
            duration_seconds=time.time() - start_time,
            error_message=f"Failed to run {' '.join(command)}: {e}",
        )

    duration = time.time() - start_time
    stdout = proc.stdout or ""
    stderr = proc.stderr or ""

    if proc.returncode == 0:
        return CommandResult(
            command=command,
            outcome=CommandOutcome.SUCCESS,
            exit_code=0,
            stdout=stdout,
            stderr=stderr,
            duration_seconds=duration,
        )

    error_msg = f"Command failed with exit code {proc.returncode}"
    if stderr.strip():
        error_msg += f": {stderr.strip()[:200]}"
    return CommandResult(
        command=command,
        outcome=CommandOutcome.ERROR,
        exit_code=proc.returncode,
        stdout=stdout,
        stderr=stderr,
        duration_seconds=duration,
        error_message=error_msg,
    )


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log a message only in verbose mode (or with ACTM_DEBUG=1).

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("ACTM_DEBUG", "0") == "1":
        try:
            from .logging_config import get_logger
            get_logger().info(msg)
        except Exception:
            print(f"[actm] {msg}", file=sys.stderr)
