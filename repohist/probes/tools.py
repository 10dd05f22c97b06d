"""Subprocess execution utilities."""

import logging
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

LineHandler = Callable[[str], None]


class SubprocessError(Exception):
    """Raised when a subprocess cannot be run to completion."""

    pass


@dataclass
class CommandResult:
    """Exit status and captured output of one command."""

    returncode: int
    stdout: bytes = b""
    stderr: str = ""

    @property
    def output_text(self) -> str:
        """Captured stdout decoded as text."""
        return self.stdout.decode("utf-8", errors="replace")


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
    line_handler: Optional[LineHandler] = None,
) -> CommandResult:
    """
    Run a subprocess command.

    A non-zero exit status is returned, not raised: callers decide whether
    the tool reported a failure or a valid empty result.

    Args:
        cmd: Command and arguments as list (safe, no shell injection)
        cwd: Working directory (optional)
        timeout: Seconds before the process is killed (optional)
        line_handler: Receives each stdout line as it is produced. When
            given, stdout is not retained in the result.

    Returns:
        CommandResult with exit code and captured output

    Raises:
        SubprocessError: If the command cannot be started or times out
    """
    logger.debug(f"Running: {' '.join(cmd)}")

    if line_handler is not None:
        return _run_streaming(cmd, cwd, timeout, line_handler)

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            check=False,
            cwd=cwd,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise SubprocessError(f"Command timed out after {timeout}s: {' '.join(cmd)}") from e
    except OSError as e:
        raise SubprocessError(f"Failed to run {cmd[0]}: {e}") from e

    logger.debug(f"Exit code: {result.returncode}")
    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr.decode("utf-8", errors="replace"),
    )


def _strip_newline(line: str) -> str:
    # A carriage return before the newline is part of the line content.
    return line[:-1] if line.endswith("\n") else line


def _run_streaming(
    cmd: list[str],
    cwd: Optional[Path],
    timeout: Optional[float],
    line_handler: LineHandler,
) -> CommandResult:
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise SubprocessError(f"Failed to run {cmd[0]}: {e}") from e

    stderr_chunks: list[bytes] = []
    assert proc.stdout is not None and proc.stderr is not None
    stderr_pipe = proc.stderr
    stderr_reader = threading.Thread(
        target=lambda: stderr_chunks.append(stderr_pipe.read()),
        daemon=True,
    )
    stderr_reader.start()

    timed_out = threading.Event()

    def _kill() -> None:
        timed_out.set()
        proc.kill()

    timer = threading.Timer(timeout, _kill) if timeout else None
    if timer is not None:
        timer.start()

    try:
        for raw in proc.stdout:
            line_handler(_strip_newline(raw.decode("utf-8", errors="replace")))
        proc.wait()
    except BaseException:
        proc.kill()
        proc.wait()
        raise
    finally:
        if timer is not None:
            timer.cancel()
        proc.stdout.close()
        stderr_reader.join()
        stderr_pipe.close()

    if timed_out.is_set():
        raise SubprocessError(f"Command timed out after {timeout}s: {' '.join(cmd)}")

    logger.debug(f"Exit code: {proc.returncode}")
    return CommandResult(
        returncode=proc.returncode,
        stderr=b"".join(stderr_chunks).decode("utf-8", errors="replace"),
    )

