"""External command execution for the pipeline stages.

:class:`ProcessRunner` is the only place the service starts child processes.
It never raises for a failed command: the outcome is classified into a
:class:`ProcessStatus` and the calling stage decides whether that is fatal,
retryable or deterministic.

A missing executable (``FileNotFoundError`` from ``subprocess``) is reported
as ``MISSING`` so callers can tell "tool absent" from "tool failed"; a file
without its exec bit is ``NOT_EXECUTABLE``.  Every
invocation is bounded by a timeout; expiry is reported as ``TIMEOUT``.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

# Captured output is truncated to this many characters in failure causes so
# that API error bodies stay readable.
_OUTPUT_TAIL_CHARS = 500


class ProcessStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    MISSING = "missing"
    NOT_EXECUTABLE = "not_executable"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one external command.

    Attributes:
        command: The executable name or path that was run.
        args: Arguments passed after the command.
        status: Classification of the outcome.
        returncode: Exit status, or ``None`` if the process never exited
            normally (missing executable, timeout).
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    command: str
    args: tuple[str, ...]
    status: ProcessStatus
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ProcessStatus.OK

    def describe(self) -> str:
        """One-line summary suitable for a stage failure cause."""
        cmdline = " ".join((self.command, *self.args))
        if self.status is ProcessStatus.MISSING:
            return f"'{self.command}' not found"
        if self.status is ProcessStatus.NOT_EXECUTABLE:
            return f"'{self.command}' is not executable"
        if self.status is ProcessStatus.TIMEOUT:
            return f"'{cmdline}' timed out"
        if self.status is ProcessStatus.FAILED:
            detail = (self.stderr or self.stdout).strip()[-_OUTPUT_TAIL_CHARS:]
            if self.returncode is None:
                summary = f"'{cmdline}' could not be started"
            else:
                summary = f"'{cmdline}' exited with status {self.returncode}"
            return f"{summary}: {detail}" if detail else summary
        return f"'{cmdline}' succeeded"


class ProcessRunner:
    """Run external commands synchronously with a timeout."""

    def __init__(self, timeout: float | None = None) -> None:
        """Initialise the runner.

        Args:
            timeout: Default timeout in seconds applied to every call that
                does not pass its own.  ``None`` disables the bound.
        """
        self._timeout = timeout

    def run(
        self,
        command: str | Path,
        args: Sequence[str | Path] = (),
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run ``command`` with ``args`` and wait for it to finish.

        Args:
            command: Executable name (resolved on ``PATH``) or path.
            args: Positional arguments.
            cwd: Working directory for the child process.
            timeout: Per-call override of the default timeout.

        Returns:
            A :class:`ProcessResult`.  Never raises for non-zero exits,
            missing or non-executable programs, OS errors while starting
            the process, a missing ``cwd`` or timeouts.
        """
        command = str(command)
        str_args = tuple(str(a) for a in args)
        limit = timeout if timeout is not None else self._timeout

        logger.info("Running: %s (cwd=%s)", " ".join((command, *str_args)), cwd or ".")

        # A missing cwd raises FileNotFoundError too; keep it apart from MISSING.
        if cwd is not None and not Path(cwd).is_dir():
            logger.error("Working directory does not exist: %s", cwd)
            return ProcessResult(
                command,
                str_args,
                ProcessStatus.FAILED,
                stderr=f"working directory '{cwd}' does not exist",
            )

        try:
            completed = subprocess.run(
                [command, *str_args],
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=limit,
            )
        except FileNotFoundError:
            logger.error("Executable not found: %s", command)
            return ProcessResult(command, str_args, ProcessStatus.MISSING)
        except PermissionError:
            logger.error("Executable not runnable: %s", command)
            return ProcessResult(command, str_args, ProcessStatus.NOT_EXECUTABLE)
        except OSError as exc:
            logger.error("Could not start %s: %s", command, exc)
            return ProcessResult(command, str_args, ProcessStatus.FAILED, stderr=str(exc))
        except subprocess.TimeoutExpired as exc:
            logger.error("Command timed out after %ss: %s", limit, command)
            return ProcessResult(
                command,
                str_args,
                ProcessStatus.TIMEOUT,
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
            )

        status = ProcessStatus.OK if completed.returncode == 0 else ProcessStatus.FAILED
        if status is ProcessStatus.FAILED:
            logger.warning("Command exited with status %d: %s", completed.returncode, command)

        return ProcessResult(
            command,
            str_args,
            status,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _decode(output: str | bytes | None) -> str:
    # TimeoutExpired carries bytes even when text=True was requested.
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
