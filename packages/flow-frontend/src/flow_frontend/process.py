"""External process execution for the toolchain and build stages.

The installer and the babel-based stages never call subprocess directly; they
go through a ProcessRunner so tests can substitute a fake runner.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from flow_frontend.errors import ProcessError, ProcessTimeoutError
from flow_frontend.observability import get_logger


class ProcessResult(BaseModel):
    """Captured result of a finished process."""

    model_config = ConfigDict(frozen=True)

    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class ProcessRunner(Protocol):
    """Run an external process with arguments, working directory and timeout."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run command to completion and capture its output.

        Args:
            command: Program and arguments.
            cwd: Working directory.
            env: Extra environment variables layered over os.environ.
            timeout: Seconds before the process is killed (None = no timeout).

        Returns:
            The captured result, whatever the exit status.

        Raises:
            ProcessError: If the program cannot be started.
            ProcessTimeoutError: If the timeout expired.
        """
        ...


class SubprocessRunner:
    """ProcessRunner backed by subprocess.Popen.

    The child is killed when the timeout expires or when the calling thread
    is interrupted, so no orphan tool keeps writing into a build directory.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        logger = get_logger()
        args = [str(part) for part in command]
        full_env = {**os.environ, **(env or {})}
        logger.debug("process_started", command=args, cwd=str(cwd), timeout=timeout)

        try:
            proc = subprocess.Popen(
                args,
                cwd=cwd,
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise ProcessError(args, reason=f"Cannot start '{Path(args[0]).name}'", stderr=str(e)) from e

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            proc.kill()
            _, stderr = proc.communicate()
            raise ProcessTimeoutError(args, timeout or 0, stderr=stderr or "") from e
        except BaseException:
            proc.kill()
            proc.wait()
            raise

        logger.debug("process_finished", command=args, returncode=proc.returncode)
        return ProcessResult(
            command=tuple(args),
            returncode=proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )


def check_result(result: ProcessResult) -> ProcessResult:
    """Raise ProcessError for a non-zero exit status."""
    if not result.ok:
        raise ProcessError(list(result.command), returncode=result.returncode, stderr=result.stderr)
    return result
