"""Custom exception hierarchy for flow-frontend.

This module defines the exception classes used throughout flow-frontend:
- FrontendError: Base exception for all frontend build errors
- ConfigurationError: Raised when frontend.yaml parsing or validation fails
- ToolchainInstallError: Raised when node/yarn acquisition fails
- MissingSourceError: Raised when the modern source tree is absent or empty
- StageError: Base for transformation stage failures (transpile, bundle, ...)
- ProcessError: Raised when an external process fails or times out

User-facing messages are safe to display. Technical details (tool stderr,
file paths, exception reprs) are logged internally via structlog.
"""

from __future__ import annotations

from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class FrontendError(Exception):
    """Base exception for flow-frontend.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details for logging. This is
            logged internally but never part of the message.

    Example:
        >>> raise FrontendError(
        ...     "Frontend build failed",
        ...     internal_details="babel exited with 1: SyntaxError in x.js:3",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details:
            logger.error(
                "frontend_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(FrontendError):
    """Raised when configuration file parsing or validation fails.

    Attributes:
        file_path: Path to the configuration file (if known).
        field_path: Dot-separated path to the invalid field (e.g., "toolchain.node_version").
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        context_parts: list[str] = []
        if file_path:
            context_parts.append(f"in {file_path}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.file_path = file_path
        self.field_path = field_path


class ToolchainInstallError(FrontendError):
    """Raised when the node runtime, yarn or the build packages cannot be installed.

    A failed install never replaces a previously installed version, so the
    call can be retried by the caller as-is.

    Attributes:
        version: The version that was being installed (e.g. "node v8.11.1").
        cause: The underlying exception, if any.

    Example:
        >>> raise ToolchainInstallError(
        ...     "node v8.11.1",
        ...     "checksum mismatch",
        ... )
        # User sees: "Failed to install node v8.11.1: checksum mismatch"
    """

    def __init__(
        self,
        version: str,
        reason: str,
        *,
        cause: BaseException | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"Failed to install {version}: {reason}",
            internal_details=internal_details or (repr(cause) if cause else None),
        )
        self.version = version
        self.reason = reason
        self.cause = cause


class ToolchainNotInstalledError(FrontendError):
    """Raised when a build is requested before install_frontend_tools()."""

    def __init__(self) -> None:
        super().__init__("Frontend tools are not installed, call install_frontend_tools() first")


class MissingSourceError(FrontendError):
    """Raised when the source provider reports a missing or empty source tree.

    Attributes:
        path: The directory or file that was expected.
    """

    def __init__(self, path: Path, reason: str = "does not exist") -> None:
        super().__init__(f"Frontend source '{path.name}' {reason}", internal_details=str(path))
        self.path = path
        self.reason = reason


class StageError(FrontendError):
    """Base exception for a failed transformation stage.

    Attributes:
        stage: Stage name ("transpile", "bundle", "minify", "hash").
        tier: Tier being built when the stage failed ("es5", "es6"), if known.
        diagnostics: Diagnostic output of the underlying tool (stderr).
        cause: The underlying exception, if any.
    """

    stage = "stage"

    def __init__(
        self,
        reason: str,
        *,
        tier: str | None = None,
        diagnostics: str = "",
        cause: BaseException | None = None,
    ) -> None:
        where = f"{self.stage} stage ({tier})" if tier else f"{self.stage} stage"
        details = diagnostics or (repr(cause) if cause else None)
        super().__init__(f"{where} failed: {reason}", internal_details=details)
        self.reason = reason
        self.tier = tier
        self.diagnostics = diagnostics
        self.cause = cause


class TranspilationError(StageError):
    """Raised when down-levelling modern JavaScript fails."""

    stage = "transpile"


class BundlingError(StageError):
    """Raised when the import graph of the shell file cannot be bundled."""

    stage = "bundle"


class MinificationError(StageError):
    """Raised when minification fails."""

    stage = "minify"


class HashingError(StageError):
    """Raised when content fingerprinting or reference rewriting fails."""

    stage = "hash"


class ProcessError(FrontendError):
    """Raised when an external process cannot be started or exits non-zero.

    Attributes:
        command: The command line that was run.
        returncode: Exit status, or None if the process never started.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        command: list[str],
        *,
        returncode: int | None = None,
        stderr: str = "",
        reason: str | None = None,
    ) -> None:
        program = Path(command[0]).name if command else "<empty>"
        message = reason or f"'{program}' exited with status {returncode}"
        super().__init__(message, internal_details=stderr or None)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class ProcessTimeoutError(ProcessError):
    """Raised when an external process exceeds its timeout and is killed."""

    def __init__(self, command: list[str], timeout: float, *, stderr: str = "") -> None:
        program = Path(command[0]).name if command else "<empty>"
        super().__init__(
            command,
            stderr=stderr,
            reason=f"'{program}' timed out after {timeout:g}s",
        )
        self.timeout = timeout
