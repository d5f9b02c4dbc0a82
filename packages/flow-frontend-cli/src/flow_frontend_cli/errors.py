"""CLI error handling for flow-frontend-cli.

Turns flow-frontend exceptions, YAML errors and pydantic validation errors
into user-friendly messages with exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import click
import yaml
from pydantic import ValidationError as PydanticValidationError

from flow_frontend_cli.output import error

if TYPE_CHECKING:
    from pathlib import Path

    from pydantic_core import ErrorDetails

    from flow_frontend import FrontendBuildConfig


# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Invalid configuration, failed build
EXIT_SYSTEM_ERROR = 2  # Missing file, permissions, toolchain download


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(self.format_message())


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Args:
        err: Pydantic ValidationError instance.

    Returns:
        Formatted error message with field paths and issues.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - build.es5_directory_name: String should match pattern..."
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]
    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        lines.append(f"  - {loc}: {e['msg']}")
    return "\n".join(lines)


def handle_yaml_error(err: yaml.YAMLError, file_path: str) -> NoReturn:
    """Raise a CLIError describing a YAML syntax error, with its position when known."""
    error_msg = str(err)
    mark = getattr(err, "problem_mark", None)
    if mark is not None:
        problem = getattr(err, "problem", None)
        error_msg = f"YAML syntax error at line {mark.line + 1}, column {mark.column + 1}: {problem}"
    raise CLIError(f"Invalid YAML in {file_path}: {error_msg}")


def handle_file_not_found(file_path: str) -> NoReturn:
    raise CLIError(
        f"File not found: {file_path}\n\nUse --file to specify the path of frontend.yaml.",
        exit_code=EXIT_SYSTEM_ERROR,
    )


def load_config(path: Path) -> FrontendBuildConfig:
    """Load frontend.yaml, converting every failure into a CLIError.

    Args:
        path: Path to frontend.yaml.

    Returns:
        Validated configuration with absolute directories.

    Raises:
        CLIError: If the file is missing, unparsable or invalid.
    """
    # Import here to avoid heavy imports at CLI startup
    from flow_frontend import FrontendBuildConfig

    if not path.exists():
        handle_file_not_found(str(path))
    try:
        return FrontendBuildConfig.from_yaml(path)
    except yaml.YAMLError as e:
        handle_yaml_error(e, str(path))
    except PydanticValidationError as e:
        raise CLIError(f"Invalid configuration in {path}:\n{format_pydantic_error(e)}") from None
