"""CLI error handling for warehouse-compiler.

Maps library exceptions to user-friendly messages and exit codes.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, NoReturn

import click
from pydantic import ValidationError as PydanticValidationError
from rich.markup import escape

from warehouse_compiler.cli.output import error
from warehouse_compiler.errors import (
    CompilationTimeoutError,
    CompilerError,
    ConfigFileError,
)

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


# Exit codes following sysexits.h convention
EXIT_USER_ERROR = 1  # Invalid config, worker failure
EXIT_SYSTEM_ERROR = 2  # Unreadable config file, write failure
EXIT_TIMEOUT = 3  # Worker missed its deadline


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
        error(escape(self.format_message()))


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - timeout_millis: Input should be greater than 0"
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]

    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        lines.append(f"  - {loc}: {e['msg']}")

    return "\n".join(lines)


def exit_code_for(err: CompilerError) -> int:
    """Return the CLI exit code for a library error."""
    if isinstance(err, CompilationTimeoutError):
        return EXIT_TIMEOUT
    if isinstance(err, ConfigFileError):
        return EXIT_SYSTEM_ERROR
    return EXIT_USER_ERROR


def handle_compiler_error(err: CompilerError) -> NoReturn:
    """Raise a CLIError describing a library error.

    Raises:
        CLIError: Always, with the exit code from exit_code_for().
    """
    raise CLIError(f"Compilation failed: {err.user_message}", exit_code=exit_code_for(err))


def handle_validation_error(err: PydanticValidationError) -> NoReturn:
    """Raise a CLIError describing an invalid compile request.

    Raises:
        CLIError: Always, with a formatted error message.
    """
    raise CLIError(f"Invalid compile request:\n{format_pydantic_error(err)}")


def parse_override(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> dict[str, Any]:
    """Click callback parsing ``--override`` as a JSON object."""
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}") from None
    if not isinstance(parsed, dict):
        raise click.BadParameter("must be a JSON object")
    return parsed
