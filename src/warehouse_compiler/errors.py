"""Custom exception hierarchy for warehouse-compiler.

This module defines the exception classes raised around a compilation:
- CompilerError: Base exception for all warehouse-compiler errors
- InvalidConfigError: Project configuration failed validation
- ConfigFileError: Project configuration file could not be read or parsed
- WorkerError: The worker reported a failure, or the channel to it broke
- ProcessExitError: The worker died without replying
- CompilationTimeoutError: The deadline elapsed before the worker replied
- PayloadDecodeError: The worker replied with an undecodable payload

User-facing messages are safe to display. Technical details passed as
``internal_details`` are logged via structlog and never put in the message.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class CompilerError(Exception):
    """Base exception for warehouse-compiler.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details, logged but never displayed.
        cause: Optional underlying exception. Also chained as ``__cause__``.

    Example:
        >>> raise CompilerError(
        ...     "Compilation failed",
        ...     internal_details="worker pid 4242 wrote 0 bytes",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize CompilerError with user message, details and cause.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
            cause: Underlying exception, if any.
        """
        super().__init__(user_message)
        self.user_message = user_message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

        if internal_details:
            logger.error(
                "compiler_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class InvalidConfigError(CompilerError):
    """Raised when a project configuration fails validation.

    Never reaches the worker: validation runs before anything is spawned.

    Attributes:
        field: Name of the offending property.
        value: Offending value, or None for a missing property.
    """

    def __init__(
        self,
        user_message: str,
        *,
        field: str,
        value: object = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.field = field
        self.value = value


class ConfigFileError(CompilerError):
    """Raised when the project configuration file cannot be read or parsed.

    Attributes:
        file_path: Path of the configuration file.

    Example:
        >>> raise ConfigFileError(
        ...     "Unable to parse project configuration",
        ...     file_path="/project/dataform.json",
        ...     cause=json_error,
        ... )
        # User sees: "Unable to parse project configuration
        #            (in /project/dataform.json): Expecting value: line 1 column 1"
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        cause: BaseException | None = None,
        internal_details: str | None = None,
    ) -> None:
        full_message = user_message
        if file_path:
            full_message = f"{full_message} (in {file_path})"
        if cause is not None:
            full_message = f"{full_message}: {cause}"

        super().__init__(full_message, internal_details=internal_details, cause=cause)
        self.file_path = file_path


class WorkerError(CompilerError):
    """Raised when the worker reports a failure or the channel to it fails.

    Attributes:
        error_type: Exception type name reported by the worker, if any.
        worker_traceback: Formatted traceback reported by the worker, if any.
    """

    def __init__(
        self,
        user_message: str,
        *,
        error_type: str | None = None,
        worker_traceback: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=worker_traceback, cause=cause)
        self.error_type = error_type
        self.worker_traceback = worker_traceback


class ProcessExitError(CompilerError):
    """Raised when the worker exits with a non-zero code before replying.

    Attributes:
        exit_code: Process exit code. Negative values are signal numbers.
    """

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"Compilation child process exited with exit code {exit_code}.")
        self.exit_code = exit_code


class CompilationTimeoutError(CompilerError):
    """Raised when the worker did not reply before the deadline.

    Distinct from the hard failures above so callers can treat "too slow"
    differently from "it broke".

    Attributes:
        timeout_millis: The deadline that elapsed, in milliseconds.
    """

    def __init__(self, timeout_millis: int) -> None:
        super().__init__(f"Compilation timed out after {timeout_millis}ms")
        self.timeout_millis = timeout_millis


class PayloadDecodeError(CompilerError):
    """Raised when a successful worker reply cannot be decoded."""

    pass
