"""Request, outcome and result models for warehouse-compiler.

This module defines:
- CompileRequest: Immutable input of one compilation
- Success / WorkerFailure / Timeout / ProcessExit: the single terminal
  outcome of one worker run, combined in the ``Outcome`` tagged union
- CompiledGraph / CoreExecutionResult: decoded result shapes
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from warehouse_compiler.errors import CompilationTimeoutError, ProcessExitError, WorkerError

SCHEMA_SUFFIX_PROP = "schemaSuffix"


class CompileRequest(BaseModel):
    """Configuration bundle for one compilation.

    Attributes:
        project_dir: Project directory. Resolved to an absolute path.
        project_config_override: Properties deep-merged over the on-disk
            project configuration.
        schema_suffix_override: Shortcut for ``schemaSuffix``. An explicit
            ``schemaSuffix`` in ``project_config_override`` takes precedence.
        timeout_millis: Deadline for the worker, in milliseconds.
        use_main: Decode the result as a CoreExecutionResult wrapper.

    Example:
        >>> request = CompileRequest(
        ...     project_dir="examples/sales",
        ...     schema_suffix_override="ci",
        ...     timeout_millis=10_000,
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_dir: str = Field(..., min_length=1, description="Project directory")
    project_config_override: dict[str, Any] = Field(
        default_factory=dict,
        description="Properties merged over the project configuration file",
    )
    schema_suffix_override: str | None = Field(
        default=None,
        description="Shortcut for project_config_override.schemaSuffix",
    )
    timeout_millis: int | None = Field(
        default=None,
        gt=0,
        description="Worker deadline in milliseconds",
    )
    use_main: bool = Field(
        default=False,
        description="Decode the payload as a CoreExecutionResult",
    )

    @field_validator("project_dir")
    @classmethod
    def _resolve_project_dir(cls, value: str) -> str:
        return str(Path(value).resolve())

    def effective_override(self) -> dict[str, Any]:
        """Return the project config override including the schema suffix shortcut.

        Returns:
            A new dict. The request itself is never modified.
        """
        override = copy.deepcopy(self.project_config_override)
        if self.schema_suffix_override:
            override.setdefault(SCHEMA_SUFFIX_PROP, self.schema_suffix_override)
        return override


class Success(BaseModel):
    """The worker replied with an encoded result payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["success"] = "success"
    payload: str = Field(..., description="Encoded result payload")

    def unwrap(self) -> str:
        return self.payload


class WorkerFailure(BaseModel):
    """The worker reported an error, or the channel to it failed.

    Attributes:
        message: Error message.
        error_type: Exception type name reported by the worker.
        worker_traceback: Traceback reported by the worker.
        cause: Local exception behind a transport failure. Not serialized.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    kind: Literal["worker_error"] = "worker_error"
    message: str
    error_type: str | None = None
    worker_traceback: str | None = None
    cause: BaseException | None = Field(default=None, exclude=True)

    @classmethod
    def from_error(cls, error: WorkerError) -> WorkerFailure:
        return cls(
            message=error.user_message,
            error_type=error.error_type,
            worker_traceback=error.worker_traceback,
            cause=error.cause,
        )

    def unwrap(self) -> str:
        # The traceback was logged when the reply was decoded
        error = WorkerError(self.message, error_type=self.error_type, cause=self.cause)
        error.worker_traceback = self.worker_traceback
        raise error


class Timeout(BaseModel):
    """The deadline elapsed before the worker replied."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["timeout"] = "timeout"
    timeout_millis: int = Field(..., gt=0)

    def unwrap(self) -> str:
        raise CompilationTimeoutError(self.timeout_millis)


class ProcessExit(BaseModel):
    """The worker exited with a non-zero code before replying."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["process_exit"] = "process_exit"
    exit_code: int

    @field_validator("exit_code")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("a clean exit is not a failure outcome")
        return value

    def unwrap(self) -> str:
        raise ProcessExitError(self.exit_code)


Outcome = Annotated[
    Success | WorkerFailure | Timeout | ProcessExit,
    Field(discriminator="kind"),
]
"""Single terminal outcome of one worker run."""


class Target(BaseModel):
    """Fully qualified location of a compiled relation."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    database: str | None = None
    schema_name: str = Field(..., alias="schema")
    name: str


class Table(BaseModel):
    """A compiled table or view definition."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    type: str = "view"
    target: Target
    query: str = ""
    file_name: str | None = None


class CompiledGraph(BaseModel):
    """Compiled project graph.

    Unknown fields are ignored so that payloads from newer workers decode.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    project_config: dict[str, Any] = Field(default_factory=dict)
    tables: list[Table] = Field(default_factory=list)
    operations: list[dict[str, Any]] = Field(default_factory=list)
    assertions: list[dict[str, Any]] = Field(default_factory=list)
    graph_errors: list[str] = Field(default_factory=list)
    compiler_version: str | None = None


class CoreExecutionResult(BaseModel):
    """Wrapper returned by workers running a project's main entrypoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    compiled_graph: CompiledGraph = Field(default_factory=CompiledGraph)
