"""warehouse-compiler: Isolated, deadline-bound compilation of warehouse projects.

This package provides:
- compile_project: Validate a project and compile it in a worker process
- CompileOrchestrator: Run one request in a worker, racing it against a deadline
- WorkerHandle / TimeoutGuard: The worker process and deadline primitives
- validate_project_config: Pre-flight project configuration checks
"""

from __future__ import annotations

__version__ = "0.1.0"

from warehouse_compiler.compiler import compile_project
from warehouse_compiler.errors import (
    CompilationTimeoutError,
    CompilerError,
    ConfigFileError,
    InvalidConfigError,
    PayloadDecodeError,
    ProcessExitError,
    WorkerError,
)
from warehouse_compiler.models import (
    CompiledGraph,
    CompileRequest,
    CoreExecutionResult,
    Outcome,
    ProcessExit,
    Success,
    Timeout,
    WorkerFailure,
)
from warehouse_compiler.orchestrator import CompileOrchestrator
from warehouse_compiler.project import deep_merge, load_project_config, resolve_project_config
from warehouse_compiler.settings import CompilerSettings, get_settings
from warehouse_compiler.timeout import DEFAULT_TIMEOUT_MILLIS, TimeoutGuard
from warehouse_compiler.validation import VALID_WAREHOUSES, validate_project_config
from warehouse_compiler.worker import WorkerHandle, WorkerState

__all__ = [
    "__version__",
    # Compilation
    "compile_project",
    "CompileOrchestrator",
    "WorkerHandle",
    "WorkerState",
    "TimeoutGuard",
    "DEFAULT_TIMEOUT_MILLIS",
    # Configuration
    "CompilerSettings",
    "get_settings",
    "load_project_config",
    "deep_merge",
    "resolve_project_config",
    "validate_project_config",
    "VALID_WAREHOUSES",
    # Models
    "CompileRequest",
    "Outcome",
    "Success",
    "WorkerFailure",
    "Timeout",
    "ProcessExit",
    "CompiledGraph",
    "CoreExecutionResult",
    # Errors
    "CompilerError",
    "InvalidConfigError",
    "ConfigFileError",
    "WorkerError",
    "ProcessExitError",
    "CompilationTimeoutError",
    "PayloadDecodeError",
]
