"""End-to-end project compilation.

compile_project() is the public entry point:

1. Resolve the project configuration (read file, merge override, validate).
   Failures surface here, before any worker is spawned.
2. Run the request in an isolated worker via CompileOrchestrator.
3. Decode the worker's payload into a CompiledGraph.
"""

from __future__ import annotations

import structlog

from warehouse_compiler.codec import decode_compiled_graph, decode_core_execution_result
from warehouse_compiler.models import CompiledGraph, CompileRequest
from warehouse_compiler.observability import compile_span
from warehouse_compiler.orchestrator import CompileOrchestrator
from warehouse_compiler.project import resolve_project_config

logger = structlog.get_logger(__name__)


async def compile_project(
    request: CompileRequest,
    *,
    orchestrator: CompileOrchestrator | None = None,
) -> CompiledGraph:
    """Compile a project in an isolated worker process.

    Args:
        request: Compile request.
        orchestrator: Orchestrator to run the worker with. Defaults to one
            built from the process-wide settings.

    Returns:
        The compiled graph. With ``request.use_main`` the payload is decoded
        as a CoreExecutionResult and its compiled graph returned.

    Raises:
        ConfigFileError: Project configuration file unreadable or unparsable.
        InvalidConfigError: Merged project configuration is invalid.
        WorkerError: The worker reported an error or the channel failed.
        ProcessExitError: The worker exited with a non-zero code.
        CompilationTimeoutError: The worker missed its deadline.
        PayloadDecodeError: The worker's payload could not be decoded.

    Example:
        >>> graph = await compile_project(CompileRequest(project_dir="examples/sales"))
        >>> [table.target.name for table in graph.tables]
        ['orders', 'customers']
    """
    with compile_span(request):
        resolve_project_config(request)

        orchestrator = orchestrator or CompileOrchestrator()
        outcome = await orchestrator.compile(request)
        payload = outcome.unwrap()

        if request.use_main:
            graph = decode_core_execution_result(payload).compiled_graph
        else:
            graph = decode_compiled_graph(payload)

    logger.debug("compiled_graph_decoded", tables=len(graph.tables))
    return graph
