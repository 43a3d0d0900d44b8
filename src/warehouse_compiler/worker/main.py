"""Entry point executed inside a compile worker process.

Reads one compile request from stdin, runs the configured compile function,
writes one reply to stdout and exits 0. The compile function is looked up from
``WAREHOUSE_COMPILER_WORKER_ENTRYPOINT`` (``module:function``) and defaults to
the reference compiler.

While the compile function runs, ``sys.stdout`` points at stderr so stray
prints cannot corrupt the reply channel.
"""

from __future__ import annotations

import asyncio
import contextlib
import importlib
import inspect
import sys
from collections.abc import Callable
from typing import IO, Any

import structlog

from warehouse_compiler.codec import encode_payload
from warehouse_compiler.models import CompiledGraph, CompileRequest, CoreExecutionResult
from warehouse_compiler.observability import configure_logging
from warehouse_compiler.settings import CompilerSettings, get_settings
from warehouse_compiler.worker.protocol import decode_request, encode_error, encode_result
from warehouse_compiler.worker.reference import reference_compile

logger = structlog.get_logger(__name__)

CompileFunction = Callable[[CompileRequest], Any]


def load_entrypoint(entrypoint: str) -> CompileFunction:
    """Import a compile function from a ``module:function`` path.

    Raises:
        ValueError: If the path is malformed or does not name a callable.
    """
    module_name, _, attr_name = entrypoint.partition(":")
    if not module_name or not attr_name:
        raise ValueError(f"Worker entrypoint must look like 'module:function', got {entrypoint!r}")
    module = importlib.import_module(module_name)
    func = getattr(module, attr_name, None)
    if not callable(func):
        raise ValueError(f"Worker entrypoint {entrypoint!r} is not callable")
    return func  # type: ignore[no-any-return]


def _run_compile(func: CompileFunction, request: CompileRequest) -> str:
    with contextlib.redirect_stdout(sys.stderr):
        result = func(request)
        if inspect.isawaitable(result):
            result = asyncio.run(_await(result))

    if isinstance(result, CoreExecutionResult):
        wrapped = result if request.use_main else result.compiled_graph
        return encode_payload(wrapped)
    if isinstance(result, CompiledGraph):
        if request.use_main:
            return encode_payload(CoreExecutionResult(compiled_graph=result))
        return encode_payload(result)
    raise TypeError(
        f"Compile function returned {type(result).__name__}, "
        "expected CompiledGraph or CoreExecutionResult"
    )


async def _await(awaitable: Any) -> Any:
    return await awaitable


def run(stdin: IO[bytes], stdout: IO[bytes], settings: CompilerSettings) -> int:
    """Serve a single compile request.

    Args:
        stdin: Channel the request is read from.
        stdout: Channel the reply is written to.
        settings: Worker settings.

    Returns:
        Process exit code. Always 0 once a reply has been written.
    """
    try:
        request = decode_request(stdin.readline())
        func = (
            load_entrypoint(settings.worker_entrypoint)
            if settings.worker_entrypoint
            else reference_compile
        )
        logger.debug("worker_compile_started", project_dir=request.project_dir)
        reply = encode_result(_run_compile(func, request))
    except Exception as e:
        logger.warning("worker_compile_failed", error=str(e), error_type=type(e).__name__)
        reply = encode_error(e)

    stdout.write(reply)
    stdout.flush()
    return 0


def main() -> None:
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_format=settings.log_json)
    sys.exit(run(sys.stdin.buffer, sys.stdout.buffer, settings))
