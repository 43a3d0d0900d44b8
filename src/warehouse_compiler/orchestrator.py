"""Run one compile request in an isolated worker under a deadline.

CompileOrchestrator.compile() spawns a worker, sends it the request and
races the worker's completion signals against a TimeoutGuard. The first
signal to arrive settles the call; later signals are discarded. Whatever
happens, the deadline is cleared and the worker is killed and reaped
before compile() returns or raises.

Signal to outcome mapping:
- response                -> Success
- error                   -> WorkerFailure
- exit with non-zero code -> ProcessExit
- exit with code 0        -> ignored (a clean exit is not a failure)
- deadline                -> CompilationTimeoutError is raised
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence

import structlog

from warehouse_compiler.errors import CompilationTimeoutError, WorkerError
from warehouse_compiler.models import (
    CompileRequest,
    Outcome,
    ProcessExit,
    Success,
    Timeout,
    WorkerFailure,
)
from warehouse_compiler.settings import ENV_PREFIX, CompilerSettings, get_settings
from warehouse_compiler.timeout import TimeoutGuard
from warehouse_compiler.worker import WorkerHandle

logger = structlog.get_logger(__name__)


class CompileOrchestrator:
    """Supervises compile workers, one worker per compile() call.

    Reentrant: concurrent compile() calls each own an independent worker and
    deadline, and share no mutable state.

    Attributes:
        settings: Settings used for defaults and the worker environment.
        worker_command: Argv used to launch each worker.

    Example:
        >>> orchestrator = CompileOrchestrator()
        >>> outcome = await orchestrator.compile(CompileRequest(project_dir="."))
        >>> payload = outcome.unwrap()
    """

    def __init__(
        self,
        worker_command: Sequence[str] | None = None,
        *,
        settings: CompilerSettings | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            worker_command: Worker argv. Defaults to the settings' command.
            settings: Settings. Defaults to the process-wide settings.
            env: Extra environment variables for each worker.
        """
        self.settings = settings or get_settings()
        self.worker_command = (
            list(worker_command) if worker_command else self.settings.resolved_worker_command()
        )
        self._extra_env = dict(env or {})

    def _worker_env(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.settings.worker_entrypoint:
            env[f"{ENV_PREFIX}WORKER_ENTRYPOINT"] = self.settings.worker_entrypoint
        env.update(self._extra_env)
        return env

    async def _spawn_worker(self) -> WorkerHandle:
        return await WorkerHandle.spawn(
            self.worker_command,
            env=self._worker_env(),
            stream_limit=self.settings.stream_limit_bytes,
        )

    async def compile(self, request: CompileRequest) -> Success | WorkerFailure | ProcessExit:
        """Compile one request in a fresh worker.

        Args:
            request: The compile request, sent to the worker exactly once.

        Returns:
            Success, WorkerFailure or ProcessExit. The worker is no longer
            running when this returns.

        Raises:
            CompilationTimeoutError: If the worker did not settle within
                ``request.timeout_millis`` (default from settings).
        """
        timeout_millis = request.timeout_millis or self.settings.default_timeout_millis
        log = logger.bind(project_dir=request.project_dir, timeout_millis=timeout_millis)

        try:
            handle = await self._spawn_worker()
        except WorkerError as e:
            log.error("worker_spawn_failed", error=e.user_message)
            return WorkerFailure.from_error(e)

        log = log.bind(pid=handle.pid)
        settled: asyncio.Future[Outcome] = asyncio.get_running_loop().create_future()

        def settle(outcome: Outcome) -> None:
            if settled.done():
                log.debug("worker_signal_discarded", outcome=outcome.kind)
                return
            settled.set_result(outcome)

        def on_exit(exit_code: int) -> None:
            if exit_code == 0:
                log.debug("worker_exited_cleanly")
                return
            settle(ProcessExit(exit_code=exit_code))

        handle.on_response(lambda payload: settle(Success(payload=payload)))
        handle.on_error(lambda error: settle(WorkerFailure.from_error(error)))
        handle.on_exit(on_exit)

        deadline, cancel_deadline = TimeoutGuard().start(timeout_millis)
        deadline.add_done_callback(
            lambda signal: None if signal.cancelled() else settle(signal.result())
        )

        try:
            await handle.send(request)
            outcome = await settled
        finally:
            cancel_deadline()
            handle.terminate()
            await handle.wait_closed()

        if isinstance(outcome, Timeout):
            log.warning("compile_timed_out")
            raise CompilationTimeoutError(outcome.timeout_millis)

        log.info("compile_settled", outcome=outcome.kind, worker_state=handle.state.value)
        return outcome
