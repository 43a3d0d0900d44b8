"""Handle on one isolated compile worker process.

A WorkerHandle owns a child process and its stdin/stdout message channel.
Exactly one request may be sent per handle. The handle reports at most one
of three completion signals to registered listeners:

- response: the worker replied with a result payload
- error: the worker replied with an error, or the channel failed
- exit: the process ended without replying first

State machine::

    SPAWNED -> AWAITING_RESPONSE -> COMPLETED | FAILED | KILLED
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from enum import Enum

import structlog

from warehouse_compiler.errors import WorkerError
from warehouse_compiler.models import CompileRequest
from warehouse_compiler.settings import DEFAULT_STREAM_LIMIT_BYTES
from warehouse_compiler.worker.protocol import ResultMessage, decode_message, encode_request

logger = structlog.get_logger(__name__)

ResponseListener = Callable[[str], None]
ErrorListener = Callable[[WorkerError], None]
ExitListener = Callable[[int], None]

READER_GRACE_SECONDS = 1.0


class WorkerState(str, Enum):
    """Lifecycle state of a worker handle.

    Attributes:
        SPAWNED: Process started, no request sent yet
        AWAITING_RESPONSE: Request sent, no signal received yet
        COMPLETED: Worker replied with a result, or exited cleanly
        FAILED: Worker replied with an error, the channel failed, or the
            process exited with a non-zero code
        KILLED: Terminated before any signal was received
    """

    SPAWNED = "spawned"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"


class WorkerHandle:
    """Owns one worker process and its message channel.

    Use :meth:`spawn` to create a handle.

    Example:
        >>> handle = await WorkerHandle.spawn([sys.executable, "-m", "warehouse_compiler.worker"])
        >>> handle.on_response(lambda payload: print("done"))
        >>> await handle.send(request)
        ...
        >>> handle.terminate()
        >>> await handle.wait_closed()
    """

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        """Wrap an already started process.

        Args:
            process: Child process with piped stdin and stdout.
        """
        self._process = process
        self.state = WorkerState.SPAWNED
        self._sent = False
        self._signalled = False
        self._terminated = False
        self._response_listeners: list[ResponseListener] = []
        self._error_listeners: list[ErrorListener] = []
        self._exit_listeners: list[ExitListener] = []
        self._reader: asyncio.Task[None] | None = None
        self._log = logger.bind(component="worker_handle", pid=process.pid)

    @classmethod
    async def spawn(
        cls,
        command: Sequence[str],
        *,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        stream_limit: int = DEFAULT_STREAM_LIMIT_BYTES,
    ) -> WorkerHandle:
        """Start a worker process and begin listening for its reply.

        stderr is inherited so worker diagnostics reach the caller.

        Args:
            command: Worker argv.
            cwd: Working directory of the worker.
            env: Environment of the worker. Inherits the caller's when None.
            stream_limit: Largest reply line accepted, in bytes.

        Returns:
            A handle in the SPAWNED state.

        Raises:
            WorkerError: If the process cannot be started.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                limit=stream_limit,
            )
        except OSError as e:
            raise WorkerError(f"Unable to start compilation worker: {e}", cause=e) from e

        handle = cls(process)
        handle._reader = asyncio.get_running_loop().create_task(
            handle._read_reply(), name=f"worker-{process.pid}-reader"
        )
        handle._log.debug("worker_spawned", command=list(command))
        return handle

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Exit code once the process has been reaped, else None."""
        return self._process.returncode

    def on_response(self, listener: ResponseListener) -> None:
        self._response_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def on_exit(self, listener: ExitListener) -> None:
        self._exit_listeners.append(listener)

    async def send(self, request: CompileRequest) -> None:
        """Send the compile request. Allowed exactly once per handle.

        A broken channel is reported through the error signal, not raised.

        Raises:
            RuntimeError: If a request was already sent.
        """
        if self._sent:
            raise RuntimeError("A compile request was already sent to this worker")
        self._sent = True
        if self.state is WorkerState.SPAWNED:
            self.state = WorkerState.AWAITING_RESPONSE

        stdin = self._process.stdin
        assert stdin is not None  # Type narrowing: spawned with stdin=PIPE
        try:
            stdin.write(encode_request(request))
            await stdin.drain()
            stdin.close()
        except OSError as e:
            self._emit_error(
                WorkerError(f"Unable to send compile request to worker: {e}", cause=e)
            )
            return
        self._log.debug("request_sent", project_dir=request.project_dir)

    def terminate(self) -> None:
        """Kill the process. Idempotent and never raises.

        Signals arriving after termination are suppressed.
        """
        if self._terminated:
            return
        self._terminated = True
        if not self._signalled:
            self.state = WorkerState.KILLED
        if self._process.returncode is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            return
        self._log.debug("worker_killed")

    async def wait_closed(self) -> int:
        """Wait until the process is reaped and the reader has finished.

        Returns:
            The process exit code.
        """
        returncode = await self._process.wait()
        if self._reader is not None:
            # A grandchild holding stdout open keeps the reader from seeing EOF
            done, _ = await asyncio.wait({self._reader}, timeout=READER_GRACE_SECONDS)
            if not done:
                self._reader.cancel()
            else:
                exc = self._reader.exception()
                if exc is not None:
                    raise exc
        return returncode

    async def _read_reply(self) -> None:
        stdout = self._process.stdout
        assert stdout is not None  # Type narrowing: spawned with stdout=PIPE
        try:
            line = await stdout.readline()
        except ValueError as e:
            # StreamReader raises ValueError once a line exceeds the limit
            self._emit_error(WorkerError(f"Worker reply exceeded stream limit: {e}", cause=e))
            line = b""

        if line:
            try:
                message = decode_message(line)
            except WorkerError as e:
                self._emit_error(e)
            else:
                if isinstance(message, ResultMessage):
                    self._emit_response(message.payload)
                else:
                    self._emit_error(message.to_error())

        exit_code = await self._process.wait()
        self._emit_exit(exit_code)

    def _claim_signal(self, signal: str, state: WorkerState) -> bool:
        if self._signalled or self._terminated:
            self._log.debug("worker_signal_suppressed", signal=signal, state=self.state.value)
            return False
        self._signalled = True
        self.state = state
        return True

    def _emit_response(self, payload: str) -> None:
        if self._claim_signal("response", WorkerState.COMPLETED):
            self._log.debug("worker_responded", payload_bytes=len(payload))
            for listener in self._response_listeners:
                listener(payload)

    def _emit_error(self, error: WorkerError) -> None:
        if self._claim_signal("error", WorkerState.FAILED):
            self._log.debug("worker_errored", error=error.user_message)
            for listener in self._error_listeners:
                listener(error)

    def _emit_exit(self, exit_code: int) -> None:
        state = WorkerState.COMPLETED if exit_code == 0 else WorkerState.FAILED
        if self._claim_signal("exit", state):
            self._log.debug("worker_exited", exit_code=exit_code)
            for listener in self._exit_listeners:
                listener(exit_code)
