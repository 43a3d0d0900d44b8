"""Compile worker process: supervisor-side handle and worker-side entrypoint.

- WorkerHandle: Spawn a worker, send it one request, listen for its reply
- protocol: Newline-delimited JSON messages exchanged over stdin/stdout
- main: Entry point run inside the worker (``python -m warehouse_compiler.worker``)
"""

from __future__ import annotations

from warehouse_compiler.worker.handle import WorkerHandle, WorkerState

__all__: list[str] = [
    "WorkerHandle",
    "WorkerState",
]
