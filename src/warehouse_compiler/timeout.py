"""Cancellable deadline timer.

A TimeoutGuard produces one ``Timeout`` signal after a duration unless it is
cancelled first. Once cancelled, the signal can never fire.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from warehouse_compiler.models import Timeout

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MILLIS = 5000


class TimeoutGuard:
    """Deadline timer bound to the running event loop.

    Example:
        >>> guard = TimeoutGuard()
        >>> signal, cancel = guard.start(50)
        >>> try:
        ...     outcome = await signal
        ... finally:
        ...     cancel()
    """

    def __init__(self) -> None:
        self._handle: asyncio.TimerHandle | None = None
        self._signal: asyncio.Future[Timeout] | None = None

    @property
    def fired(self) -> bool:
        """Whether the deadline elapsed and the signal was delivered."""
        return (
            self._signal is not None
            and self._signal.done()
            and not self._signal.cancelled()
        )

    def start(
        self, duration_millis: int | None = None
    ) -> tuple[asyncio.Future[Timeout], Callable[[], None]]:
        """Start the timer.

        Args:
            duration_millis: Deadline in milliseconds. Defaults to 5000.

        Returns:
            ``(signal, cancel)``: a future resolved with a Timeout outcome when
            the deadline elapses, and an idempotent cancel function.

        Raises:
            RuntimeError: If the guard was already started.
        """
        if self._signal is not None:
            raise RuntimeError("TimeoutGuard can only be started once")

        millis = duration_millis or DEFAULT_TIMEOUT_MILLIS
        loop = asyncio.get_running_loop()
        signal: asyncio.Future[Timeout] = loop.create_future()
        self._signal = signal

        def _fire() -> None:
            if not signal.done():
                logger.debug("deadline_elapsed", timeout_millis=millis)
                signal.set_result(Timeout(timeout_millis=millis))

        self._handle = loop.call_later(millis / 1000, _fire)
        return signal, self.cancel

    def cancel(self) -> None:
        """Clear the timer. Safe to call any number of times."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._signal is not None and not self._signal.done():
            self._signal.cancel()
