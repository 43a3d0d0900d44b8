"""Runtime settings for warehouse-compiler.

Settings are read from ``WAREHOUSE_COMPILER_*`` environment variables (or a
``.env`` file) and can be overridden explicitly.

Example:
    >>> settings = CompilerSettings(default_timeout_millis=10_000)
    >>> settings.resolved_worker_command()
    ['/usr/bin/python3', '-m', 'warehouse_compiler.worker']
"""

from __future__ import annotations

import sys
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from warehouse_compiler.timeout import DEFAULT_TIMEOUT_MILLIS

ENV_PREFIX = "WAREHOUSE_COMPILER_"
"""Prefix of every environment variable read by CompilerSettings."""

DEFAULT_STREAM_LIMIT_BYTES = 64 * 1024 * 1024
"""Largest single worker reply line accepted, in bytes."""

WORKER_MODULE = "warehouse_compiler.worker"
"""Module run with ``python -m`` when no worker command is configured."""


class CompilerSettings(BaseSettings):
    """Configuration for launching and supervising compile workers.

    Attributes:
        worker_command: Command (argv list) that launches a worker process.
            Defaults to the reference worker of this package.
        worker_entrypoint: ``module:function`` the reference worker calls to
            compile a project. Defaults to the built-in reference compiler.
        default_timeout_millis: Deadline used when a request sets none.
        stream_limit_bytes: Buffer limit for the worker's reply line.
        log_level: Minimum log level.
        log_json: Render logs as JSON instead of console output.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        extra="ignore",
    )

    worker_command: list[str] | None = Field(
        default=None,
        description="Command used to launch a worker process",
    )
    worker_entrypoint: str | None = Field(
        default=None,
        description="module:function called by the reference worker",
    )
    default_timeout_millis: int = Field(
        default=DEFAULT_TIMEOUT_MILLIS,
        gt=0,
        description="Deadline used when a request sets none",
    )
    stream_limit_bytes: int = Field(
        default=DEFAULT_STREAM_LIMIT_BYTES,
        gt=0,
        description="Buffer limit for the worker reply",
    )
    log_level: str = Field(default="INFO", description="Minimum log level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    def resolved_worker_command(self) -> list[str]:
        """Return the worker command, falling back to the reference worker."""
        if self.worker_command:
            return list(self.worker_command)
        return [sys.executable, "-m", WORKER_MODULE]


@lru_cache(maxsize=1)
def get_settings() -> CompilerSettings:
    """Return the process-wide settings, loaded once from the environment."""
    return CompilerSettings()
