"""Shared pytest fixtures for warehouse-compiler tests.

Provides structlog capture configuration, project directory factories and
commands for the fixture worker scripts in ``tests/fixtures/workers``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from warehouse_compiler.settings import get_settings

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
WORKERS_DIR = Path(__file__).resolve().parent / "fixtures" / "workers"

VALID_PROJECT_CONFIG: dict[str, Any] = {
    "warehouse": "bigquery",
    "defaultSchema": "dataform",
    "assertionSchema": "dataform_assertions",
}


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    Loggers are created per call, so capsys sees their output. Without this,
    structlog may use different processors depending on test
    execution order.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),  # Resolves sys.stdout per logger
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Drop stream handlers that CLI invocations bound to their captured stderr."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler and handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def valid_project_config() -> dict[str, Any]:
    """Return a minimal valid project configuration."""
    return dict(VALID_PROJECT_CONFIG)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture creating a project directory.

    Returns:
        Function ``(config=None, *, raw=None, filename="dataform.json",
        definitions=None)`` returning the project directory. ``raw`` writes
        the configuration file verbatim; ``definitions`` maps relative SQL
        file paths under ``definitions/`` to their content.
    """

    def _create(
        config: dict[str, Any] | None = None,
        *,
        raw: str | None = None,
        filename: str = "dataform.json",
        definitions: dict[str, str] | None = None,
    ) -> Path:
        project_dir = tmp_path / "project"
        project_dir.mkdir(exist_ok=True)
        content = raw if raw is not None else json.dumps(config or VALID_PROJECT_CONFIG)
        (project_dir / filename).write_text(content)
        for relative, sql in (definitions or {}).items():
            path = project_dir / "definitions" / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(sql)
        return project_dir

    return _create


@pytest.fixture
def worker_command() -> Callable[..., list[str]]:
    """Factory fixture building the argv of a fixture worker script.

    Example:
        >>> worker_command("sleep", "10")
        ['/usr/bin/python3', '.../tests/fixtures/workers/sleep.py', '10']
    """

    def _command(name: str, *args: str) -> list[str]:
        return [sys.executable, str(WORKERS_DIR / f"{name}.py"), *args]

    return _command


@pytest.fixture
def worker_pythonpath(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make the package importable by ``python -m warehouse_compiler.worker``."""
    existing = os.environ.get("PYTHONPATH")
    value = str(SRC_DIR) if not existing else os.pathsep.join([str(SRC_DIR), existing])
    monkeypatch.setenv("PYTHONPATH", value)


@pytest.fixture
def fresh_settings() -> Iterator[None]:
    """Clear the cached process-wide settings around a test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
