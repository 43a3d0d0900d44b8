"""End-to-end tests running the packaged reference worker."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from warehouse_compiler import __version__
from warehouse_compiler.compiler import compile_project
from warehouse_compiler.errors import (
    CompilationTimeoutError,
    ConfigFileError,
    InvalidConfigError,
    ProcessExitError,
    WorkerError,
)
from warehouse_compiler.models import CompileRequest
from warehouse_compiler.orchestrator import CompileOrchestrator
from warehouse_compiler.settings import CompilerSettings

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("worker_pythonpath")]


@pytest.fixture
def orchestrator() -> CompileOrchestrator:
    """Orchestrator running ``python -m warehouse_compiler.worker``."""
    return CompileOrchestrator(settings=CompilerSettings(default_timeout_millis=20_000))


class TestCompileProject:
    """Tests for compile_project with the reference worker."""

    @pytest.mark.asyncio
    async def test_compiles_definitions(
        self, make_project: Callable[..., Path], orchestrator: CompileOrchestrator
    ) -> None:
        """Test a project compiles to one view per SQL file."""
        project_dir = make_project(
            definitions={"orders.sql": "select 1 as id", "customers.sql": "select 2 as id"}
        )
        request = CompileRequest(project_dir=str(project_dir), schema_suffix_override="ci")

        graph = await compile_project(request, orchestrator=orchestrator)

        assert [table.name for table in graph.tables] == ["customers", "orders"]
        assert graph.tables[0].target.schema_name == "dataform_ci"
        assert graph.project_config["schemaSuffix"] == "ci"
        assert graph.compiler_version == __version__

    @pytest.mark.asyncio
    async def test_use_main(
        self, make_project: Callable[..., Path], orchestrator: CompileOrchestrator
    ) -> None:
        """Test the main result wrapper is unwrapped."""
        project_dir = make_project(definitions={"orders.sql": "select 1"})
        request = CompileRequest(project_dir=str(project_dir), use_main=True)

        graph = await compile_project(request, orchestrator=orchestrator)

        assert [table.name for table in graph.tables] == ["orders"]

    @pytest.mark.asyncio
    async def test_override_reaches_worker(
        self, make_project: Callable[..., Path], orchestrator: CompileOrchestrator
    ) -> None:
        """Test the worker compiles against the merged configuration."""
        project_dir = make_project(definitions={"orders.sql": "select 1"})
        request = CompileRequest(
            project_dir=str(project_dir),
            project_config_override={"tablePrefix": "stg", "defaultSchema": "analytics"},
        )

        graph = await compile_project(request, orchestrator=orchestrator)

        assert graph.tables[0].target.name == "stg_orders"
        assert graph.tables[0].target.schema_name == "analytics"

    @pytest.mark.asyncio
    async def test_worker_entrypoint_error(self, make_project: Callable[..., Path]) -> None:
        """Test an exception in the configured compile function raises WorkerError."""
        project_dir = make_project()
        orchestrator = CompileOrchestrator(
            settings=CompilerSettings(worker_entrypoint="json:loads", default_timeout_millis=20_000)
        )

        with pytest.raises(WorkerError) as exc_info:
            await compile_project(
                CompileRequest(project_dir=str(project_dir)), orchestrator=orchestrator
            )

        assert exc_info.value.error_type == "TypeError"


class TestCompileProjectFailures:
    """Tests for failures surfaced by compile_project."""

    @pytest.mark.asyncio
    async def test_invalid_config_spawns_nothing(self, make_project: Callable[..., Path]) -> None:
        """Test validation fails before any worker is started."""
        project_dir = make_project({"warehouse": "bigquery", "defaultSchema": "has space"})
        orchestrator = CompileOrchestrator(["/nonexistent/compile-worker"])

        with pytest.raises(InvalidConfigError) as exc_info:
            await compile_project(
                CompileRequest(project_dir=str(project_dir)), orchestrator=orchestrator
            )

        assert exc_info.value.field == "defaultSchema"

    @pytest.mark.asyncio
    async def test_missing_project(self, tmp_path: Path) -> None:
        """Test a project without dataform.json raises ConfigFileError."""
        with pytest.raises(ConfigFileError):
            await compile_project(CompileRequest(project_dir=str(tmp_path)))

    @pytest.mark.asyncio
    async def test_timeout(
        self, make_project: Callable[..., Path], worker_command: Callable[..., list[str]]
    ) -> None:
        """Test a hung worker raises CompilationTimeoutError."""
        project_dir = make_project()
        orchestrator = CompileOrchestrator(worker_command("sleep", "10"))
        request = CompileRequest(project_dir=str(project_dir), timeout_millis=150)

        with pytest.raises(CompilationTimeoutError):
            await compile_project(request, orchestrator=orchestrator)

    @pytest.mark.asyncio
    async def test_process_exit(
        self, make_project: Callable[..., Path], worker_command: Callable[..., list[str]]
    ) -> None:
        """Test a crashing worker raises ProcessExitError."""
        project_dir = make_project()
        orchestrator = CompileOrchestrator(worker_command("exit_nonzero", "5"))

        with pytest.raises(ProcessExitError) as exc_info:
            await compile_project(
                CompileRequest(project_dir=str(project_dir)), orchestrator=orchestrator
            )

        assert exc_info.value.exit_code == 5
