"""Reference compile function run by the default worker.

Resolves the project configuration and turns every ``definitions/**/*.sql``
file into a view targeting the project's default schema. It exists so the
worker pipeline is usable end to end; production workers plug in their own
compile function through ``WAREHOUSE_COMPILER_WORKER_ENTRYPOINT``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from warehouse_compiler import __version__
from warehouse_compiler.models import CompiledGraph, CompileRequest, Table, Target
from warehouse_compiler.project import resolve_project_config

DEFINITIONS_DIR = "definitions"


def _target(config: dict[str, Any], name: str) -> Target:
    schema = str(config["defaultSchema"])
    if config.get("schemaSuffix"):
        schema = f"{schema}_{config['schemaSuffix']}"
    if config.get("tablePrefix"):
        name = f"{config['tablePrefix']}_{name}"
    database = config.get("defaultDatabase")
    if database and config.get("databaseSuffix"):
        database = f"{database}_{config['databaseSuffix']}"
    return Target(database=database, schema=schema, name=name)


def reference_compile(request: CompileRequest) -> CompiledGraph:
    """Compile a project directory of plain SQL definitions.

    Args:
        request: The compile request received by the worker.

    Returns:
        CompiledGraph with one view per SQL file, ordered by path.
    """
    config = resolve_project_config(request)
    project_dir = Path(request.project_dir)
    definitions = project_dir / DEFINITIONS_DIR

    tables: list[Table] = []
    if definitions.is_dir():
        for path in sorted(definitions.rglob("*.sql")):
            tables.append(
                Table(
                    name=path.stem,
                    target=_target(config, path.stem),
                    query=path.read_text(encoding="utf-8").strip(),
                    file_name=path.relative_to(project_dir).as_posix(),
                )
            )

    return CompiledGraph(
        project_config=config,
        tables=tables,
        compiler_version=__version__,
    )
