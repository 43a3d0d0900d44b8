"""warehouse-compiler compile - Compile a project in an isolated worker."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import click

from warehouse_compiler.cli.errors import (
    EXIT_SYSTEM_ERROR,
    CLIError,
    handle_compiler_error,
    handle_validation_error,
    parse_override,
)
from warehouse_compiler.cli.output import print_json, success


@click.command("compile")
@click.argument(
    "project_dir",
    type=click.Path(file_okay=False),
    default=".",
)
@click.option(
    "--override",
    "override",
    default=None,
    callback=parse_override,
    help="JSON object merged over the project configuration.",
)
@click.option(
    "--schema-suffix",
    "schema_suffix",
    default=None,
    help="Schema suffix applied unless --override sets schemaSuffix.",
)
@click.option(
    "-t",
    "--timeout-millis",
    "timeout_millis",
    type=int,
    default=None,
    help="Worker deadline in milliseconds [default: 5000]",
)
@click.option(
    "--use-main",
    is_flag=True,
    default=False,
    help="Decode the worker result as a main execution result.",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the compiled graph to this file instead of stdout.",
)
def compile_cmd(
    project_dir: str,
    override: dict[str, Any],
    schema_suffix: str | None,
    timeout_millis: int | None,
    use_main: bool,
    output_path: str | None,
) -> None:
    """Compile a project to its graph.

    The project is validated first, then compiled in a separate worker
    process that is killed if it misses the deadline.

    Examples:

        warehouse-compiler compile

        warehouse-compiler compile path/to/project --timeout-millis 30000

        warehouse-compiler compile --schema-suffix ci --output build/graph.json
    """
    # Import here to avoid heavy imports at CLI startup
    from pydantic import ValidationError as PydanticValidationError

    from warehouse_compiler.compiler import compile_project
    from warehouse_compiler.errors import CompilerError
    from warehouse_compiler.models import CompileRequest

    try:
        request = CompileRequest(
            project_dir=project_dir,
            project_config_override=override,
            schema_suffix_override=schema_suffix,
            timeout_millis=timeout_millis,
            use_main=use_main,
        )
        graph = asyncio.run(compile_project(request))
    except PydanticValidationError as e:
        handle_validation_error(e)
    except CompilerError as e:
        handle_compiler_error(e)

    document = graph.model_dump(mode="json", by_alias=True)

    if output_path is None:
        print_json(document)
        return

    output = Path(output_path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(graph.model_dump_json(by_alias=True, indent=2))
    except OSError as e:
        raise CLIError(
            f"Cannot write to: {output_path} ({e})", exit_code=EXIT_SYSTEM_ERROR
        ) from None

    success(f"Compiled {len(graph.tables)} table(s) to {output}")
