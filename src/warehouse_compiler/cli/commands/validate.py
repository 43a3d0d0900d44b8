"""warehouse-compiler validate - Check a project's configuration.

Loads dataform.json, merges the override and runs the validation rules
without spawning a worker.
"""

from __future__ import annotations

from typing import Any

import click

from warehouse_compiler.cli.errors import (
    handle_compiler_error,
    handle_validation_error,
    parse_override,
)
from warehouse_compiler.cli.output import success


@click.command()
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
def validate(project_dir: str, override: dict[str, Any], schema_suffix: str | None) -> None:
    """Validate a project's configuration.

    Examples:

        warehouse-compiler validate

        warehouse-compiler validate path/to/project --override '{"warehouse": "snowflake"}'
    """
    # Import here to avoid heavy imports at CLI startup
    from pydantic import ValidationError as PydanticValidationError

    from warehouse_compiler.errors import CompilerError
    from warehouse_compiler.models import CompileRequest
    from warehouse_compiler.project import resolve_project_config

    try:
        request = CompileRequest(
            project_dir=project_dir,
            project_config_override=override,
            schema_suffix_override=schema_suffix,
        )
        config = resolve_project_config(request)
    except PydanticValidationError as e:
        handle_validation_error(e)
    except CompilerError as e:
        handle_compiler_error(e)

    success(f"Project configuration valid (warehouse: {config['warehouse']})")
