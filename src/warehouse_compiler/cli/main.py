"""CLI entry point for warehouse-compiler.

Defines the main CLI group using a LazyGroup so that ``--help`` stays fast:
command modules (and the compiler stack behind them) are only imported when
a command is actually invoked.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from warehouse_compiler.cli import __version__
from warehouse_compiler.cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Attributes:
        lazy_subcommands: Mapping of command names to ``module.attribute`` paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, importing its module on first use."""
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_name, attr_name = self.lazy_subcommands[cmd_name].rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "compile": "warehouse_compiler.cli.commands.compile.compile_cmd",
    "validate": "warehouse_compiler.cli.commands.validate.validate",
}


def _configure_logging(ctx: click.Context, param: click.Parameter, value: str) -> None:
    # Logs go to stderr so stdout only carries command output
    from warehouse_compiler.observability import configure_logging

    configure_logging(log_level=value)


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="warehouse-compiler")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Minimum level of the structured logs written to stderr.",
    expose_value=False,
    callback=_configure_logging,
)
def cli() -> None:
    """Warehouse Compiler - isolated compilation of warehouse projects.

    Compiles a project in a separate worker process under a deadline.

    **Getting Started:**

    - `warehouse-compiler validate` - Check dataform.json
    - `warehouse-compiler compile` - Compile the project to a graph
    """
    pass


if __name__ == "__main__":
    cli()
