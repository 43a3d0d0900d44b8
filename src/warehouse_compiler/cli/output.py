"""Rich console output utilities for the warehouse-compiler CLI.

Supports colored success and error messages and respects the NO_COLOR
environment variable.
"""

from __future__ import annotations

import json
import os
from typing import Any

from rich.console import Console

# Rich respects NO_COLOR itself, but --no-color must also work
_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console instance with appropriate color settings.

    Args:
        no_color: If True, disable colored output. Also respects NO_COLOR env var.

    Returns:
        Configured Console instance.
    """
    force_terminal = None
    if no_color or _force_no_color:
        force_terminal = False
    return Console(force_terminal=force_terminal, no_color=no_color or _force_no_color)


console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Compiled 3 tables")
        ✓ Compiled 3 tables
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with red X.

    Example:
        >>> error("Missing mandatory property: warehouse.")
        ✗ Missing mandatory property: warehouse.
    """
    console.print(f"[red]✗[/red] {message}", **kwargs)


def print_json(data: dict[str, Any], **kwargs: Any) -> None:
    """Print JSON data with syntax highlighting."""
    console.print_json(json.dumps(data), **kwargs)


def set_no_color(no_color: bool) -> None:
    """Update the global console to enable/disable colors.

    Note:
        This updates the module-level console instance.
    """
    global console
    console = create_console(no_color=no_color)
