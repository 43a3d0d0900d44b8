"""Command line interface for warehouse-compiler."""

from __future__ import annotations

from warehouse_compiler import __version__

__all__: list[str] = ["__version__"]
