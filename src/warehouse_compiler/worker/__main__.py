"""Run a compile worker: ``python -m warehouse_compiler.worker``."""

from __future__ import annotations

from warehouse_compiler.worker.main import main

if __name__ == "__main__":
    main()
