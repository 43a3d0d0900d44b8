"""Tests for the validate command."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from click.testing import CliRunner

from warehouse_compiler.cli.commands.validate import validate


class TestValidateCommand:
    """Tests for validate command."""

    def test_valid_project(self, cli_runner: CliRunner, make_project: Callable[..., Path]) -> None:
        """Test a valid project reports its warehouse."""
        project_dir = make_project()
        result = cli_runner.invoke(validate, [str(project_dir)])
        assert result.exit_code == 0
        assert "warehouse: bigquery" in result.output

    def test_invalid_project(
        self, cli_runner: CliRunner, make_project: Callable[..., Path]
    ) -> None:
        """Test a validation failure exits 1 with the rule's message."""
        project_dir = make_project({"warehouse": "bigquery"})
        result = cli_runner.invoke(validate, [str(project_dir)])
        assert result.exit_code == 1
        assert "Missing mandatory property: defaultSchema." in result.output

    def test_override_applied(
        self, cli_runner: CliRunner, make_project: Callable[..., Path]
    ) -> None:
        """Test --override is merged before validation."""
        project_dir = make_project()
        result = cli_runner.invoke(
            validate, [str(project_dir), "--override", '{"warehouse": "snowflake"}']
        )
        assert result.exit_code == 0
        assert "warehouse: snowflake" in result.output

    def test_invalid_schema_suffix(
        self, cli_runner: CliRunner, make_project: Callable[..., Path]
    ) -> None:
        """Test --schema-suffix values are validated."""
        project_dir = make_project()
        result = cli_runner.invoke(validate, [str(project_dir), "--schema-suffix", "pr.42"])
        assert result.exit_code == 1
        assert "schemaSuffix" in result.output

    def test_missing_config(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test a directory without dataform.json exits 2."""
        result = cli_runner.invoke(validate, [str(tmp_path)])
        assert result.exit_code == 2
        assert "Unable to read project configuration" in result.output

    def test_override_not_json(
        self, cli_runner: CliRunner, make_project: Callable[..., Path]
    ) -> None:
        """Test a malformed --override is a usage error."""
        project_dir = make_project()
        result = cli_runner.invoke(validate, [str(project_dir), "--override", "{oops"])
        assert result.exit_code == 2
