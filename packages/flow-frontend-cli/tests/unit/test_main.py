"""Unit tests for the CLI entry point."""

from __future__ import annotations

from click.testing import CliRunner

from flow_frontend_cli import __version__
from flow_frontend_cli.main import LAZY_COMMANDS, cli


class TestCli:
    """Tests for the main command group."""

    def test_help_lists_commands(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("install", "build", "resolve"):
            assert name in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_command(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["deploy"])
        assert result.exit_code != 0

    def test_lazy_commands_resolve(self, cli_runner: CliRunner) -> None:
        for name in LAZY_COMMANDS:
            result = cli_runner.invoke(cli, [name, "--help"])
            assert result.exit_code == 0, result.output
