"""Shared test fixtures for flow-frontend-cli tests.

Provides CliRunner fixtures, a sample project with frontend.yaml and an
offline toolchain so commands never reach the network or run node.
"""

from __future__ import annotations

import functools
import sys
from pathlib import Path

import pytest
import structlog
import yaml
from click.testing import CliRunner

import flow_frontend
from flow_frontend import orchestrator
from flow_frontend.config import ToolchainSpec
from flow_frontend.toolchain import ToolchainInstaller
from testing.fixtures import LINUX_X64, FakeProcessRunner, ToolchainServer, write_web_components

FRONTEND_YAML_FILENAME = "frontend.yaml"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    structlog.configure(
        processors=[structlog.stdlib.add_log_level, structlog.dev.ConsoleRenderer(colors=False)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory with frontend.yaml and sample web components.

    Returns:
        Path to frontend.yaml.
    """
    write_web_components(tmp_path / "frontend")
    config_file = tmp_path / FRONTEND_YAML_FILENAME
    config_file.write_text(
        yaml.safe_dump(
            {
                "toolchain": {"node_version": "v8.11.1", "yarn_version": "v1.6.0"},
                "build": {"working_directory": "target/frontend", "output_directory": "target/out"},
                "source": {"directory": "frontend"},
            }
        )
    )
    return config_file


@pytest.fixture
def toolchain_server() -> ToolchainServer:
    return ToolchainServer.for_spec(ToolchainSpec(node_version="v8.11.1", yarn_version="v1.6.0"), LINUX_X64)


@pytest.fixture
def offline_toolchain(
    monkeypatch: pytest.MonkeyPatch,
    toolchain_server: ToolchainServer,
) -> FakeProcessRunner:
    """Make the commands install from toolchain_server and run the fake babel/yarn.

    Returns:
        The FakeProcessRunner used by the commands.
    """
    runner = FakeProcessRunner()
    installer_factory = functools.partial(
        ToolchainInstaller,
        runner=runner,
        client_factory=toolchain_server.client_factory,
        node_platform=LINUX_X64,
    )
    monkeypatch.setattr(flow_frontend, "ToolchainInstaller", installer_factory)
    monkeypatch.setattr(orchestrator, "ToolchainInstaller", installer_factory)
    monkeypatch.setattr(orchestrator, "SubprocessRunner", lambda: runner)
    return runner
