"""Shared pytest fixtures for flow-frontend tests.

Builds run against FakeProcessRunner and an in-memory download site, so no
test needs network access or a node installation.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

from flow_frontend.config import ToolchainSpec
from flow_frontend.models import StageTree, Tier
from flow_frontend.orchestrator import FrontendToolsManager
from flow_frontend.source import DirectorySourceProvider
from flow_frontend.stages import StageContext
from flow_frontend.toolchain import InstalledToolchain, ToolchainInstaller
from testing.fixtures import LINUX_X64, FakeProcessRunner, ToolchainServer, write_web_components


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def toolchain_spec() -> ToolchainSpec:
    """The node/yarn pair used by the reference build."""
    return ToolchainSpec(node_version="v8.11.1", yarn_version="v1.6.0", install_timeout_seconds=0)


@pytest.fixture
def fake_runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def toolchain_server(toolchain_spec: ToolchainSpec) -> ToolchainServer:
    return ToolchainServer.for_spec(toolchain_spec, LINUX_X64)


@pytest.fixture
def working_directory(tmp_path: Path) -> Path:
    return tmp_path / "work"


@pytest.fixture
def installer(
    working_directory: Path,
    fake_runner: FakeProcessRunner,
    toolchain_server: ToolchainServer,
) -> ToolchainInstaller:
    return ToolchainInstaller(
        working_directory,
        runner=fake_runner,
        client_factory=toolchain_server.client_factory,
        node_platform=LINUX_X64,
    )


@pytest.fixture
def installed_toolchain(installer: ToolchainInstaller, toolchain_spec: ToolchainSpec) -> InstalledToolchain:
    return installer.install(toolchain_spec)


@pytest.fixture
def source_directory(tmp_path: Path) -> Path:
    """Sample web components in <tmp>/frontend."""
    return write_web_components(tmp_path / "frontend")


@pytest.fixture
def make_manager(
    working_directory: Path,
    source_directory: Path,
    fake_runner: FakeProcessRunner,
    installer: ToolchainInstaller,
    toolchain_spec: ToolchainSpec,
) -> Callable[..., FrontendToolsManager]:
    """Factory for installed managers building the sample sources.

    Example:
        manager = make_manager(bundle=False, minify=True, hash=True)
    """

    def _make(*, bundle: bool = True, minify: bool = True, hash: bool = True) -> FrontendToolsManager:
        provider = DirectorySourceProvider(source_directory, bundle=bundle, minify=minify, hash=hash)
        manager = FrontendToolsManager(
            working_directory,
            "frontend-es5",
            "frontend-es6",
            provider,
            runner=fake_runner,
            installer=installer,
        )
        manager.install_frontend_tools(toolchain_spec)
        return manager

    return _make


@pytest.fixture
def stage_context(
    tmp_path: Path,
    fake_runner: FakeProcessRunner,
    installed_toolchain: InstalledToolchain,
) -> Callable[..., StageContext]:
    """Factory for stage contexts backed by the fake toolchain."""

    def _make(tier: Tier = Tier.ES5, *, source_maps: bool = False) -> StageContext:
        return StageContext(
            tier=tier,
            scratch_directory=tmp_path / "scratch" / tier.value,
            runner=fake_runner,
            toolchain=installed_toolchain,
            source_maps=source_maps,
        )

    return _make


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[..., StageTree]:
    """Factory writing files into a fresh directory and returning them as a StageTree.

    Example:
        tree = make_tree({"shell.html": "<p>x</p>", "src/a.js": "let a;"}, shell="shell.html")
    """
    counter = iter(range(1_000_000))

    def _make(files: dict[str, str | bytes], *, shell: str = "shell.html") -> StageTree:
        root = write_web_components(tmp_path / "trees" / f"tree-{next(counter)}", files)
        return StageTree(root=root, shell=shell)

    return _make
