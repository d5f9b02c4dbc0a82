"""Shared testing infrastructure for flow-frontend.

This package provides reusable test doubles and fixtures for testing the
flow-frontend packages without network access or a real node installation.

Modules:
    fixtures.toolchain: FakeProcessRunner (simulated babel and yarn), archive
        builders and an in-memory download server
    fixtures.sources: Sample web component source trees

Usage:
    In your conftest.py:
        from testing.fixtures import FakeProcessRunner, ToolchainServer

Example:
    def test_install(tmp_path):
        server = ToolchainServer.for_spec(spec, LINUX_X64)
        installer = ToolchainInstaller(
            tmp_path, runner=FakeProcessRunner(), client_factory=server.client_factory
        )
        installer.install(spec)
"""

from __future__ import annotations
