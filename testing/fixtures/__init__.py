"""Shared test fixtures for flow-frontend packages.

Exports:
    Toolchain doubles:
        FakeProcessRunner: ProcessRunner simulating babel and yarn
        RecordedCall: A command received by FakeProcessRunner
        ToolchainServer: In-memory node/yarn download site
        LINUX_X64: NodePlatform used by the archive builders
        node_archive, yarn_archive, shasums: Distribution builders

    Source trees:
        WEB_COMPONENTS: Sample Polymer-style application
        write_web_components: Write a source tree to disk
"""

from __future__ import annotations

from testing.fixtures.sources import WEB_COMPONENTS, write_web_components
from testing.fixtures.toolchain import (
    LINUX_X64,
    FakeProcessRunner,
    RecordedCall,
    ToolchainServer,
    node_archive,
    shasums,
    yarn_archive,
)

__all__ = [
    # Toolchain doubles
    "FakeProcessRunner",
    "RecordedCall",
    "ToolchainServer",
    "LINUX_X64",
    "node_archive",
    "yarn_archive",
    "shasums",
    # Source trees
    "WEB_COMPONENTS",
    "write_web_components",
]
