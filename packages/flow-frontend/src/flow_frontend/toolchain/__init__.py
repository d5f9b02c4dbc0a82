"""Toolchain acquisition: node runtime, yarn and build packages."""

from __future__ import annotations

from flow_frontend.toolchain.installer import InstalledToolchain, ToolchainInstaller
from flow_frontend.toolchain.platforms import NodePlatform

__all__ = [
    "InstalledToolchain",
    "NodePlatform",
    "ToolchainInstaller",
]
