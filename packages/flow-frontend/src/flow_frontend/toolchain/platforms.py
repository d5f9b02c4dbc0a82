"""Node.js distribution naming per operating system and architecture."""

from __future__ import annotations

import platform
import sys
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict

_ARCHITECTURES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armv7l",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}


class NodePlatform(BaseModel):
    """Operating system/architecture pair as named by nodejs.org/dist."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    os: str
    arch: str

    @classmethod
    def current(cls) -> NodePlatform:
        """Detect the platform of the running interpreter."""
        if sys.platform.startswith("win"):
            os_name = "win"
        elif sys.platform == "darwin":
            os_name = "darwin"
        else:
            os_name = "linux"
        machine = platform.machine().lower()
        return cls(os=os_name, arch=_ARCHITECTURES.get(machine, machine))

    @property
    def is_windows(self) -> bool:
        return self.os == "win"

    def classifier(self, version: str) -> str:
        """Distribution name without extension, e.g. node-v8.11.1-linux-x64."""
        return f"node-{version}-{self.os}-{self.arch}"

    def archive_name(self, version: str) -> str:
        extension = "zip" if self.is_windows else "tar.gz"
        return f"{self.classifier(version)}.{extension}"

    def node_executable(self) -> PurePosixPath:
        """Location of the node binary inside an extracted distribution."""
        return PurePosixPath("node.exe") if self.is_windows else PurePosixPath("bin/node")
