"""Build models shared by the stages and the orchestrator.

This module defines:
- Tier: The two deployment tiers (legacy ES5, modern ES6)
- BuildState: States of a FrontendToolsManager build
- StageTree: Directory tree handed from one stage to the next
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    """Deployment tier. Only the legacy tier is transpiled."""

    ES5 = "es5"
    ES6 = "es6"

    @property
    def transpiles(self) -> bool:
        return self is Tier.ES5


class BuildState(str, Enum):
    """Lifecycle of a build.

    UNINSTALLED -> INSTALLED -> TRANSPILING -> BUNDLING -> MINIFYING -> HASHING -> COMPLETE
    """

    UNINSTALLED = "uninstalled"
    INSTALLED = "installed"
    TRANSPILING = "transpiling"
    BUNDLING = "bundling"
    MINIFYING = "minifying"
    HASHING = "hashing"
    COMPLETE = "complete"


class StageTree(BaseModel):
    """A build tree: a directory plus the shell file inside it.

    Attributes:
        root: Directory holding the tree.
        shell: Path of the shell file relative to root.
        origins: Renamed files mapped to their pre-rename relative path.
            Only the hash stage renames files.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root: Path
    shell: PurePosixPath
    origins: dict[PurePosixPath, PurePosixPath] = Field(default_factory=dict)

    def files(self) -> list[PurePosixPath]:
        """All files of the tree relative to root, sorted."""
        found: list[PurePosixPath] = []
        for directory, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            relative = Path(directory).relative_to(self.root)
            for filename in filenames:
                found.append(PurePosixPath((relative / filename).as_posix()))
        return sorted(found)

    def path(self, relative: PurePosixPath) -> Path:
        return self.root.joinpath(*relative.parts)

    def logical_name(self, relative: PurePosixPath) -> PurePosixPath:
        """Pre-hash name of a file, stable across content changes."""
        return self.origins.get(relative, relative)

    def moved_to(self, root: Path) -> StageTree:
        """The same tree relocated to another directory."""
        return self.model_copy(update={"root": root})
