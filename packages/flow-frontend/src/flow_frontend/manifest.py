"""ArtifactManifest: the build output contract read by the serving layer.

Key scheme:
- "<tier>:shell" is the shell file of a tier (the bundle when bundling).
- "<tier>:file:<path>" is any other produced file, <path> being its
  pre-hash POSIX path relative to the tier directory.

Keys do not change when content hashing renames a file, so the serving
layer can look files up by logical name and receive the fingerprinted path.
"""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from flow_frontend.config import BuildFlags
from flow_frontend.models import Tier

MANIFEST_FILE_NAME = "frontend-manifest.json"
MANIFEST_VERSION = "1.0.0"


def shell_key(tier: Tier) -> str:
    return f"{tier.value}:shell"


def file_key(tier: Tier, relative: PurePosixPath | str) -> str:
    return f"{tier.value}:file:{PurePosixPath(relative).as_posix()}"


class ArtifactManifest(BaseModel):
    """Mapping of logical output keys to produced files.

    Attributes:
        version: Manifest format version.
        entries: Logical key -> produced file, in stage-completion order.
        tier_directories: Tier -> directory holding the tier's artifacts.
        flags: Stages that were enabled for the build.

    Example:
        >>> manifest = ArtifactManifest.load(Path("out/frontend-manifest.json"))
        >>> manifest.shell(Tier.ES6)
        PosixPath('out/frontend-es6/frontend-shell.html')
        >>> manifest[file_key(Tier.ES5, "frontend/app.js")]
        PosixPath('out/frontend-es5/frontend/app.4b1f0a9c3e.js')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(default=MANIFEST_VERSION)
    entries: dict[str, Path] = Field(default_factory=dict)
    tier_directories: dict[Tier, Path] = Field(default_factory=dict)
    flags: BuildFlags = Field(default_factory=BuildFlags)

    def __getitem__(self, key: str) -> Path:
        return self.entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> Path | None:
        return self.entries.get(key)

    def keys(self) -> list[str]:
        return list(self.entries)

    def shell(self, tier: Tier) -> Path:
        """Shell file of a tier."""
        return self.entries[shell_key(tier)]

    def for_tier(self, tier: Tier) -> dict[str, Path]:
        """Entries belonging to one tier."""
        prefix = f"{tier.value}:"
        return {k: v for k, v in self.entries.items() if k.startswith(prefix)}

    def write(self, path: Path) -> Path:
        """Write the manifest as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2) + "\n", encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> ArtifactManifest:
        """Read a manifest written by write()."""
        return cls.model_validate(json.loads(path.read_text(encoding="utf-8")))
