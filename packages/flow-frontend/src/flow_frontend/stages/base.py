"""Abstract base class and shared context for build stages.

Every stage consumes a StageTree and produces a new one in a fresh
directory; the input tree is never modified. A disabled stage returns its
input unchanged.
"""

from __future__ import annotations

import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import ClassVar

from flow_frontend.errors import ProcessError, StageError
from flow_frontend.models import StageTree, Tier
from flow_frontend.observability import stage_span
from flow_frontend.process import ProcessRunner
from flow_frontend.toolchain import InstalledToolchain


@dataclass(frozen=True)
class StageContext:
    """Everything a stage needs besides its input tree.

    Attributes:
        tier: Tier being built.
        scratch_directory: Directory receiving the stage output trees.
        runner: Runs external tools.
        toolchain: Installed toolchain (required by babel-based stages).
        source_maps: Whether tools should emit source maps.
        timeout: Timeout for each external tool invocation (None = no timeout).
    """

    tier: Tier
    scratch_directory: Path
    runner: ProcessRunner
    toolchain: InstalledToolchain | None = None
    source_maps: bool = False
    timeout: float | None = None

    def new_directory(self, prefix: str) -> Path:
        """Create an empty directory under the scratch directory."""
        self.scratch_directory.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=self.scratch_directory))


def copy_file(tree: StageTree, relative: PurePosixPath, root: Path) -> Path:
    """Copy one file of a tree to the same relative location under root."""
    target = root.joinpath(*relative.parts)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(tree.path(relative), target)
    return target


def write_text(root: Path, relative: PurePosixPath, text: str) -> Path:
    target = root.joinpath(*relative.parts)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


class Stage(ABC):
    """A toggleable transformation of a build tree.

    Subclasses implement transform(); run() handles the on/off switch,
    tracing and the conversion of low-level failures into the stage's
    error type.
    """

    name: ClassVar[str]
    error_type: ClassVar[type[StageError]]

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def run(self, tree: StageTree, context: StageContext) -> StageTree:
        """Apply the stage, or pass the tree through when disabled.

        Raises:
            StageError: The stage-specific subclass, carrying the tier.
        """
        with stage_span(self.name, tier=context.tier.value, enabled=self.enabled) as span:
            if not self.enabled:
                return tree
            output = context.new_directory(self.name)
            try:
                result = self.transform(tree, output, context)
                span.set_attribute("frontend.stage.files", len(result.files()))
                return result
            except StageError:
                raise
            except ProcessError as e:
                raise self.error_type(
                    e.user_message,
                    tier=context.tier.value,
                    diagnostics=e.stderr,
                    cause=e,
                ) from e
            except (OSError, UnicodeDecodeError) as e:
                raise self.error_type(str(e), tier=context.tier.value, cause=e) from e

    def fail(self, reason: str, context: StageContext, diagnostics: str = "") -> StageError:
        """Build this stage's error for the current tier."""
        return self.error_type(reason, tier=context.tier.value, diagnostics=diagnostics)

    @abstractmethod
    def transform(self, tree: StageTree, output: Path, context: StageContext) -> StageTree:
        """Write the transformed tree into output and return it."""
        ...
