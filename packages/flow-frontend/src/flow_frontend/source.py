"""Source provider interface and a directory-backed implementation.

The orchestrator only depends on the SourceProvider protocol. How the modern
sources are discovered (unpacked from dependency archives, checked out,
generated) is the provider's business.
"""

from __future__ import annotations

import posixpath
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from flow_frontend.config import BuildFlags, SourceSection
from flow_frontend.errors import MissingSourceError
from flow_frontend.observability import get_logger


@runtime_checkable
class SourceProvider(Protocol):
    """Supplies the modern source tree, the build flags and the shell file."""

    def get_modern_source_directory(self) -> Path:
        """Directory containing the ES6 web component sources."""
        ...

    def should_bundle(self) -> bool: ...

    def should_minify(self) -> bool: ...

    def should_hash(self) -> bool: ...

    def create_shell_file(self, working_directory: Path) -> str:
        """Write the entry shell file into working_directory and return its file name."""
        ...


def build_flags(provider: SourceProvider) -> BuildFlags:
    """Query the three stage toggles from a provider."""
    return BuildFlags(
        bundle=provider.should_bundle(),
        minify=provider.should_minify(),
        hash=provider.should_hash(),
    )


def tree_location(source_directory: Path, working_directory: Path) -> PurePosixPath:
    """Location of the source directory inside a build tree.

    Sources inside the working directory keep their relative path, so shell
    imports written relative to the working directory stay valid. Sources
    elsewhere are placed under their directory name.
    """
    source = source_directory.resolve()
    working = working_directory.resolve()
    if source.is_relative_to(working) and source != working:
        return PurePosixPath(source.relative_to(working).as_posix())
    return PurePosixPath(source.name)


class DirectorySourceProvider:
    """SourceProvider over a plain directory of web component sources.

    The generated shell imports the configured documents, or every .html
    file at the top of the source directory.

    Example:
        >>> provider = DirectorySourceProvider(Path("frontend"), bundle=True)
        >>> provider.create_shell_file(Path("target/frontend"))
        'frontend-shell.html'
    """

    def __init__(
        self,
        source_directory: Path,
        *,
        bundle: bool = True,
        minify: bool = True,
        hash: bool = True,
        shell_file_name: str = "frontend-shell.html",
        imports: list[str] | None = None,
    ) -> None:
        self.source_directory = Path(source_directory)
        self.bundle = bundle
        self.minify = minify
        self.hash = hash
        self.shell_file_name = shell_file_name
        self.imports = imports

    @classmethod
    def from_config(cls, section: SourceSection) -> DirectorySourceProvider:
        """Create a provider from the source: section of frontend.yaml."""
        return cls(
            section.directory,
            bundle=section.bundle,
            minify=section.minify,
            hash=section.hash,
            shell_file_name=section.shell_file_name,
            imports=section.imports,
        )

    def get_modern_source_directory(self) -> Path:
        return self.source_directory

    def should_bundle(self) -> bool:
        return self.bundle

    def should_minify(self) -> bool:
        return self.minify

    def should_hash(self) -> bool:
        return self.hash

    def _imports(self) -> list[str]:
        if self.imports is not None:
            return list(self.imports)
        if not self.source_directory.is_dir():
            raise MissingSourceError(self.source_directory)
        return sorted(p.name for p in self.source_directory.glob("*.html") if p.is_file())

    def create_shell_file(self, working_directory: Path) -> str:
        location = tree_location(self.source_directory, working_directory)
        lines = ["<!-- Generated by flow-frontend. Do not edit. -->"]
        for document in self._imports():
            href = posixpath.normpath(f"{location}/{document}")
            lines.append(f'<link rel="import" href="{href}">')

        working_directory.mkdir(parents=True, exist_ok=True)
        shell = working_directory / self.shell_file_name
        shell.write_text("\n".join(lines) + "\n", encoding="utf-8")
        get_logger().info("shell_file_created", path=str(shell), imports=len(lines) - 1)
        return self.shell_file_name
