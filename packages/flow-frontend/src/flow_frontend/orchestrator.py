"""FrontendToolsManager: install the toolchain and build both tiers.

A build collects the modern sources and the generated shell file into an
input tree, runs each tier's stage pipeline in parallel, and only when both
tiers succeeded swaps their outputs into place and returns the manifest.
A failed build leaves the previous output untouched.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path, PurePosixPath

from flow_frontend.config import DIRECTORY_NAME_PATTERN, BuildFlags, ToolchainSpec
from flow_frontend.errors import ConfigurationError, MissingSourceError, ToolchainNotInstalledError
from flow_frontend.manifest import MANIFEST_FILE_NAME, ArtifactManifest, file_key, shell_key
from flow_frontend.models import BuildState, StageTree, Tier
from flow_frontend.observability import get_logger, span
from flow_frontend.process import ProcessRunner, SubprocessRunner
from flow_frontend.source import SourceProvider, build_flags, tree_location
from flow_frontend.stages import Stage, StageContext, stages_for
from flow_frontend.toolchain import InstalledToolchain, ToolchainInstaller

SCRATCH_DIRECTORY_NAME = ".flow-frontend"

_STAGE_STATES = {
    "transpile": BuildState.TRANSPILING,
    "bundle": BuildState.BUNDLING,
    "minify": BuildState.MINIFYING,
    "hash": BuildState.HASHING,
}
_STATE_ORDER = list(BuildState)

_output_locks: dict[Path, threading.Lock] = {}
_output_locks_guard = threading.Lock()


def _output_lock(directory: Path) -> threading.Lock:
    key = directory.resolve()
    with _output_locks_guard:
        return _output_locks.setdefault(key, threading.Lock())


class FrontendToolsManager:
    """Orchestrate toolchain installation and the two-tier frontend build.

    Attributes:
        working_directory: Directory holding the toolchain, the shell file and
            scratch build trees.
        es5_directory_name: Output directory name of the legacy tier.
        es6_directory_name: Output directory name of the modern tier.
        source_provider: Supplies sources, build flags and the shell file.
        state: Current BuildState. While a build runs, the state of the
            least advanced tier.

    Example:
        >>> manager = FrontendToolsManager(
        ...     Path("target/frontend"), "frontend-es5", "frontend-es6", provider
        ... )
        >>> manager.install_frontend_tools(ToolchainSpec(node_version="v8.11.1", yarn_version="v1.6.0"))
        >>> manifest = manager.transpile_files(Path("target/classes/META-INF/resources"), False)
        >>> manifest.shell(Tier.ES5)
        PosixPath('target/classes/META-INF/resources/frontend-es5/frontend-shell.html')
    """

    def __init__(
        self,
        working_directory: Path,
        es5_directory_name: str,
        es6_directory_name: str,
        source_provider: SourceProvider,
        *,
        runner: ProcessRunner | None = None,
        installer: ToolchainInstaller | None = None,
        max_workers: int = 2,
    ) -> None:
        """Initialize the manager.

        Args:
            working_directory: Directory for the toolchain and build scratch space.
            es5_directory_name: Legacy tier directory name under the output directory.
            es6_directory_name: Modern tier directory name under the output directory.
            source_provider: Source provider collaborator.
            runner: Runs external tools. Defaults to SubprocessRunner.
            installer: Toolchain installer. Defaults to one for working_directory.
            max_workers: Tier builds run concurrently (1 = sequential).

        Raises:
            ConfigurationError: If the directory names are invalid or equal.
        """
        for field, name in (
            ("es5_directory_name", es5_directory_name),
            ("es6_directory_name", es6_directory_name),
        ):
            if not name or "/" in name or "\\" in name or name in (".", ".."):
                raise ConfigurationError(
                    f"Invalid tier directory name '{name}'",
                    field_path=field,
                    internal_details=f"expected {DIRECTORY_NAME_PATTERN}",
                )
        if es5_directory_name == es6_directory_name:
            raise ConfigurationError(
                "Tier directory names must differ",
                field_path="es6_directory_name",
            )

        self.working_directory = Path(working_directory)
        self.es5_directory_name = es5_directory_name
        self.es6_directory_name = es6_directory_name
        self.source_provider = source_provider
        self.runner: ProcessRunner = runner or SubprocessRunner()
        self.installer = installer or ToolchainInstaller(self.working_directory, runner=self.runner)
        self.max_workers = max_workers
        self._state = BuildState.UNINSTALLED
        self._tier_states: dict[Tier, BuildState] = {}
        self._toolchain: InstalledToolchain | None = None
        self._timeout: float | None = None

    @property
    def toolchain(self) -> InstalledToolchain | None:
        return self._toolchain

    @property
    def state(self) -> BuildState:
        tier_states = list(self._tier_states.values())
        if tier_states:
            return min(tier_states, key=_STATE_ORDER.index)
        return self._state

    def tier_state(self, tier: Tier) -> BuildState:
        """State of one tier of the running build, or the manager state between builds."""
        return self._tier_states.get(tier, self._state)

    def tier_directory_name(self, tier: Tier) -> str:
        return self.es5_directory_name if tier is Tier.ES5 else self.es6_directory_name

    def install_frontend_tools(self, spec: ToolchainSpec) -> InstalledToolchain:
        """Install node, yarn and the build packages.

        Args:
            spec: Versions, proxies and install timeout. The timeout also
                bounds each tool invocation of later builds.

        Raises:
            ToolchainInstallError: If installation fails.
        """
        self._toolchain = self.installer.install(spec)
        self._timeout = spec.timeout
        self._state = BuildState.INSTALLED
        return self._toolchain

    def transpile_files(self, output_directory: Path, generate_source_maps: bool) -> ArtifactManifest:
        """Build both tiers into output_directory.

        Args:
            output_directory: Receives <es5 dir>/, <es6 dir>/ and the manifest file.
            generate_source_maps: Whether babel emits source maps.

        Returns:
            Manifest of every produced file, keyed by tier and role.

        Raises:
            ToolchainNotInstalledError: If install_frontend_tools() was not called.
            MissingSourceError: If the source directory or shell file is missing.
            StageError: The first stage failure, with its stage and tier.
        """
        if self._toolchain is None:
            raise ToolchainNotInstalledError()

        output_directory = Path(output_directory)
        with _output_lock(output_directory), span(
            "frontend.build",
            attributes={"frontend.output_directory": str(output_directory)},
        ):
            try:
                manifest = self._build(output_directory, generate_source_maps)
            except BaseException:
                self._state = BuildState.INSTALLED
                raise
            else:
                self._state = BuildState.COMPLETE
            finally:
                self._tier_states = {}
            return manifest

    def _collect_sources(self, scratch: Path) -> tuple[StageTree, BuildFlags]:
        provider = self.source_provider
        source_directory = Path(provider.get_modern_source_directory())
        if not source_directory.is_dir():
            raise MissingSourceError(source_directory)
        if not any(source_directory.iterdir()):
            raise MissingSourceError(source_directory, "is empty")

        flags = build_flags(provider)
        shell_name = provider.create_shell_file(self.working_directory)
        shell_path = self.working_directory / shell_name
        if not shell_path.is_file():
            raise MissingSourceError(shell_path)

        root = scratch / "input"
        location = tree_location(source_directory, self.working_directory)
        shutil.copytree(source_directory, root.joinpath(*location.parts))
        shell = PurePosixPath(shell_name)
        shutil.copyfile(shell_path, root.joinpath(*shell.parts))

        get_logger().info(
            "sources_collected",
            source_directory=str(source_directory),
            shell=shell_name,
            bundle=flags.bundle,
            minify=flags.minify,
            hash=flags.hash,
        )
        return StageTree(root=root, shell=shell), flags

    def _build_tier(
        self,
        tier: Tier,
        tree: StageTree,
        flags: BuildFlags,
        scratch: Path,
        generate_source_maps: bool,
    ) -> StageTree:
        context = StageContext(
            tier=tier,
            scratch_directory=scratch / tier.value,
            runner=self.runner,
            toolchain=self._toolchain,
            source_maps=generate_source_maps,
            timeout=self._timeout,
        )
        stages: list[Stage] = stages_for(tier, flags)
        for stage in stages:
            self._tier_states[tier] = _STAGE_STATES[stage.name]
            tree = stage.run(tree, context)
        return tree

    def _build(self, output_directory: Path, generate_source_maps: bool) -> ArtifactManifest:
        self.working_directory.mkdir(parents=True, exist_ok=True)
        output_directory.mkdir(parents=True, exist_ok=True)
        scratch_root = self.working_directory / SCRATCH_DIRECTORY_NAME
        scratch_root.mkdir(exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix="build-", dir=scratch_root))
        staged: dict[Tier, Path] = {}

        try:
            tree, flags = self._collect_sources(scratch)
            tiers = (Tier.ES5, Tier.ES6)
            self._tier_states = {tier: BuildState.INSTALLED for tier in tiers}
            with ThreadPoolExecutor(max_workers=max(1, self.max_workers)) as pool:
                futures = {
                    tier: pool.submit(self._build_tier, tier, tree, flags, scratch, generate_source_maps)
                    for tier in tiers
                }
                results = {tier: futures[tier].result() for tier in tiers}

            for tier, result in results.items():
                staging = Path(tempfile.mkdtemp(prefix=f".{tier.value}-", dir=output_directory))
                os.rmdir(staging)
                shutil.copytree(result.root, staging)
                staged[tier] = staging

            final = {tier: output_directory / self.tier_directory_name(tier) for tier in tiers}
            for tier in tiers:
                _swap(staged.pop(tier), final[tier])

            manifest = _manifest(results, final, flags)
            manifest.write(output_directory / MANIFEST_FILE_NAME)
        finally:
            for leftover in staged.values():
                shutil.rmtree(leftover, ignore_errors=True)
            shutil.rmtree(scratch, ignore_errors=True)

        get_logger().info(
            "frontend_build_completed",
            output_directory=str(output_directory),
            artifacts=len(manifest),
        )
        return manifest


def _swap(staging: Path, target: Path) -> None:
    """Replace target with staging, keeping target intact until the rename."""
    previous: Path | None = None
    if target.exists():
        previous = target.with_name(f".{target.name}.previous")
        if previous.exists():
            shutil.rmtree(previous)
        os.replace(target, previous)
    os.replace(staging, target)
    if previous is not None:
        shutil.rmtree(previous, ignore_errors=True)


def _manifest(
    results: dict[Tier, StageTree],
    directories: dict[Tier, Path],
    flags: BuildFlags,
) -> ArtifactManifest:
    entries: dict[str, Path] = {}
    for tier, tree in results.items():
        final = tree.moved_to(directories[tier])
        entries[shell_key(tier)] = final.path(final.shell)
        for relative in final.files():
            if relative == final.shell:
                continue
            entries[file_key(tier, final.logical_name(relative))] = final.path(relative)
    return ArtifactManifest(entries=entries, tier_directories=directories, flags=flags)
