"""ToolchainInstaller: acquire the node runtime, yarn and the build packages.

Layout under the working directory:

    <working>/node/node-<version>/   extracted Node.js distribution
    <working>/node/yarn-<version>/   extracted yarn distribution
    <working>/node_modules/          build packages (babel and presets)
    <working>/package.json           manifest of the build packages

Every artifact is downloaded or built in a staging directory next to its
final location and moved into place with os.replace(), so a failed or
interrupted install never leaves a half-written version behind.
"""

from __future__ import annotations

import hashlib
import json
import os
import shutil
import tarfile
import tempfile
import threading
import time
import zipfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from flow_frontend.config import ToolchainSpec
from flow_frontend.errors import ProcessError, ToolchainInstallError
from flow_frontend.observability import get_logger, span
from flow_frontend.process import ProcessRunner, SubprocessRunner, check_result
from flow_frontend.toolchain.platforms import NodePlatform

ClientFactory = Callable[..., httpx.Client]

STAMP_FILE_NAME = ".flow-frontend-stamp"
BUILD_PACKAGES_LABEL = "build packages"

_install_locks: dict[Path, threading.Lock] = {}
_install_locks_guard = threading.Lock()


def _install_lock(directory: Path) -> threading.Lock:
    """Return the lock serializing installs into one working directory."""
    key = directory.resolve()
    with _install_locks_guard:
        return _install_locks.setdefault(key, threading.Lock())


class InstalledToolchain(BaseModel):
    """Location of an installed toolchain.

    Attributes:
        working_directory: Directory the toolchain was installed into.
        node_executable: Path of the node binary.
        yarn_script: Path of yarn's bin/yarn.js.
        node_version: Installed node version.
        yarn_version: Installed yarn version.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    working_directory: Path
    node_executable: Path
    yarn_script: Path
    node_version: str
    yarn_version: str

    @property
    def node_modules(self) -> Path:
        return self.working_directory / "node_modules"

    @property
    def babel_script(self) -> Path:
        return self.node_modules / "@babel" / "cli" / "bin" / "babel.js"

    def package_path(self, name: str) -> Path:
        """Path of an installed build package, e.g. "@babel/preset-env"."""
        return self.node_modules.joinpath(*name.split("/"))

    def node_command(self, script: Path, *args: str) -> list[str]:
        """Command line running a node script with the installed runtime."""
        return [str(self.node_executable), str(script), *args]

    def environment(self) -> dict[str, str]:
        """Environment for child processes with the node binary first on PATH."""
        path = os.environ.get("PATH", "")
        node_dir = str(self.node_executable.parent)
        return {"PATH": f"{node_dir}{os.pathsep}{path}" if path else node_dir}


class _Deadline:
    """Overall time budget of one install call."""

    def __init__(self, timeout: float | None) -> None:
        self.timeout = timeout
        self._expires = time.monotonic() + timeout if timeout else None

    def remaining(self) -> float | None:
        if self._expires is None:
            return None
        left = self._expires - time.monotonic()
        if left <= 0:
            raise TimeoutError(f"install timeout of {self.timeout:g}s exceeded")
        return left


def _describe(error: BaseException) -> str:
    if isinstance(error, httpx.TimeoutException):
        return "download timed out"
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code} for {error.request.url}"
    if isinstance(error, httpx.HTTPError):
        return f"download failed ({error.__class__.__name__})"
    if isinstance(error, (tarfile.TarError, zipfile.BadZipFile)):
        return "archive extraction failed"
    return str(error) or error.__class__.__name__


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for block in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(block)
    return digest.hexdigest()


def _verify_checksum(archive: Path, sums: str) -> None:
    """Check an archive against a SHASUMS256.txt listing."""
    for line in sums.splitlines():
        parts = line.split()
        if len(parts) == 2 and parts[1].lstrip("*") == archive.name:
            if parts[0].lower() != _sha256(archive):
                raise ValueError(f"checksum mismatch for {archive.name}")
            return
    raise ValueError(f"no checksum published for {archive.name}")


def _extract(archive: Path, destination: Path) -> Path:
    """Extract an archive and return its single top-level directory."""
    destination.mkdir(parents=True)
    if archive.name.endswith(".zip"):
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)
    else:
        with tarfile.open(archive, "r:*") as tf:
            tf.extractall(destination, filter="data")

    entries = list(destination.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return destination


def _commit(source: Path, target: Path, staging: Path) -> None:
    """Move source to target, replacing target as a whole."""
    if target.exists():
        os.replace(target, staging / f".previous-{target.name}")
    os.replace(source, target)


def _package_json(dependencies: dict[str, str]) -> str:
    document = {
        "name": "flow-frontend-build",
        "private": True,
        "license": "UNLICENSED",
        "devDependencies": dict(sorted(dependencies.items())),
    }
    return json.dumps(document, indent=2) + "\n"


class ToolchainInstaller:
    """Install a pinned node/yarn pair and the build packages.

    Installs into one working directory are serialized; calling install()
    again with an already installed ToolchainSpec performs no network access.

    Example:
        >>> installer = ToolchainInstaller(Path("target/frontend"))
        >>> toolchain = installer.install(ToolchainSpec(node_version="v8.11.1", yarn_version="v1.6.0"))
        >>> toolchain.node_executable
        PosixPath('target/frontend/node/node-v8.11.1/bin/node')
    """

    def __init__(
        self,
        working_directory: Path,
        *,
        runner: ProcessRunner | None = None,
        client_factory: ClientFactory | None = None,
        node_platform: NodePlatform | None = None,
    ) -> None:
        """Initialize the installer.

        Args:
            working_directory: Directory receiving node/, node_modules/ and package.json.
            runner: Runs yarn. Defaults to SubprocessRunner.
            client_factory: Creates the httpx client used for downloads. Called
                with proxy, timeout and follow_redirects keyword arguments.
            node_platform: Platform whose node distribution is installed.
        """
        self.working_directory = Path(working_directory)
        self.install_directory = self.working_directory / "node"
        self.runner: ProcessRunner = runner or SubprocessRunner()
        self.client_factory: ClientFactory = client_factory or httpx.Client
        self.node_platform = node_platform or NodePlatform.current()

    def install(self, spec: ToolchainSpec) -> InstalledToolchain:
        """Install the toolchain described by spec, reusing what is already installed.

        Args:
            spec: Versions, proxies and timeout.

        Returns:
            The installed toolchain.

        Raises:
            ToolchainInstallError: On network, checksum, extraction, package
                install failure or timeout.
        """
        attributes = {
            "toolchain.node_version": spec.node_version,
            "toolchain.yarn_version": spec.yarn_version,
            "toolchain.working_directory": str(self.working_directory),
        }
        with _install_lock(self.working_directory), span("toolchain.install", attributes=attributes):
            deadline = _Deadline(spec.timeout)
            self.install_directory.mkdir(parents=True, exist_ok=True)

            node_executable = self._install_node(spec, deadline)
            yarn_script = self._install_yarn(spec, deadline)
            toolchain = InstalledToolchain(
                working_directory=self.working_directory,
                node_executable=node_executable,
                yarn_script=yarn_script,
                node_version=spec.node_version,
                yarn_version=spec.yarn_version,
            )
            self._install_build_packages(spec, toolchain, deadline)
            return toolchain

    @contextmanager
    def _staging(self) -> Iterator[Path]:
        staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.install_directory))
        try:
            yield staging
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def _client(self, spec: ToolchainSpec, url: str) -> httpx.Client:
        entry = spec.proxy.proxy_for_url(url)
        kwargs: dict[str, Any] = {"timeout": spec.timeout, "follow_redirects": True}
        if entry is not None:
            kwargs["proxy"] = entry.proxy_url()
        return self.client_factory(**kwargs)

    def _download(self, client: httpx.Client, url: str, destination: Path, deadline: _Deadline) -> Path:
        logger = get_logger()
        logger.info("toolchain_download_started", url=url)
        with client.stream("GET", url, timeout=deadline.remaining()) as response:
            response.raise_for_status()
            with destination.open("wb") as f:
                for chunk in response.iter_bytes():
                    deadline.remaining()
                    f.write(chunk)
        logger.info("toolchain_download_completed", url=url, bytes=destination.stat().st_size)
        return destination

    def _install_node(self, spec: ToolchainSpec, deadline: _Deadline) -> Path:
        target = self.install_directory / f"node-{spec.node_version}"
        executable = target / self.node_platform.node_executable()
        if executable.exists():
            get_logger().info("node_already_installed", version=spec.node_version, path=str(target))
            return executable

        label = f"node {spec.node_version}"
        base_url = f"{spec.node_download_root}{spec.node_version}/"
        archive_name = self.node_platform.archive_name(spec.node_version)
        try:
            with self._staging() as staging, self._client(spec, base_url) as client:
                archive = self._download(client, base_url + archive_name, staging / archive_name, deadline)
                sums = client.get(base_url + "SHASUMS256.txt", timeout=deadline.remaining())
                sums.raise_for_status()
                _verify_checksum(archive, sums.text)
                extracted = _extract(archive, staging / "extract")
                if not (extracted / self.node_platform.node_executable()).exists():
                    raise ValueError(f"{archive_name} does not contain a node executable")
                _commit(extracted, target, staging)
        except (httpx.HTTPError, OSError, tarfile.TarError, zipfile.BadZipFile, ValueError) as e:
            raise ToolchainInstallError(label, _describe(e), cause=e) from e

        get_logger().info("node_installed", version=spec.node_version, path=str(target))
        return executable

    def _install_yarn(self, spec: ToolchainSpec, deadline: _Deadline) -> Path:
        target = self.install_directory / f"yarn-{spec.yarn_version}"
        script = target / "bin" / "yarn.js"
        if script.exists():
            get_logger().info("yarn_already_installed", version=spec.yarn_version, path=str(target))
            return script

        label = f"yarn {spec.yarn_version}"
        archive_name = f"yarn-{spec.yarn_version}.tar.gz"
        url = f"{spec.yarn_download_root}{spec.yarn_version}/{archive_name}"
        try:
            with self._staging() as staging, self._client(spec, url) as client:
                archive = self._download(client, url, staging / archive_name, deadline)
                extracted = _extract(archive, staging / "extract")
                if not (extracted / "bin" / "yarn.js").exists():
                    raise ValueError(f"{archive_name} does not contain bin/yarn.js")
                _commit(extracted, target, staging)
        except (httpx.HTTPError, OSError, tarfile.TarError, zipfile.BadZipFile, ValueError) as e:
            raise ToolchainInstallError(label, _describe(e), cause=e) from e

        get_logger().info("yarn_installed", version=spec.yarn_version, path=str(target))
        return script

    def _install_build_packages(
        self,
        spec: ToolchainSpec,
        toolchain: InstalledToolchain,
        deadline: _Deadline,
    ) -> None:
        package_json = _package_json(spec.build_dependencies)
        fingerprint = hashlib.sha256(
            f"{package_json}{spec.node_version}{spec.yarn_version}".encode()
        ).hexdigest()
        stamp = toolchain.node_modules / STAMP_FILE_NAME
        if stamp.exists() and stamp.read_text().strip() == fingerprint:
            get_logger().info("build_packages_up_to_date", packages=len(spec.build_dependencies))
            return
        if not spec.build_dependencies:
            return

        command = toolchain.node_command(
            toolchain.yarn_script,
            "install",
            "--non-interactive",
            "--no-progress",
            "--no-lockfile",
            "--ignore-engines",
            *spec.proxy.yarn_arguments(),
        )
        env = {**toolchain.environment(), **spec.proxy.environment()}
        try:
            with self._staging() as staging:
                (staging / "package.json").write_text(package_json)
                check_result(self.runner.run(command, cwd=staging, env=env, timeout=deadline.remaining()))
                built = staging / "node_modules"
                if not built.is_dir():
                    raise ValueError("yarn did not produce node_modules")
                (built / STAMP_FILE_NAME).write_text(fingerprint)
                _commit(built, toolchain.node_modules, staging)
                (self.working_directory / "package.json").write_text(package_json)
        except ProcessError as e:
            raise ToolchainInstallError(
                BUILD_PACKAGES_LABEL,
                e.user_message,
                cause=e,
                internal_details=e.stderr or None,
            ) from e
        except (OSError, ValueError) as e:
            raise ToolchainInstallError(BUILD_PACKAGES_LABEL, _describe(e), cause=e) from e

        get_logger().info("build_packages_installed", packages=sorted(spec.build_dependencies))
