"""Pydantic configuration models for flow-frontend.

This module provides:
- ProxyEntry / ProxyConfig: Proxies used when downloading the toolchain
- ToolchainSpec: Pinned node/yarn versions and build packages
- BuildFlags: Optional stage toggles reported by the source provider
- FrontendBuildConfig: Root model for frontend.yaml
"""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

DEFAULT_NODE_VERSION = "v18.20.2"
DEFAULT_YARN_VERSION = "v1.22.22"
DEFAULT_NODE_DOWNLOAD_ROOT = "https://nodejs.org/dist/"
DEFAULT_YARN_DOWNLOAD_ROOT = "https://github.com/yarnpkg/yarn/releases/download/"

# Packages installed next to the toolchain; the stages call babel from here.
DEFAULT_BUILD_DEPENDENCIES: dict[str, str] = {
    "@babel/cli": "7.24.1",
    "@babel/core": "7.24.3",
    "@babel/preset-env": "7.24.3",
    "babel-preset-minify": "0.5.2",
}

DIRECTORY_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"


class ProxyEntry(BaseModel):
    """A single proxy definition.

    Attributes:
        id: Identifier of the proxy (informational).
        protocol: URL scheme the proxy applies to ("http" or "https").
        host: Proxy host.
        port: Proxy port.
        username: Optional proxy user.
        password: Optional proxy password.
        non_proxy_hosts: '|' separated host globs that bypass the proxy.

    Example:
        >>> entry = ProxyEntry(id="corp", protocol="https", host="proxy.local", port=3128)
        >>> entry.proxy_url()
        'http://proxy.local:3128'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default="default", min_length=1, description="Proxy identifier")
    protocol: str = Field(default="http", pattern=r"^https?$", description="Scheme proxied")
    host: str = Field(..., min_length=1, description="Proxy host")
    port: int = Field(..., ge=1, le=65535, description="Proxy port")
    username: str | None = Field(default=None, description="Proxy user")
    password: SecretStr | None = Field(default=None, description="Proxy password")
    non_proxy_hosts: str | None = Field(
        default=None,
        description="'|' separated host globs that bypass the proxy",
    )

    def proxy_url(self) -> str:
        """Return the proxy as a URL, including credentials when configured."""
        credentials = ""
        if self.username:
            credentials = quote(self.username, safe="")
            if self.password is not None:
                credentials += ":" + quote(self.password.get_secret_value(), safe="")
            credentials += "@"
        return f"http://{credentials}{self.host}:{self.port}"

    def is_non_proxy_host(self, host: str) -> bool:
        """Check whether a host is excluded from this proxy."""
        if not self.non_proxy_hosts:
            return False
        patterns = [p.strip() for p in self.non_proxy_hosts.split("|") if p.strip()]
        return any(fnmatch(host.lower(), p.lower()) for p in patterns)


class ProxyConfig(BaseModel):
    """Ordered list of proxies, possibly empty."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    proxies: tuple[ProxyEntry, ...] = Field(default=(), description="Configured proxies")

    def proxy_for_url(self, url: str) -> ProxyEntry | None:
        """Return the first proxy matching the URL scheme that does not exclude its host."""
        parts = urlsplit(url)
        for entry in self.proxies:
            if entry.protocol == parts.scheme and not entry.is_non_proxy_host(parts.hostname or ""):
                return entry
        return None

    def yarn_arguments(self) -> list[str]:
        """Return yarn command line proxy options."""
        args: list[str] = []
        for protocol, option in (("http", "--proxy"), ("https", "--https-proxy")):
            entry = next((p for p in self.proxies if p.protocol == protocol), None)
            if entry is not None:
                args.extend([option, entry.proxy_url()])
        return args

    def environment(self) -> dict[str, str]:
        """Return proxy environment variables for child processes (yarn)."""
        env: dict[str, str] = {}
        no_proxy: list[str] = []
        for entry in self.proxies:
            key = "HTTPS_PROXY" if entry.protocol == "https" else "HTTP_PROXY"
            env.setdefault(key, entry.proxy_url())
            if entry.non_proxy_hosts:
                no_proxy.extend(
                    p.strip().lstrip("*") for p in entry.non_proxy_hosts.split("|") if p.strip()
                )
        if no_proxy:
            env["NO_PROXY"] = ",".join(dict.fromkeys(no_proxy))
        return env


def _normalize_version(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("version must not be empty")
    return value if value.startswith("v") else f"v{value}"


class ToolchainSpec(BaseModel):
    """Pinned runtime/package-manager pair and the build packages installed with it.

    Versions are normalized to a leading "v". An install timeout of 0 means
    no timeout.

    Example:
        >>> spec = ToolchainSpec(node_version="8.11.1", yarn_version="v1.6.0")
        >>> spec.node_version
        'v8.11.1'
        >>> spec.timeout is None
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    node_version: str = Field(default=DEFAULT_NODE_VERSION, description="Node.js version")
    yarn_version: str = Field(default=DEFAULT_YARN_VERSION, description="Yarn version")
    proxy: ProxyConfig = Field(default_factory=ProxyConfig, description="Download proxies")
    install_timeout_seconds: int = Field(
        default=0,
        ge=0,
        description="Timeout for every download and package install (0 = no timeout)",
    )
    build_dependencies: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_BUILD_DEPENDENCIES),
        description="npm packages (name -> version) required by the build stages",
    )
    node_download_root: str = Field(default=DEFAULT_NODE_DOWNLOAD_ROOT)
    yarn_download_root: str = Field(default=DEFAULT_YARN_DOWNLOAD_ROOT)

    @field_validator("node_version", "yarn_version")
    @classmethod
    def normalize_version(cls, v: str) -> str:
        """Ensure versions carry the leading 'v' used by the download sites."""
        return _normalize_version(v)

    @field_validator("node_download_root", "yarn_download_root")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Download roots are joined with relative paths."""
        return v if v.endswith("/") else f"{v}/"

    @property
    def timeout(self) -> float | None:
        """Timeout in seconds, or None when unlimited."""
        return float(self.install_timeout_seconds) or None

    @property
    def cache_key(self) -> str:
        """Identity of the installed toolchain."""
        return f"node-{self.node_version}_yarn-{self.yarn_version}"


class BuildFlags(BaseModel):
    """Optional stages requested for a build."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    bundle: bool = False
    minify: bool = False
    hash: bool = False


class ToolchainSection(BaseModel):
    """toolchain: section of frontend.yaml."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    node_version: str = DEFAULT_NODE_VERSION
    yarn_version: str = DEFAULT_YARN_VERSION
    proxies: list[ProxyEntry] = Field(default_factory=list)
    install_timeout_seconds: int = Field(default=0, ge=0)
    build_dependencies: dict[str, str] | None = None

    def to_spec(self) -> ToolchainSpec:
        """Build the immutable ToolchainSpec for an install call."""
        extra: dict[str, Any] = {}
        if self.build_dependencies is not None:
            extra["build_dependencies"] = self.build_dependencies
        return ToolchainSpec(
            node_version=self.node_version,
            yarn_version=self.yarn_version,
            proxy=ProxyConfig(proxies=tuple(self.proxies)),
            install_timeout_seconds=self.install_timeout_seconds,
            **extra,
        )


class BuildSection(BaseModel):
    """build: section of frontend.yaml."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    working_directory: Path = Path("target/frontend")
    output_directory: Path = Path("target/frontend-out")
    es5_directory_name: str = Field(default="frontend-es5", pattern=DIRECTORY_NAME_PATTERN)
    es6_directory_name: str = Field(default="frontend-es6", pattern=DIRECTORY_NAME_PATTERN)
    source_maps: bool = False

    @model_validator(mode="after")
    def tier_directories_differ(self) -> BuildSection:
        """The two tiers write to disjoint directories."""
        if self.es5_directory_name == self.es6_directory_name:
            raise ValueError("es5_directory_name and es6_directory_name must differ")
        return self


class SourceSection(BaseModel):
    """source: section of frontend.yaml."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    directory: Path = Path("src/main/webapp/frontend")
    bundle: bool = True
    minify: bool = True
    hash: bool = True
    shell_file_name: str = Field(default="frontend-shell.html", pattern=DIRECTORY_NAME_PATTERN)
    imports: list[str] | None = Field(
        default=None,
        description="Imports placed in the shell file, relative to the source directory",
    )


class FrontendBuildConfig(BaseModel):
    """Root configuration model for frontend.yaml.

    Relative paths are resolved against the directory containing the file
    when loaded with from_yaml().

    Example:
        >>> config = FrontendBuildConfig.from_yaml("frontend.yaml")
        >>> config.toolchain.to_spec().node_version
        'v8.11.1'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    toolchain: ToolchainSection = Field(default_factory=ToolchainSection)
    build: BuildSection = Field(default_factory=BuildSection)
    source: SourceSection = Field(default_factory=SourceSection)

    @classmethod
    def from_yaml(cls, path: str | Path) -> FrontendBuildConfig:
        """Load and validate FrontendBuildConfig from a YAML file.

        Args:
            path: Path to frontend.yaml.

        Returns:
            Validated config with paths made absolute.

        Raises:
            FileNotFoundError: If file doesn't exist.
            yaml.YAMLError: If YAML syntax is invalid.
            pydantic.ValidationError: If schema validation fails.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        with path.open("r") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        return cls.model_validate(data).relative_to(path.parent.resolve())

    def relative_to(self, base: Path) -> FrontendBuildConfig:
        """Return a copy with relative directories resolved against base."""
        build = self.build.model_copy(
            update={
                "working_directory": base / self.build.working_directory,
                "output_directory": base / self.build.output_directory,
            }
        )
        source = self.source.model_copy(update={"directory": base / self.source.directory})
        return self.model_copy(update={"build": build, "source": source})
