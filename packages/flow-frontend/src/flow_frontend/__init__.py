"""flow-frontend: Two-tier frontend build pipeline for web component applications.

This package provides:
- UriResolver: Expansion of frontend://, context:// and base:// URIs
- ToolchainInstaller: Pinned node/yarn acquisition plus babel build packages
- FrontendToolsManager: Transpile -> Bundle -> Minify -> Hash for the ES5
  and ES6 tiers, producing an ArtifactManifest
- FrontendBuildConfig: Pydantic schema for frontend.yaml
"""

from __future__ import annotations

__version__ = "0.1.0"

# Configuration models
from flow_frontend.config import (
    BuildFlags,
    FrontendBuildConfig,
    ProxyConfig,
    ProxyEntry,
    ToolchainSpec,
)

# Error types
from flow_frontend.errors import (
    BundlingError,
    ConfigurationError,
    FrontendError,
    HashingError,
    MinificationError,
    MissingSourceError,
    ProcessError,
    ProcessTimeoutError,
    StageError,
    ToolchainInstallError,
    ToolchainNotInstalledError,
    TranspilationError,
)

# Build output
from flow_frontend.manifest import MANIFEST_FILE_NAME, ArtifactManifest
from flow_frontend.models import BuildState, Tier
from flow_frontend.orchestrator import FrontendToolsManager
from flow_frontend.process import ProcessResult, ProcessRunner, SubprocessRunner
from flow_frontend.source import DirectorySourceProvider, SourceProvider
from flow_frontend.toolchain import InstalledToolchain, ToolchainInstaller

# URI resolution
from flow_frontend.uri import ResolverContext, UriResolver, resolve_uri, to_normalized_uri

__all__ = [
    "__version__",
    # Orchestration
    "FrontendToolsManager",
    "ArtifactManifest",
    "MANIFEST_FILE_NAME",
    "BuildState",
    "Tier",
    # Sources
    "SourceProvider",
    "DirectorySourceProvider",
    # Toolchain
    "ToolchainInstaller",
    "InstalledToolchain",
    "ProcessRunner",
    "ProcessResult",
    "SubprocessRunner",
    # URI resolution
    "ResolverContext",
    "UriResolver",
    "resolve_uri",
    "to_normalized_uri",
    # Configuration
    "FrontendBuildConfig",
    "ToolchainSpec",
    "ProxyConfig",
    "ProxyEntry",
    "BuildFlags",
    # Errors
    "FrontendError",
    "ConfigurationError",
    "ToolchainInstallError",
    "ToolchainNotInstalledError",
    "MissingSourceError",
    "StageError",
    "TranspilationError",
    "BundlingError",
    "MinificationError",
    "HashingError",
    "ProcessError",
    "ProcessTimeoutError",
]
