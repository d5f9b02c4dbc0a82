"""flow-frontend install command - Acquire the node/yarn toolchain."""

from __future__ import annotations

from pathlib import Path

import click

from flow_frontend_cli.errors import EXIT_SYSTEM_ERROR, CLIError, load_config
from flow_frontend_cli.output import info, success


@click.command()
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=False),
    default="./frontend.yaml",
    help="Path to frontend.yaml [default: ./frontend.yaml]",
)
def install(file_path: str) -> None:
    """Install node, yarn and the babel build packages.

    Downloads the versions pinned in frontend.yaml into the working
    directory. Already installed versions are reused without network access.

    Examples:

        flow-frontend install

        flow-frontend install --file web/frontend.yaml
    """
    config = load_config(Path(file_path))

    # Import here to avoid heavy imports at CLI startup
    from flow_frontend import ToolchainInstaller, ToolchainInstallError

    spec = config.toolchain.to_spec()
    info(f"Installing node {spec.node_version} and yarn {spec.yarn_version}...")
    try:
        toolchain = ToolchainInstaller(config.build.working_directory).install(spec)
    except ToolchainInstallError as e:
        raise CLIError(e.user_message, exit_code=EXIT_SYSTEM_ERROR) from None

    success(f"Toolchain installed in {toolchain.working_directory}")
