"""flow-frontend build command - Build the ES5 and ES6 tiers."""

from __future__ import annotations

from pathlib import Path

import click

from flow_frontend_cli.errors import EXIT_SYSTEM_ERROR, CLIError, load_config
from flow_frontend_cli.output import print_manifest, print_tier_summary, success


@click.command()
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=False),
    default="./frontend.yaml",
    help="Path to frontend.yaml [default: ./frontend.yaml]",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(),
    default=None,
    help="Output directory [default: build.output_directory of frontend.yaml]",
)
@click.option(
    "--source-maps/--no-source-maps",
    default=None,
    help="Emit source maps [default: build.source_maps of frontend.yaml]",
)
def build(file_path: str, output_path: str | None, source_maps: bool | None) -> None:
    """Transpile, bundle, minify and hash the frontend sources.

    Installs the toolchain when needed, builds both tiers and prints the
    resulting artifact manifest.

    Examples:

        flow-frontend build

        flow-frontend build --output dist/ --source-maps
    """
    config = load_config(Path(file_path))

    # Import here to avoid heavy imports at CLI startup
    from flow_frontend import (
        DirectorySourceProvider,
        FrontendError,
        FrontendToolsManager,
        ToolchainInstallError,
    )

    output = Path(output_path) if output_path is not None else config.build.output_directory
    manager = FrontendToolsManager(
        config.build.working_directory,
        config.build.es5_directory_name,
        config.build.es6_directory_name,
        DirectorySourceProvider.from_config(config.source),
    )
    try:
        manager.install_frontend_tools(config.toolchain.to_spec())
        manifest = manager.transpile_files(
            output,
            config.build.source_maps if source_maps is None else source_maps,
        )
    except ToolchainInstallError as e:
        raise CLIError(e.user_message, exit_code=EXIT_SYSTEM_ERROR) from None
    except FrontendError as e:
        raise CLIError(e.user_message) from None
    except PermissionError:
        raise CLIError(f"Cannot write to: {output}", exit_code=EXIT_SYSTEM_ERROR) from None

    print_manifest(manifest)
    print_tier_summary(manifest)
    success(f"Built {len(manifest)} artifacts into {output}")
