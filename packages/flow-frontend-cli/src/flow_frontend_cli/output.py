"""Rich console output for flow-frontend-cli.

Status lines, the artifact manifest and a per-tier build summary. Colors
respect the NO_COLOR environment variable and the --no-color flag.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from flow_frontend import ArtifactManifest

_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Console, without colors when asked to or when NO_COLOR is set."""
    disabled = no_color or _force_no_color
    return Console(force_terminal=False if disabled else None, no_color=disabled)


console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Toolchain installed")
        ✓ Toolchain installed
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with red X.

    Example:
        >>> error("transpile stage (es5) failed: SyntaxError")
        ✗ transpile stage (es5) failed: SyntaxError
    """
    console.print(f"[red]✗[/red] {message}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    console.print(message, **kwargs)


def print_manifest(manifest: ArtifactManifest) -> None:
    """Print the manifest as highlighted JSON, the format it is written in."""
    console.print_json(manifest.model_dump_json())


def tier_summary(manifest: ArtifactManifest) -> Table:
    """One row per built tier: its directory, shell and artifact count."""
    table = Table(title="Build summary", show_lines=False)
    table.add_column("Tier", no_wrap=True)
    table.add_column("Directory")
    table.add_column("Shell")
    table.add_column("Artifacts", justify="right")
    for tier, directory in sorted(manifest.tier_directories.items(), key=lambda item: item[0].value):
        entries = manifest.for_tier(tier)
        shell = manifest.get(f"{tier.value}:shell")
        table.add_row(
            tier.value,
            str(directory),
            shell.name if shell is not None else "-",
            str(len(entries)),
        )
    return table


def print_tier_summary(manifest: ArtifactManifest) -> None:
    console.print(tier_summary(manifest))


def set_no_color(no_color: bool) -> None:
    """Replace the module-level console to enable/disable colors."""
    global console
    console = create_console(no_color=no_color)
