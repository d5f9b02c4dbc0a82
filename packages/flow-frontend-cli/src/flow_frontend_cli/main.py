"""CLI entry point for flow-frontend.

Commands are loaded lazily so that --help does not import the build
pipeline and its dependencies.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from flow_frontend_cli import __version__
from flow_frontend_cli.output import set_no_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that imports a command module only when the command is used.

    Attributes:
        lazy_subcommands: Mapping of command names to "module.attribute" paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd
        if cmd_name not in self.lazy_subcommands:
            return None

        module_name, attr_name = self.lazy_subcommands[cmd_name].rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "install": "flow_frontend_cli.commands.install.install",
    "build": "flow_frontend_cli.commands.build.build",
    "resolve": "flow_frontend_cli.commands.resolve.resolve",
}


def _configure_logging(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if not value:
        return
    from flow_frontend.observability import configure_logging

    configure_logging(log_level="DEBUG", json_format=False)


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="flow-frontend")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Log build progress.",
    expose_value=False,
    callback=_configure_logging,
)
def cli() -> None:
    """Flow Frontend - two-tier web component build pipeline.

    Installs a pinned node/yarn toolchain and builds ES5 and ES6 variants
    of the frontend sources configured in frontend.yaml.

    **Getting Started:**

    - `flow-frontend install` - Download node, yarn and babel
    - `flow-frontend build` - Transpile, bundle, minify and hash both tiers
    - `flow-frontend resolve` - Expand a frontend:// or context:// URI
    """
    pass


if __name__ == "__main__":
    cli()
