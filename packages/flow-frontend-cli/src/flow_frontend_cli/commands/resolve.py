"""flow-frontend resolve command - Expand a symbolic URI."""

from __future__ import annotations

import click


@click.command()
@click.argument("uri")
@click.option(
    "--frontend-url",
    required=True,
    help="Replacement for the frontend:// prefix, e.g. context://frontend-es6/",
)
@click.option(
    "--context-root",
    default="",
    help="Replacement for the context:// prefix, e.g. ../",
)
@click.option(
    "--normalize",
    is_flag=True,
    default=False,
    help="Normalize the URI before resolving it.",
)
def resolve(uri: str, frontend_url: str, context_root: str, normalize: bool) -> None:
    """Resolve frontend://, context:// and base:// prefixes of URI.

    Examples:

        flow-frontend resolve frontend://src/view.html --frontend-url context://frontend-es6/ --context-root ../
    """
    from flow_frontend.uri import resolve_uri, to_normalized_uri

    if normalize:
        uri = to_normalized_uri(uri)
    click.echo(resolve_uri(uri, frontend_url, context_root))
