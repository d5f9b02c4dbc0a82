"""Translation of symbolic frontend URIs into browser-loadable URLs.

This module provides:
- resolve_uri: Rewrite frontend://, context:// and base:// prefixes
- UriResolver: Resolver bound to an explicit ResolverContext
- to_normalized_uri: RFC 3986 path normalization aware of the symbolic schemes
- resolve_markup: Resolve every href/src attribute of an HTML document
- replace_url_attributes: Rewrite href/src values, quoted or not

Supported schemes:
- frontend:// resolves to the URL where the compiled web components live.
  ES6 capable browsers and ES5 browsers receive different frontend URLs.
- context:// resolves to the application context root.
- base:// resolves to the base URI of the page.

Any other scheme (http://, https://, ...) is passed through unmodified.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import SplitResult, urlsplit

from pydantic import BaseModel, ConfigDict, Field

FRONTEND_PROTOCOL_PREFIX = "frontend://"
CONTEXT_PROTOCOL_PREFIX = "context://"
BASE_PROTOCOL_PREFIX = "base://"

SYMBOLIC_SCHEMES = frozenset({"frontend", "context", "base"})

_HOSTNAME_RE = re.compile(
    r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*\.?$"
)
_IPV6_RE = re.compile(r"^\[[0-9A-Fa-f:.]+\]$")

URL_ATTRIBUTE_RE = re.compile(
    r"""(?P<prefix>\s(?:href|src)\s*=\s*)"""
    r"""(?:(?P<quote>["'])(?P<value>.*?)(?P=quote)|(?P<bare>[^\s"'=<>`]+))""",
    re.IGNORECASE,
)
_NEEDS_QUOTES_RE = re.compile(r"""[\s"'=<>`]""")


def replace_url_attributes(markup: str, replace: Callable[[str], str | None]) -> str:
    """Pass every href/src attribute value of markup through replace.

    Quoted and unquoted values are both handled and keep their quoting; an
    unquoted value is quoted when its replacement needs it. replace returns
    None to leave an attribute untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        quote = match.group("quote")
        value = match.group("value") if quote else match.group("bare")
        replaced = replace(value)
        if replaced is None:
            return match.group(0)
        if not quote and (not replaced or _NEEDS_QUOTES_RE.search(replaced)):
            quote = '"'
        quote = quote or ""
        return f"{match.group('prefix')}{quote}{replaced}{quote}"

    return URL_ATTRIBUTE_RE.sub(_replace, markup)


class ResolverContext(BaseModel):
    """Contextual paths used to resolve symbolic URIs.

    Attributes:
        frontend_url: URL of the compiled frontend files for the current browser.
            May itself use the context:// or base:// scheme.
        servlet_to_context_root: Relative path from the servlet path to the
            context root.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    frontend_url: str = Field(..., description="URL of the compiled frontend files")
    servlet_to_context_root: str = Field(
        ...,
        description="Relative path from the servlet path to the context root",
    )

    def protocol_mapping(self) -> tuple[tuple[str, str], ...]:
        """Return the ordered (prefix, replacement) pairs applied by resolve_uri."""
        return (
            (FRONTEND_PROTOCOL_PREFIX, self.frontend_url),
            (CONTEXT_PROTOCOL_PREFIX, self.servlet_to_context_root),
            (BASE_PROTOCOL_PREFIX, ""),
        )


def _process_protocol(protocol: str, replacement: str, uri: str) -> str:
    if uri.startswith(protocol):
        return replacement + uri[len(protocol) :]
    return uri


def resolve_uri(
    uri: str | None,
    frontend_url: str,
    servlet_to_context_root: str,
) -> str | None:
    """Translate a symbolic URI to a URL that can be loaded by the browser.

    The prefixes are checked in the fixed order frontend, context, base and
    each check sees the result of the previous one. Replacement is literal
    string concatenation, no separator is inserted.

    Args:
        uri: The URI to resolve. None is passed through.
        frontend_url: Replacement for the frontend:// prefix.
        servlet_to_context_root: Replacement for the context:// prefix.

    Returns:
        The resolved URI, or None if uri is None.

    Example:
        >>> resolve_uri("frontend://bower_components/x.html", "/static/frontend/", "/app/")
        '/static/frontend/bower_components/x.html'
        >>> resolve_uri("https://example.com/x.js", "/f/", "/c/")
        'https://example.com/x.js'
    """
    if uri is None:
        return None

    processed = _process_protocol(FRONTEND_PROTOCOL_PREFIX, frontend_url, uri)
    processed = _process_protocol(CONTEXT_PROTOCOL_PREFIX, servlet_to_context_root, processed)
    return _process_protocol(BASE_PROTOCOL_PREFIX, "", processed)


class UriResolver:
    """Resolver for symbolic URIs bound to an explicit context.

    Example:
        >>> resolver = UriResolver(
        ...     ResolverContext(frontend_url="context://frontend-es6/", servlet_to_context_root="../")
        ... )
        >>> resolver.resolve("frontend://src/view.html")
        '../frontend-es6/src/view.html'
    """

    def __init__(self, context: ResolverContext) -> None:
        self.context = context

    def resolve(self, uri: str | None) -> str | None:
        """Resolve a single URI, see resolve_uri()."""
        return resolve_uri(uri, self.context.frontend_url, self.context.servlet_to_context_root)

    def resolve_markup(self, markup: str) -> str:
        """Resolve every href/src attribute of an HTML document."""
        return resolve_markup(
            markup,
            self.context.frontend_url,
            self.context.servlet_to_context_root,
        )


def resolve_markup(markup: str, frontend_url: str, servlet_to_context_root: str) -> str:
    """Rewrite the href and src attribute values of markup through resolve_uri().

    Args:
        markup: HTML text, typically the shell file.
        frontend_url: Replacement for the frontend:// prefix.
        servlet_to_context_root: Replacement for the context:// prefix.

    Returns:
        The markup with symbolic URIs resolved.
    """

    return replace_url_attributes(
        markup,
        lambda value: resolve_uri(value, frontend_url, servlet_to_context_root),
    )


def _normalize_path(path: str) -> str:
    """Remove '.' and '..' segments and redundant separators from a URI path.

    Leading '..' segments that cannot be resolved are kept.
    """
    if not path:
        return path

    absolute = path.startswith("/")
    segments = path.split("/")
    trailing = path.endswith("/") or segments[-1] in (".", "..")

    out: list[str] = []
    for segment in segments:
        if segment in ("", "."):
            continue
        if segment == "..":
            if out and out[-1] != "..":
                out.pop()
            else:
                out.append("..")
            continue
        out.append(segment)

    result = "/".join(out)
    if absolute:
        result = "/" + result
    if trailing and out:
        result += "/"
    return result


def _host_of(netloc: str) -> str | None:
    """Return the server host of an authority, or None for registry-based authorities."""
    hostport = netloc.rpartition("@")[2]
    if hostport.startswith("["):
        literal, bracket, tail = hostport.partition("]")
        if not bracket or (tail and not (tail.startswith(":") and tail[1:].isdigit())):
            return None
        return f"{literal}]" if _IPV6_RE.match(f"{literal}]") else None
    host, _, port = hostport.partition(":")
    if port and not port.isdigit():
        return None
    if host and _HOSTNAME_RE.match(host):
        return host
    return None


def to_normalized_uri(uri: str | SplitResult) -> str:
    """Return a normalized version of the URI, converted to a string.

    The generic normalization is not aware that the frontend, base and context
    schemes have no real authority, so two malformed results are patched:

    - frontend://./foo.html keeps its './' authority and becomes frontend://foo.html
    - context://host/../bar cannot collapse the leading '..' and becomes context://bar

    Opaque URIs (a scheme not followed by '/', e.g. mailto:a@b) are returned
    unchanged. A relative path whose first segment contains ':' keeps a
    leading './' so that segment is not read as a scheme.

    Args:
        uri: The URI to normalize, as a string or a parsed SplitResult.

    Returns:
        The normalized URI. Never raises; unparseable input is returned as-is.

    Example:
        >>> to_normalized_uri("frontend://./foo.html")
        'frontend://foo.html'
        >>> to_normalized_uri("http://example.com/a/./b/../c.html")
        'http://example.com/a/c.html'
    """
    text = uri.geturl() if isinstance(uri, SplitResult) else uri
    try:
        parts = urlsplit(text)
    except ValueError:
        return text

    scheme = parts.scheme
    rest = text[len(scheme) + 1 :] if scheme else text
    if scheme and not rest.startswith("/"):
        return text
    has_authority = rest.startswith("//")

    normalized = f"{scheme}:" if scheme else ""
    if has_authority:
        normalized += f"//{parts.netloc}"
    path = _normalize_path(parts.path)
    if not scheme and not has_authority and ":" in path.partition("/")[0]:
        path = f"./{path}"
    normalized += path
    if parts.query:
        normalized += f"?{parts.query}"
    if parts.fragment:
        normalized += f"#{parts.fragment}"

    if scheme.lower() in SYMBOLIC_SCHEMES and has_authority:
        host = _host_of(parts.netloc)
        if parts.netloc == "." and host is None:
            return normalized.replace("//./", "//")
        if path.startswith("/../") and host is not None:
            return normalized.replace(f"{host}/../", "")

    return normalized
