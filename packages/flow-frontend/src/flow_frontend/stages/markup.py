"""Reference scanning and rewriting in HTML and JavaScript sources.

The stages only need the references between files of a build tree:
HTML imports, script sources, href/src attributes and ES module specifiers.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Iterator
from pathlib import PurePosixPath

from flow_frontend.uri import replace_url_attributes

IMPORT_LINK_RE = re.compile(r"<link\b[^>]*?\brel\s*=\s*[\"']?import[\"']?[^>]*>", re.IGNORECASE)
SCRIPT_RE = re.compile(r"<script\b([^>]*)>(.*?)</script\s*>", re.IGNORECASE | re.DOTALL)
JS_SPECIFIER_RE = re.compile(
    r"""((?:\bimport|\bexport)\s*(?:[\w*{}\s,$]+?\s*from\s*)?|\bimport\s*\(\s*)(["'])([^"'\n]+)\2"""
)
SOURCE_MAPPING_RE = re.compile(r"(//# sourceMappingURL=)(\S+)")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")

CLASSIC_SCRIPT_TYPES = frozenset({"", "text/javascript", "application/javascript"})
SCRIPT_TYPES = CLASSIC_SCRIPT_TYPES | {"module"}


def attribute(tag: str, name: str) -> str | None:
    """Return the value of an attribute in a start tag, or None."""
    match = re.search(
        rf"""\b{name}\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""",
        tag,
        re.IGNORECASE,
    )
    if match is None:
        return None
    return next(group for group in match.groups() if group is not None)


def script_type(attributes: str) -> str:
    return (attribute(attributes, "type") or "").strip().lower()


def is_local_reference(url: str) -> bool:
    """Whether a URL points at a file of the same tree (relative, no scheme)."""
    url = url.strip()
    if not url or url.startswith(("/", "#", "?", "{{", "[[")):
        return False
    return _SCHEME_RE.match(url) is None


def split_suffix(url: str) -> tuple[str, str]:
    """Split a URL into its path and its ?query#fragment suffix."""
    for index, char in enumerate(url):
        if char in "?#":
            return url[:index], url[index:]
    return url, ""


def resolve_reference(directory: PurePosixPath, url: str) -> PurePosixPath | None:
    """Resolve a local URL found in directory to a tree-relative path.

    Returns None for non-local URLs and URLs escaping the tree root.
    """
    if not is_local_reference(url):
        return None
    path, _ = split_suffix(url.strip())
    if not path:
        return None
    joined = posixpath.normpath(posixpath.join(directory.as_posix(), path))
    if joined == ".." or joined.startswith("../"):
        return None
    return PurePosixPath(joined)


def relative_url(target: PurePosixPath, directory: PurePosixPath) -> str:
    """URL of target as seen from a document located in directory."""
    return posixpath.relpath(target.as_posix(), directory.as_posix() or ".")


def rebase_urls(markup: str, source: PurePosixPath, destination: PurePosixPath) -> str:
    """Rewrite local href/src values written in source to be relative to destination."""
    if source == destination:
        return markup

    def _rebase(url: str) -> str | None:
        target = resolve_reference(source, url)
        if target is None:
            return None
        _, suffix = split_suffix(url.strip())
        return relative_url(target, destination) + suffix

    return replace_url_attributes(markup, _rebase)


def rewrite_html_references(
    markup: str,
    directory: PurePosixPath,
    rename: Callable[[PurePosixPath], PurePosixPath | None],
) -> str:
    """Point href/src attributes at renamed files.

    Args:
        markup: HTML text of a document located in directory.
        directory: Directory of the document, relative to the tree root.
        rename: Returns the new tree-relative path of a file, or None if unchanged.
    """

    def _rewrite(url: str) -> str | None:
        target = resolve_reference(directory, url)
        renamed = rename(target) if target is not None else None
        if renamed is None:
            return None
        path, suffix = split_suffix(url.strip())
        return posixpath.join(posixpath.dirname(path), renamed.name) + suffix

    return replace_url_attributes(markup, _rewrite)


def rewrite_js_references(
    source: str,
    directory: PurePosixPath,
    rename: Callable[[PurePosixPath], PurePosixPath | None],
) -> str:
    """Point relative ES module specifiers and the source map comment at renamed files."""

    def _specifier(match: re.Match[str]) -> str:
        specifier = match.group(3)
        if not specifier.startswith(("./", "../")):
            return match.group(0)
        target = resolve_reference(directory, specifier)
        renamed = rename(target) if target is not None else None
        if renamed is None:
            return match.group(0)
        new_specifier = posixpath.join(posixpath.dirname(specifier), renamed.name)
        return f"{match.group(1)}{match.group(2)}{new_specifier}{match.group(2)}"

    def _mapping(match: re.Match[str]) -> str:
        target = resolve_reference(directory, match.group(2))
        renamed = rename(target) if target is not None else None
        if renamed is None:
            return match.group(0)
        return f"{match.group(1)}{renamed.name}"

    return SOURCE_MAPPING_RE.sub(_mapping, JS_SPECIFIER_RE.sub(_specifier, source))


def inline_scripts(markup: str) -> Iterator[re.Match[str]]:
    """Inline <script> blocks (no src) holding JavaScript."""
    for match in SCRIPT_RE.finditer(markup):
        attributes = match.group(1)
        if attribute(attributes, "src") is None and script_type(attributes) in SCRIPT_TYPES:
            if match.group(2).strip():
                yield match
