"""Minify stage: strip comments and whitespace from HTML, CSS and JavaScript.

HTML and CSS are minified in-process. JavaScript, inline scripts included,
goes through babel with the minify preset in one invocation.
"""

from __future__ import annotations

import re
from pathlib import Path

from flow_frontend.errors import MinificationError
from flow_frontend.models import StageTree
from flow_frontend.stages.base import Stage, StageContext
from flow_frontend.stages.scripts import run_babel

MINIFY_PRESETS: dict[str, dict[str, object]] = {"babel-preset-minify": {}}

_PROTECTED_RE = re.compile(
    r"(<(script|style|pre|textarea)\b[^>]*>)(.*?)(</\2\s*>)",
    re.IGNORECASE | re.DOTALL,
)
_HTML_COMMENT_RE = re.compile(r"<!--(?!\[if|<!\[endif|\s*@license).*?-->", re.DOTALL)
_CSS_COMMENT_RE = re.compile(r"/\*(?!!).*?\*/", re.DOTALL)
_CSS_PUNCTUATION_RE = re.compile(r"\s*([{};:,>])\s*")
_WHITESPACE_RE = re.compile(r"\s+")


def minify_css(css: str) -> str:
    """Remove comments and redundant whitespace from a stylesheet.

    Example:
        >>> minify_css("a {\\n  color : red ;\\n}\\n/* note */")
        'a{color:red}'
    """
    css = _CSS_COMMENT_RE.sub("", css)
    css = _WHITESPACE_RE.sub(" ", css)
    css = _CSS_PUNCTUATION_RE.sub(r"\1", css)
    return css.replace(";}", "}").strip()


def minify_html(markup: str) -> str:
    """Remove comments and collapse whitespace outside script/style/pre/textarea.

    Conditional comments and @license comments are kept. Whitespace runs are
    collapsed to a single space, never removed, so inline layout is preserved.
    """
    protected: list[str] = []

    def _protect(match: re.Match[str]) -> str:
        body = match.group(3)
        if match.group(2).lower() == "style":
            body = minify_css(body)
        protected.append(f"{match.group(1)}{body}{match.group(4)}")
        return f"\x00{len(protected) - 1}\x00"

    text = _PROTECTED_RE.sub(_protect, markup)
    text = _HTML_COMMENT_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return re.sub(r"\x00(\d+)\x00", lambda m: protected[int(m.group(1))], text)


class MinifyStage(Stage):
    """Minify every file of the tree; per file when bundling was skipped."""

    name = "minify"
    error_type = MinificationError

    def transform(self, tree: StageTree, output: Path, context: StageContext) -> StageTree:
        if context.toolchain is None:
            raise self.fail("toolchain is not installed", context)
        result = run_babel(tree, output, context, MINIFY_PRESETS, extra_arguments=("--no-comments",))
        for relative in result.files():
            path = result.path(relative)
            if relative.suffix == ".html":
                path.write_text(minify_html(path.read_text(encoding="utf-8")), encoding="utf-8")
            elif relative.suffix == ".css":
                path.write_text(minify_css(path.read_text(encoding="utf-8")), encoding="utf-8")
        return result
