"""Unit tests for the minify stage."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import PurePosixPath

import pytest

from flow_frontend.errors import MinificationError
from flow_frontend.models import StageTree, Tier
from flow_frontend.stages import MinifyStage, StageContext
from flow_frontend.stages.minify import minify_css, minify_html
from testing.fixtures import FakeProcessRunner

SOURCES: dict[str, str | bytes] = {
    "shell.html": (
        "<!-- generated -->\n"
        "<div>\n"
        "   <p>Hello    world</p>\n"
        "</div>\n"
        "<script>\n"
        "  /* boot */\n"
        "  var   ready =   true;\n"
        "</script>\n"
    ),
    "src/app.js": "/* app */\nvar a = 1;\n\nvar b = 2;\n",
    "src/theme.css": "/* theme */\nhtml {\n  color : red ;\n}\n",
    "src/logo.png": b"\x89PNG  \n  ",
}


class TestMinifyCss:
    """Tests for minify_css()."""

    def test_comments_and_whitespace(self) -> None:
        assert minify_css("a {\n  color : red ;\n}\n/* note */") == "a{color:red}"

    def test_important_comment_is_kept(self) -> None:
        assert minify_css("/*! license */ a { top: 0 }") == "/*! license */ a{top:0}"

    def test_selectors(self) -> None:
        assert minify_css("ul > li ,\n ol > li { margin : 0 ; padding : 0 ; }") == (
            "ul>li,ol>li{margin:0;padding:0}"
        )


class TestMinifyHtml:
    """Tests for minify_html()."""

    def test_whitespace_is_collapsed_not_removed(self) -> None:
        markup = "<div>\n  <!-- c -->\n  <p>Hi   there</p>\n</div>"
        assert minify_html(markup) == "<div> <p>Hi there</p> </div>"

    def test_preformatted_content_is_kept(self) -> None:
        markup = "<pre>  a\n   b</pre>\n\n<textarea> x  y </textarea>"
        assert minify_html(markup) == "<pre>  a\n   b</pre> <textarea> x  y </textarea>"

    def test_script_content_is_kept(self) -> None:
        markup = "<script>\n  if (a <  b) {}\n</script>"
        assert minify_html(markup) == markup

    def test_inline_style_is_minified(self) -> None:
        assert minify_html("<style>\n  a { color : red ; }\n</style>") == "<style>a{color:red}</style>"

    def test_conditional_and_license_comments_are_kept(self) -> None:
        markup = "<!--[if IE]><p>old</p><![endif]--><!-- @license MIT --><!-- drop -->"
        assert minify_html(markup) == "<!--[if IE]><p>old</p><![endif]--><!-- @license MIT -->"


class TestMinifyStage:
    """Tests for MinifyStage."""

    def test_files_are_minified(
        self,
        make_tree: Callable[..., StageTree],
        stage_context: Callable[..., StageContext],
    ) -> None:
        result = MinifyStage().run(make_tree(SOURCES), stage_context(Tier.ES6))

        assert result.path(PurePosixPath("src/app.js")).read_text() == "var a = 1; var b = 2;"
        assert result.path(PurePosixPath("src/theme.css")).read_text() == "html{color:red}"
        shell = result.path(result.shell).read_text()
        assert shell == "<div> <p>Hello world</p> </div> <script>\nvar ready = true;\n</script>"

    def test_binary_files_are_copied(
        self,
        make_tree: Callable[..., StageTree],
        stage_context: Callable[..., StageContext],
    ) -> None:
        result = MinifyStage().run(make_tree(SOURCES), stage_context(Tier.ES6))
        assert result.path(PurePosixPath("src/logo.png")).read_bytes() == SOURCES["src/logo.png"]

    def test_babel_invocation(
        self,
        make_tree: Callable[..., StageTree],
        stage_context: Callable[..., StageContext],
        fake_runner: FakeProcessRunner,
    ) -> None:
        context = stage_context(Tier.ES6)
        MinifyStage().run(make_tree(SOURCES), context)

        [call] = fake_runner.calls_to("babel.js")
        assert context.toolchain is not None
        assert call.presets == {str(context.toolchain.package_path("babel-preset-minify")): {}}
        assert "--no-comments" in call.command

    def test_babel_failure(
        self,
        make_tree: Callable[..., StageTree],
        stage_context: Callable[..., StageContext],
        fake_runner: FakeProcessRunner,
    ) -> None:
        fake_runner.fail_on = "babel.js"
        with pytest.raises(MinificationError) as exc_info:
            MinifyStage().run(make_tree(SOURCES), stage_context(Tier.ES6))
        assert exc_info.value.tier == "es6"

    def test_disabled_stage_passes_tree_through(
        self,
        make_tree: Callable[..., StageTree],
        stage_context: Callable[..., StageContext],
    ) -> None:
        tree = make_tree(SOURCES)
        assert MinifyStage(enabled=False).run(tree, stage_context(Tier.ES6)) is tree
