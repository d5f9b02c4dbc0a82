"""Sample web component source trees for build tests."""

from __future__ import annotations

from pathlib import Path

# Polymer-style application: my-app imports my-view, my-view loads a classic
# script and an image, the stylesheet is referenced by nobody.
WEB_COMPONENTS: dict[str, str | bytes] = {
    "my-app.html": (
        '<link rel="import" href="my-view.html">\n'
        '<dom-module id="my-app">\n'
        "  <template>\n"
        "    <style>\n"
        "      :host { display : block ; }\n"
        "    </style>\n"
        "    <!-- application root -->\n"
        "    <div>   Hello   world   </div>\n"
        "  </template>\n"
        "  <script>\n"
        "    const tag = 'my-app';\n"
        "    class MyApp extends Polymer.Element { static get is() { return tag; } }\n"
        "    customElements.define(MyApp.is, MyApp);\n"
        "  </script>\n"
        "</dom-module>\n"
    ),
    "my-view.html": (
        '<dom-module id="my-view">\n'
        '  <template><img src="images/logo.png" alt="logo"></template>\n'
        '  <script src="my-view.js"></script>\n'
        "</dom-module>\n"
    ),
    "my-view.js": (
        "/* view element */\n"
        "let greeting = 'hello';\n"
        "class MyView extends Polymer.Element { static get is() { return 'my-view'; } }\n"
        "customElements.define(MyView.is, MyView);\n"
    ),
    "styles/theme.css": "/* theme */\nhtml {\n  color : red ;\n}\n",
    "images/logo.png": b"\x89PNG\r\n\x1a\nlogo",
}


def write_web_components(directory: Path, files: dict[str, str | bytes] | None = None) -> Path:
    """Write a source tree into directory and return it.

    Args:
        directory: Directory to create.
        files: Relative path -> content. Defaults to WEB_COMPONENTS.
    """
    for relative, content in (files if files is not None else WEB_COMPONENTS).items():
        path = directory / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return directory
