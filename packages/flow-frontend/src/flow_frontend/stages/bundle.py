"""Bundle stage: inline the HTML import graph of the shell file.

Starting at the shell file, every local <link rel="import"> is replaced by
the imported document, depth-first and each document once, and every local
classic <script src> is replaced by an inline script. URLs of inlined
documents are rebased onto the shell's directory. Inlined files are dropped
from the output; every other file is kept.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

from flow_frontend.errors import BundlingError
from flow_frontend.models import StageTree
from flow_frontend.observability import get_logger
from flow_frontend.stages.base import Stage, StageContext, copy_file, write_text
from flow_frontend.stages.markup import (
    CLASSIC_SCRIPT_TYPES,
    IMPORT_LINK_RE,
    SCRIPT_RE,
    attribute,
    rebase_urls,
    resolve_reference,
    script_type,
)

_SRC_ATTRIBUTE_RE = re.compile(r"""\s+src\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""", re.IGNORECASE)


class _Bundler:
    def __init__(self, tree: StageTree, stage: BundleStage, context: StageContext) -> None:
        self.tree = tree
        self.stage = stage
        self.context = context
        self.host = tree.shell.parent
        self.visited: set[PurePosixPath] = {tree.shell}
        self.inlined: set[PurePosixPath] = set()

    def _read(self, relative: PurePosixPath, referrer: PurePosixPath) -> str:
        path = self.tree.path(relative)
        if not path.is_file():
            raise self.stage.fail(f"'{relative}' imported by '{referrer}' not found", self.context)
        return path.read_text(encoding="utf-8")

    def document(self, relative: PurePosixPath, referrer: PurePosixPath) -> str:
        """Return a document with its imports and scripts inlined, URLs relative to the host."""
        text = rebase_urls(self._read(relative, referrer), relative.parent, self.host)

        def _import(match: re.Match[str]) -> str:
            href = attribute(match.group(0), "href")
            target = resolve_reference(self.host, href) if href else None
            if target is None:
                return match.group(0)
            if target in self.visited:
                return ""
            self.visited.add(target)
            self.inlined.add(target)
            return self.document(target, relative)

        def _script(match: re.Match[str]) -> str:
            attributes = match.group(1)
            src = attribute(attributes, "src")
            if src is None or script_type(attributes) not in CLASSIC_SCRIPT_TYPES:
                return match.group(0)
            target = resolve_reference(self.host, src)
            if target is None:
                return match.group(0)
            body = self._read(target, relative).replace("</script", "<\\/script")
            self.inlined.add(target)
            return f"<script{_SRC_ATTRIBUTE_RE.sub('', attributes)}>{body}</script>"

        text = IMPORT_LINK_RE.sub(_import, text)
        return SCRIPT_RE.sub(_script, text)


class BundleStage(Stage):
    """Merge the dependency graph rooted at the shell file into the shell."""

    name = "bundle"
    error_type = BundlingError

    def transform(self, tree: StageTree, output: Path, context: StageContext) -> StageTree:
        bundler = _Bundler(tree, self, context)
        bundled = bundler.document(tree.shell, tree.shell)
        write_text(output, tree.shell, bundled)

        for relative in tree.files():
            if relative == tree.shell or relative in bundler.inlined:
                continue
            copy_file(tree, relative, output)

        get_logger().info(
            "bundle_created",
            tier=context.tier.value,
            shell=str(tree.shell),
            inlined=len(bundler.inlined),
        )
        return StageTree(root=output, shell=tree.shell, origins=dict(tree.origins))
