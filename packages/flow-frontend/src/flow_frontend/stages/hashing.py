"""Hash stage: embed content fingerprints in file names for cache-busting.

Every file except the shell is renamed to <stem>.<fingerprint><suffix>, the
fingerprint being the first FINGERPRINT_LENGTH hex digits of the SHA-256 of
the file's content. Files are fingerprinted in dependency order: references
of an HTML or JavaScript file are rewritten to the new names of the files it
points at before the file itself is hashed, so a change in any dependency
renames every file that refers to it. Files referring to each other in a
cycle share one fingerprint computed over all of them.

Source maps follow their script and the shell keeps its name.
"""

from __future__ import annotations

import hashlib
import shutil
from collections.abc import Callable, Iterator
from pathlib import Path, PurePosixPath

from flow_frontend.errors import HashingError
from flow_frontend.models import StageTree
from flow_frontend.stages.base import Stage, StageContext, write_text
from flow_frontend.stages.markup import rewrite_html_references, rewrite_js_references

FINGERPRINT_LENGTH = 10

_REWRITTEN_SUFFIXES = frozenset({".html", ".js", ".mjs"})

Rename = Callable[[PurePosixPath], PurePosixPath | None]


def fingerprint(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:FINGERPRINT_LENGTH]


def fingerprinted_name(relative: PurePosixPath, digest: str) -> PurePosixPath:
    """Example: src/view.js -> src/view.1a2b3c4d5e.js"""
    return relative.with_name(f"{relative.stem}.{digest}{relative.suffix}")


def rewrite_references(text: str, relative: PurePosixPath, rename: Rename) -> str:
    """Rewrite the references of an HTML or JavaScript file located at relative."""
    if relative.suffix == ".html":
        return rewrite_html_references(text, relative.parent, rename)
    return rewrite_js_references(text, relative.parent, rename)


def strongly_connected(graph: dict[PurePosixPath, set[PurePosixPath]]) -> Iterator[list[PurePosixPath]]:
    """Yield the strongly connected components of graph, dependencies first.

    Tarjan's algorithm; every component is yielded after all components it
    has edges to. Members are sorted and nodes are visited in sorted order so
    the result does not depend on dict ordering.
    """
    index: dict[PurePosixPath, int] = {}
    lowlink: dict[PurePosixPath, int] = {}
    stack: list[PurePosixPath] = []
    on_stack: set[PurePosixPath] = set()
    components: list[list[PurePosixPath]] = []

    def visit(node: PurePosixPath) -> None:
        index[node] = lowlink[node] = len(index)
        stack.append(node)
        on_stack.add(node)
        for successor in sorted(graph[node]):
            if successor not in index:
                visit(successor)
                lowlink[node] = min(lowlink[node], lowlink[successor])
            elif successor in on_stack:
                lowlink[node] = min(lowlink[node], index[successor])
        if lowlink[node] == index[node]:
            component: list[PurePosixPath] = []
            while True:
                member = stack.pop()
                on_stack.discard(member)
                component.append(member)
                if member == node:
                    break
            components.append(sorted(component))

    for node in sorted(graph):
        if node not in index:
            visit(node)
    yield from components


class HashStage(Stage):
    """Rename files after their content and rewrite the references to them."""

    name = "hash"
    error_type = HashingError

    def transform(self, tree: StageTree, output: Path, context: StageContext) -> StageTree:
        files = tree.files()
        hashed = [p for p in files if p != tree.shell and p.suffix != ".map"]
        texts = {
            p: tree.path(p).read_text(encoding="utf-8") for p in hashed if p.suffix in _REWRITTEN_SUFFIXES
        }
        graph = {p: self._references(p, texts, set(hashed)) for p in hashed}
        renames: dict[PurePosixPath, PurePosixPath] = {}

        for component in strongly_connected(graph):
            members = set(component)

            def outside(target: PurePosixPath, members: set[PurePosixPath] = members) -> PurePosixPath | None:
                return None if target in members else renames.get(target)

            contents: list[bytes] = []
            for relative in component:
                if relative in texts:
                    contents.append(rewrite_references(texts[relative], relative, outside).encode("utf-8"))
                else:
                    contents.append(tree.path(relative).read_bytes())

            if len(component) == 1:
                digest = fingerprint(contents[0])
            else:
                digest = fingerprint(
                    b"".join(f"{p}\0".encode() + c + b"\0" for p, c in zip(component, contents, strict=True))
                )
            for relative in component:
                renames[relative] = fingerprinted_name(relative, digest)

        for relative in files:
            if relative.suffix != ".map":
                continue
            script = relative.with_suffix("")
            if script in renames:
                renames[relative] = renames[script].with_name(f"{renames[script].name}.map")

        if len(set(renames.values())) != len(renames):
            raise self.fail("fingerprinted file names collide", context)

        for relative in files:
            destination = renames.get(relative, relative)
            if relative.suffix in _REWRITTEN_SUFFIXES:
                text = texts.get(relative)
                if text is None:
                    text = tree.path(relative).read_text(encoding="utf-8")
                write_text(output, destination, rewrite_references(text, relative, renames.get))
            else:
                target = output.joinpath(*destination.parts)
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(tree.path(relative), target)

        origins = {new: tree.logical_name(old) for old, new in renames.items()}
        return StageTree(root=output, shell=tree.shell, origins=origins)

    @staticmethod
    def _references(
        relative: PurePosixPath,
        texts: dict[PurePosixPath, str],
        candidates: set[PurePosixPath],
    ) -> set[PurePosixPath]:
        """Files among candidates that relative refers to."""
        if relative not in texts:
            return set()
        found: set[PurePosixPath] = set()

        def record(target: PurePosixPath) -> None:
            if target in candidates:
                found.add(target)

        rewrite_references(texts[relative], relative, record)
        return found
