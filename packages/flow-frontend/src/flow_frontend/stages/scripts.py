"""Run babel over every script of a tree in a single invocation.

JavaScript files and inline <script> blocks of HTML documents are written as
numbered units into one directory, compiled by one babel process into a
second directory and put back where they came from.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from flow_frontend.models import StageTree
from flow_frontend.process import check_result
from flow_frontend.stages.base import StageContext, copy_file, write_text
from flow_frontend.stages.markup import SOURCE_MAPPING_RE, inline_scripts

SCRIPT_SUFFIXES = frozenset({".js", ".mjs"})
BABEL_CONFIG_FILE_NAME = "babel.config.json"


@dataclass
class _Document:
    """An HTML document and the (start, end, unit) spans of its inline scripts."""

    text: str
    spans: list[tuple[int, int, str]] = field(default_factory=list)


@dataclass
class ScriptUnits:
    """Scripts extracted from a tree, keyed by unit file name."""

    files: dict[PurePosixPath, str] = field(default_factory=dict)
    documents: dict[PurePosixPath, _Document] = field(default_factory=dict)
    others: list[PurePosixPath] = field(default_factory=list)
    count: int = 0

    def _next_unit(self) -> str:
        self.count += 1
        return f"{self.count:05d}.js"

    @classmethod
    def collect(cls, tree: StageTree, units_directory: Path) -> ScriptUnits:
        units = cls()
        for relative in tree.files():
            source = tree.path(relative)
            if relative.suffix in SCRIPT_SUFFIXES:
                unit = units._next_unit()
                shutil.copyfile(source, units_directory / unit)
                units.files[relative] = unit
            elif relative.suffix == ".html":
                document = _Document(source.read_text(encoding="utf-8"))
                for match in inline_scripts(document.text):
                    unit = units._next_unit()
                    (units_directory / unit).write_text(match.group(2), encoding="utf-8")
                    document.spans.append((match.start(2), match.end(2), unit))
                units.documents[relative] = document
            elif relative.suffix != ".map":
                units.others.append(relative)
        return units


def write_babel_config(
    directory: Path,
    context: StageContext,
    presets: Mapping[str, Mapping[str, Any]],
) -> Path:
    """Write a babel.config.json naming the installed presets and their options.

    Presets are referenced by absolute path so babel never resolves them
    relative to the scratch directory.
    """
    toolchain = context.toolchain
    if toolchain is None:
        raise FileNotFoundError("babel is not installed")
    entries: list[Any] = []
    for name, options in presets.items():
        path = str(toolchain.package_path(name))
        entries.append([path, dict(options)] if options else path)
    config_file = directory / BABEL_CONFIG_FILE_NAME
    config_file.write_text(json.dumps({"presets": entries}, indent=2), encoding="utf-8")
    return config_file


def run_babel(
    tree: StageTree,
    output: Path,
    context: StageContext,
    presets: Mapping[str, Mapping[str, Any]],
    *,
    extra_arguments: Sequence[str] = (),
) -> StageTree:
    """Compile every script of tree with the given babel presets into output.

    Args:
        tree: Input tree.
        output: Empty directory receiving the output tree.
        context: Stage context; its toolchain provides node and babel.
        presets: Installed preset packages and their options, e.g.
            {"@babel/preset-env": {"modules": False}}.
        extra_arguments: Additional babel CLI arguments.

    Returns:
        The output tree.

    Raises:
        ProcessError: If babel fails or times out.
        FileNotFoundError: If babel produced no output for a unit.
    """
    units_directory = context.new_directory("units")
    compiled_directory = context.new_directory("compiled")
    units = ScriptUnits.collect(tree, units_directory)

    if units.count:
        toolchain = context.toolchain
        if toolchain is None:
            raise FileNotFoundError("babel is not installed")
        config_file = write_babel_config(context.new_directory("config"), context, presets)
        arguments = [
            str(units_directory),
            "--out-dir",
            str(compiled_directory),
            "--no-babelrc",
            "--config-file",
            str(config_file),
            *extra_arguments,
        ]
        if context.source_maps:
            arguments.append("--source-maps")
        command = toolchain.node_command(toolchain.babel_script, *arguments)
        check_result(
            context.runner.run(
                command,
                cwd=toolchain.working_directory,
                env=toolchain.environment(),
                timeout=context.timeout,
            )
        )

    def compiled(unit: str) -> str:
        path = compiled_directory / unit
        if not path.exists():
            raise FileNotFoundError(f"babel produced no output for {unit}")
        return path.read_text(encoding="utf-8")

    for relative, unit in units.files.items():
        text = compiled(unit)
        source_map = compiled_directory / f"{unit}.map"
        if source_map.exists():
            map_name = f"{relative.name}.map"
            text = SOURCE_MAPPING_RE.sub(lambda m: f"{m.group(1)}{map_name}", text)
            write_text(output, relative.with_name(map_name), source_map.read_text(encoding="utf-8"))
        write_text(output, relative, text)

    for relative, document in units.documents.items():
        text = document.text
        for start, end, unit in reversed(document.spans):
            script = SOURCE_MAPPING_RE.sub("", compiled(unit)).strip()
            text = f"{text[:start]}\n{script}\n{text[end:]}"
        write_text(output, relative, text)

    for relative in units.others:
        copy_file(tree, relative, output)

    return StageTree(root=output, shell=tree.shell, origins=dict(tree.origins))
