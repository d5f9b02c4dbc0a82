"""Transpile stage: down-level modern JavaScript for the legacy tier."""

from __future__ import annotations

from pathlib import Path

from flow_frontend.errors import TranspilationError
from flow_frontend.models import StageTree
from flow_frontend.stages.base import Stage, StageContext
from flow_frontend.stages.scripts import run_babel

# Keep import/export: the legacy tier is served without a CommonJS loader.
TRANSPILE_PRESETS = {"@babel/preset-env": {"modules": False}}


class TranspileStage(Stage):
    """Compile every script, inline ones included, with @babel/preset-env.

    Runs for the legacy tier only; the orchestrator never adds it to the
    modern tier's stage list.
    """

    name = "transpile"
    error_type = TranspilationError

    def transform(self, tree: StageTree, output: Path, context: StageContext) -> StageTree:
        if context.toolchain is None:
            raise self.fail("toolchain is not installed", context)
        return run_babel(tree, output, context, TRANSPILE_PRESETS)
