"""Build stages applied in the order Transpile -> Bundle -> Minify -> Hash."""

from __future__ import annotations

from flow_frontend.config import BuildFlags
from flow_frontend.models import Tier
from flow_frontend.stages.base import Stage, StageContext
from flow_frontend.stages.bundle import BundleStage
from flow_frontend.stages.hashing import HashStage
from flow_frontend.stages.minify import MinifyStage
from flow_frontend.stages.transpile import TranspileStage


def stages_for(tier: Tier, flags: BuildFlags) -> list[Stage]:
    """Stage pipeline of a tier; disabled stages are kept as pass-throughs.

    Example:
        >>> [s.name for s in stages_for(Tier.ES6, BuildFlags(bundle=True))]
        ['bundle', 'minify', 'hash']
    """
    stages: list[Stage] = []
    if tier.transpiles:
        stages.append(TranspileStage())
    stages.extend(
        [
            BundleStage(enabled=flags.bundle),
            MinifyStage(enabled=flags.minify),
            HashStage(enabled=flags.hash),
        ]
    )
    return stages


__all__ = [
    "BundleStage",
    "HashStage",
    "MinifyStage",
    "Stage",
    "StageContext",
    "TranspileStage",
    "stages_for",
]
