"""Static scene data: materials, occlusion oracles and the scatterer catalog."""

from gscm.scene.materials import Material
from gscm.scene.occlusion import (
    Box,
    BoxOcclusionOracle,
    OcclusionOracle,
    OcclusionQueryUnavailable,
    OpenSkyOracle,
    is_blocked,
)

__all__ = [
    "Box",
    "BoxOcclusionOracle",
    "Material",
    "OcclusionOracle",
    "OcclusionQueryUnavailable",
    "OpenSkyOracle",
    "is_blocked",
]
