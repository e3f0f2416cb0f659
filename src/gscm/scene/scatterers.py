"""
Scatterer catalog: first-order scatterers and validated second-order pairs.

The catalog is built once per scene from static scatterer descriptors. Each
descriptor becomes an immutable ScatterPoint carrying its two sampled
reflection coefficients (one per angular-gain mode). Second-order pairs are
every ordered pair of order-2 scatterers with a clear line between them,
randomly subsampled down to a maximum count.

Pair selection and coefficient sampling draw from an injected
``numpy.random.Generator``. Pass a seeded generator for reproducible catalogs;
the default generator is seeded from OS entropy and is not reproducible.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

import numpy as np

from gscm.channel.propagation import GainMode, material_reflection_coefficient
from gscm.scene.materials import Material
from gscm.scene.occlusion import OcclusionOracle, is_blocked

logger = logging.getLogger(__name__)


class ScattererDescriptor(Protocol):
    """What the scene generator hands over for each scatterer."""

    position: Sequence[float]
    normal: Sequence[float]
    material: str
    order: int
    building: str


@dataclass(frozen=True, eq=False)
class ScatterPoint:
    """A reflective point on a building surface."""

    position: np.ndarray
    normal: np.ndarray
    material: Material
    order: int
    building_name: str
    reflection_coeff_mode0: float
    reflection_coeff_mode1: float

    def reflection_coeff(self, mode: GainMode) -> float:
        if mode == GainMode.EMPIRICAL:
            return self.reflection_coeff_mode0
        return self.reflection_coeff_mode1


@dataclass
class ScattererCatalog:
    """First-order scatterers and second-order scatterer pairs for one scene."""

    first_order: list[ScatterPoint] = field(default_factory=list)
    second_order_pairs: list[tuple[ScatterPoint, ScatterPoint]] = field(default_factory=list)

    @property
    def num_paths(self) -> int:
        return len(self.first_order) + len(self.second_order_pairs)

    @classmethod
    def build(
        cls,
        scene_scatterers: Iterable[ScattererDescriptor],
        metal_only: bool,
        max_order2_pairs: int,
        oracle: OcclusionOracle | None,
        rng: np.random.Generator | None = None,
        metallic_buildings: Iterable[str] = (),
    ) -> "ScattererCatalog":
        """
        Build the catalog from scene scatterer descriptors.

        Args:
            scene_scatterers: Descriptors with position, normal, material,
                order and building name
            metal_only: Keep only scatterers (order 1) or pairs (order 2)
                that touch a metallic building
            max_order2_pairs: Upper bound on the number of order-2 pairs
            oracle: Occlusion oracle used to validate pair segments
            rng: Random source for coefficient sampling and pair subsampling
            metallic_buildings: Building names considered metallic in
                addition to scatterers whose own material is metal

        Returns:
            Populated ScattererCatalog
        """
        rng = rng if rng is not None else np.random.default_rng()
        metallic = set(metallic_buildings)

        def is_metallic(point: ScatterPoint) -> bool:
            return point.material is Material.METAL or point.building_name in metallic

        order1: list[ScatterPoint] = []
        order2: list[ScatterPoint] = []
        dropped = 0

        for desc in scene_scatterers:
            point = _make_point(desc, rng)
            if point is None:
                dropped += 1
                continue
            if point.order == 1:
                if not metal_only or is_metallic(point):
                    order1.append(point)
            elif point.order == 2:
                order2.append(point)
            else:
                logger.debug("Dropping scatterer with unknown order %s", point.order)
                dropped += 1

        pairs: list[tuple[ScatterPoint, ScatterPoint]] = []
        for i, s1 in enumerate(order2):
            for j, s2 in enumerate(order2):
                if i == j:
                    continue
                if metal_only and not (is_metallic(s1) or is_metallic(s2)):
                    continue
                if is_blocked(oracle, s1.position, s2.position):
                    continue
                pairs.append((s1, s2))

        candidates = len(pairs)
        if pairs:
            order = rng.permutation(len(pairs))
            pairs = [pairs[k] for k in order[: max(0, max_order2_pairs)]]

        logger.info(
            "Scatterer catalog: %d first-order, %d second-order pairs "
            "(%d candidates, %d order-2 points, %d dropped)",
            len(order1),
            len(pairs),
            candidates,
            len(order2),
            dropped,
        )
        return cls(first_order=order1, second_order_pairs=pairs)


def _make_point(desc: ScattererDescriptor, rng: np.random.Generator) -> ScatterPoint | None:
    """Convert a descriptor into a ScatterPoint, or None if it is unusable."""
    normal = np.asarray(desc.normal, dtype=float)
    norm = float(np.linalg.norm(normal))
    if norm < 1e-12:
        logger.debug("Dropping scatterer at %s with degenerate normal", tuple(desc.position))
        return None

    material = Material.parse(desc.material)
    return ScatterPoint(
        position=np.asarray(desc.position, dtype=float),
        normal=normal / norm,
        material=material,
        order=int(desc.order),
        building_name=desc.building,
        reflection_coeff_mode0=material_reflection_coefficient(material, GainMode.EMPIRICAL, rng),
        reflection_coeff_mode1=material_reflection_coefficient(material, GainMode.ENHANCED, rng),
    )
