"""
PathCache: per-frame geometry of every unblocked scatterer path.

Distance, angular gain and material gain do not depend on frequency, only the
phase term does. The cache is built once per frame for the current TX/RX pair
and then reused for every subcarrier, which keeps the per-subcarrier work to a
single vectorised phase rotation over all paths.
"""

import logging
from dataclasses import dataclass

import numpy as np

from gscm.channel.propagation import (
    DEFAULT_ANGLE_TOLERANCE_RAD,
    DEFAULT_PENALTY_FACTORS,
    GainMode,
    angular_gain,
    clamp_gain,
)
from gscm.scene.materials import Material
from gscm.scene.occlusion import OcclusionOracle, is_blocked
from gscm.scene.scatterers import ScatterPoint, ScattererCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropagationSettings:
    """Angular gain parameters shared by every path in a frame."""

    angle_tolerance: float = DEFAULT_ANGLE_TOLERANCE_RAD
    diffuse_enabled: bool = False
    penalty_factors: dict[Material, float] | None = None

    def penalty_for(self, material: Material) -> float:
        factors = self.penalty_factors or DEFAULT_PENALTY_FACTORS
        if material in factors:
            return factors[material]
        return DEFAULT_PENALTY_FACTORS.get(material, DEFAULT_PENALTY_FACTORS[Material.OTHER])


@dataclass(frozen=True)
class PathRecord:
    """One TX -> scatterer(s) -> RX path for the current frame."""

    total_distance: float
    gain_mode0: float
    gain_mode1: float
    reflection_points: tuple[np.ndarray, ...]

    @property
    def order(self) -> int:
        return len(self.reflection_points)

    def gain(self, mode: GainMode) -> float:
        return self.gain_mode0 if mode == GainMode.EMPIRICAL else self.gain_mode1


def _bounce_gains(
    src: np.ndarray,
    dst: np.ndarray,
    point: ScatterPoint,
    settings: PropagationSettings,
) -> tuple[float, float]:
    """Reflection coefficient times angular gain for both modes at one bounce."""
    penalty = settings.penalty_for(point.material)
    gains = []
    for mode in (GainMode.EMPIRICAL, GainMode.ENHANCED):
        ga = angular_gain(
            mode,
            src,
            dst,
            point.position,
            point.normal,
            material=point.material,
            penalty_factor=penalty,
            diffuse_enabled=settings.diffuse_enabled,
            angle_tolerance=settings.angle_tolerance,
        )
        gains.append(point.reflection_coeff(mode) * ga)
    return gains[0], gains[1]


class PathCache:
    """Frame-invariant path records, plus array views for vectorised sums."""

    def __init__(self, records: list[PathRecord]):
        self.records = records
        self.distances = np.array([r.total_distance for r in records], dtype=float)
        self.gains_mode0 = np.array([r.gain_mode0 for r in records], dtype=float)
        self.gains_mode1 = np.array([r.gain_mode1 for r in records], dtype=float)

    def __len__(self) -> int:
        return len(self.records)

    @classmethod
    def build(
        cls,
        tx,
        rx,
        catalog: ScattererCatalog,
        oracle: OcclusionOracle | None,
        settings: PropagationSettings | None = None,
    ) -> "PathCache":
        """
        Build path records for the current TX/RX positions.

        A first-order path is kept when both TX->s and s->RX are clear. A
        second-order path is kept when TX->s1 and s2->RX are clear (s1->s2
        was validated when the catalog was built).

        Args:
            tx: Transmitter position (x, y, z)
            rx: Receiver position (x, y, z)
            catalog: Scatterer catalog for the scene
            oracle: Occlusion oracle
            settings: Angular gain parameters

        Returns:
            PathCache with one record per unblocked path
        """
        settings = settings or PropagationSettings()
        tx = np.asarray(tx, dtype=float)
        rx = np.asarray(rx, dtype=float)
        records: list[PathRecord] = []

        for s in catalog.first_order:
            if is_blocked(oracle, tx, s.position) or is_blocked(oracle, s.position, rx):
                continue
            g0, g1 = _bounce_gains(tx, rx, s, settings)
            distance = float(np.linalg.norm(s.position - tx) + np.linalg.norm(rx - s.position))
            records.append(
                PathRecord(
                    total_distance=distance,
                    gain_mode0=clamp_gain(g0),
                    gain_mode1=clamp_gain(g1),
                    reflection_points=(s.position,),
                )
            )

        for s1, s2 in catalog.second_order_pairs:
            if is_blocked(oracle, tx, s1.position) or is_blocked(oracle, s2.position, rx):
                continue
            a0, a1 = _bounce_gains(tx, s2.position, s1, settings)
            b0, b1 = _bounce_gains(s1.position, rx, s2, settings)
            distance = float(
                np.linalg.norm(s1.position - tx)
                + np.linalg.norm(s2.position - s1.position)
                + np.linalg.norm(rx - s2.position)
            )
            records.append(
                PathRecord(
                    total_distance=distance,
                    gain_mode0=clamp_gain(a0 * b0),
                    gain_mode1=clamp_gain(a1 * b1),
                    reflection_points=(s1.position, s2.position),
                )
            )

        logger.debug(
            "Path cache: %d of %d scatterer paths unblocked", len(records), catalog.num_paths
        )
        return cls(records)
