"""
Occlusion oracles: "is the segment A-B blocked by scene geometry?"

The channel engine only ever talks to the ``OcclusionOracle`` protocol. Two
implementations ship with the package:

- BoxOcclusionOracle: buildings modelled as axis-aligned boxes
- OpenSkyOracle: nothing ever blocks (free-space scenes and tests)

The ground plane is never an occluder; ground reflection geometry is handled
by the engine itself.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np

logger = logging.getLogger(__name__)

Point = Sequence[float] | np.ndarray


class OcclusionQueryUnavailable(RuntimeError):
    """Raised when an oracle is asked a question before the scene is ready."""


class OcclusionOracle(Protocol):
    """Anything that can answer segment occlusion queries."""

    def blocked(self, start: Point, end: Point) -> bool:
        ...


def is_blocked(oracle: OcclusionOracle | None, start: Point, end: Point) -> bool:
    """
    Query an oracle, failing safe.

    A missing oracle, or one that raises OcclusionQueryUnavailable, makes
    every segment count as blocked.
    """
    if oracle is None:
        logger.debug("No occlusion oracle configured, treating segment as blocked")
        return True
    try:
        return bool(oracle.blocked(start, end))
    except OcclusionQueryUnavailable as e:
        logger.debug("Occlusion query unavailable (%s), treating segment as blocked", e)
        return True


@dataclass(frozen=True)
class Box:
    """Axis-aligned box (a building footprint extruded to its height)."""

    name: str
    min_corner: tuple[float, float, float]
    max_corner: tuple[float, float, float]


class OpenSkyOracle:
    """Oracle for empty scenes: nothing is ever blocked."""

    def blocked(self, start: Point, end: Point) -> bool:
        return False


class BoxOcclusionOracle:
    """
    Segment occlusion against a set of axis-aligned boxes.

    Uses the slab method on the segment parameter t in [0, 1]. The segment is
    trimmed by ``endpoint_margin`` metres at each end so that a scatterer
    sitting on a building face is not reported as hidden by its own building.
    """

    def __init__(self, boxes: Sequence[Box], endpoint_margin: float = 0.05):
        self._mins = np.array([b.min_corner for b in boxes], dtype=float).reshape(-1, 3)
        self._maxs = np.array([b.max_corner for b in boxes], dtype=float).reshape(-1, 3)
        self._names = [b.name for b in boxes]
        self.endpoint_margin = endpoint_margin
        self.ready = True

    @property
    def num_boxes(self) -> int:
        return len(self._names)

    def blocked(self, start: Point, end: Point) -> bool:
        if not self.ready:
            raise OcclusionQueryUnavailable("scene geometry not loaded")
        if self.num_boxes == 0:
            return False

        p0 = np.asarray(start, dtype=float)
        d = np.asarray(end, dtype=float) - p0
        length = float(np.linalg.norm(d))
        if length <= 2 * self.endpoint_margin:
            return False

        t_lo = self.endpoint_margin / length
        t_hi = 1.0 - t_lo

        # Avoid division by zero for axis-parallel segments: an infinite slab
        # parameter is fine as long as the origin lies inside that slab.
        with np.errstate(divide="ignore", invalid="ignore"):
            inv = 1.0 / d
            t1 = (self._mins - p0) * inv
            t2 = (self._maxs - p0) * inv

        near = np.minimum(t1, t2)
        far = np.maximum(t1, t2)

        parallel = d == 0.0
        if np.any(parallel):
            inside = (p0 >= self._mins) & (p0 <= self._maxs)
            near = np.where(parallel, np.where(inside, -np.inf, np.inf), near)
            far = np.where(parallel, np.where(inside, np.inf, -np.inf), far)

        t_enter = np.max(near, axis=1)
        t_exit = np.min(far, axis=1)

        hits = (t_enter <= t_exit) & (t_exit >= t_lo) & (t_enter <= t_hi)
        return bool(np.any(hits))
