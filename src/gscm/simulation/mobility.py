"""
Minimal TX/RX position sources.

Trajectory playback lives outside this package; the runner only needs a
position for each simulated time. LinearMobility covers static placement
(zero velocity) and constant-velocity movement.
"""

from typing import Optional, Protocol

import numpy as np

from gscm.config.schema import NodeConfig


class PositionSource(Protocol):
    """Anything that can report a 3D position at a simulated time."""

    def position_at(self, t: float) -> tuple[float, float, float]:
        ...


class LinearMobility:
    """Move linearly from a start position at a constant velocity."""

    def __init__(
        self,
        start: tuple[float, float, float],
        velocity: tuple[float, float, float] = (0.0, 0.0, 0.0),
    ):
        """
        Args:
            start: Position (x, y, z) at t = 0 in meters
            velocity: Velocity (vx, vy, vz) in meters/second
        """
        self.start = np.asarray(start, dtype=float)
        self.velocity = np.asarray(velocity, dtype=float)

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    def position_at(self, t: float) -> tuple[float, float, float]:
        x, y, z = self.start + self.velocity * t
        return (float(x), float(y), float(z))

    @classmethod
    def from_config(cls, node: Optional[NodeConfig]) -> Optional["LinearMobility"]:
        """Build from a NodeConfig; None stays None (missing reference)."""
        if node is None:
            return None
        velocity = node.velocity.as_tuple() if node.velocity is not None else (0.0, 0.0, 0.0)
        return cls(node.position.as_tuple(), velocity)
