"""
Per-channel-type frame histories.

Every simulation tick produces one FrameResponse per channel type: the complex
frequency response at each subcarrier, in ascending subcarrier order. Frames
are appended to a ChannelHistory until the run is exported.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class ChannelType(str, Enum):
    """The four channel components tracked per frame."""

    LOS = "los"
    GROUND = "ground"
    NLOS_MODE0 = "nlos_mode0"
    NLOS_MODE1 = "nlos_mode1"


@dataclass(frozen=True)
class FrameResult:
    """Channel responses for one simulation tick."""

    los: np.ndarray
    ground: np.ndarray
    nlos_mode0: np.ndarray
    nlos_mode1: np.ndarray

    @classmethod
    def from_samples(cls, samples: np.ndarray) -> "FrameResult":
        """Split an (num_subcarriers, 4) array of merged worker output."""
        return cls(
            los=samples[:, 0].copy(),
            ground=samples[:, 1].copy(),
            nlos_mode0=samples[:, 2].copy(),
            nlos_mode1=samples[:, 3].copy(),
        )

    def by_type(self) -> dict[ChannelType, np.ndarray]:
        return {
            ChannelType.LOS: self.los,
            ChannelType.GROUND: self.ground,
            ChannelType.NLOS_MODE0: self.nlos_mode0,
            ChannelType.NLOS_MODE1: self.nlos_mode1,
        }


class ChannelHistory:
    """Append-only sequence of frame responses for one channel type."""

    def __init__(self, channel_type: ChannelType, num_subcarriers: int):
        self.channel_type = channel_type
        self.num_subcarriers = num_subcarriers
        self._frames: list[np.ndarray] = []

    def append(self, response: np.ndarray) -> None:
        """
        Append one frame response.

        Raises:
            ValueError: If the response length differs from num_subcarriers
        """
        frame = np.array(response, dtype=complex).reshape(-1)
        if frame.shape[0] != self.num_subcarriers:
            raise ValueError(
                f"{self.channel_type.value}: expected {self.num_subcarriers} subcarriers, "
                f"got {frame.shape[0]}"
            )
        frame.setflags(write=False)
        self._frames.append(frame)

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self):
        return iter(self._frames)

    @property
    def frames(self) -> tuple[np.ndarray, ...]:
        return tuple(self._frames)

    def as_array(self) -> np.ndarray:
        """Return all frames as a (num_frames, num_subcarriers) complex array."""
        if not self._frames:
            return np.empty((0, self.num_subcarriers), dtype=complex)
        return np.vstack(self._frames)


def new_histories(num_subcarriers: int) -> dict[ChannelType, ChannelHistory]:
    """Create one empty history per channel type."""
    return {ct: ChannelHistory(ct, num_subcarriers) for ct in ChannelType}
