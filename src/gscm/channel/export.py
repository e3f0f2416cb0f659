"""
Result export: one text file per channel type.

File layout (read back by the delay-domain post-processing):

    H real,imag per subcarrier
    re0,im0,re1,im1,...        <- frame 0
    re0,im0,re1,im1,...        <- frame 1

Export is one-shot. Once a ResultExporter has exported, further calls are
no-ops. A file that cannot be written is logged and skipped; the remaining
channel types are still attempted.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Union

import numpy as np

from gscm.channel.history import ChannelHistory, ChannelType

logger = logging.getLogger(__name__)

EXPORT_HEADER = "H real,imag per subcarrier"

CHANNEL_FILENAMES: dict[ChannelType, str] = {
    ChannelType.LOS: "H_LOS.txt",
    ChannelType.GROUND: "H_ground.txt",
    ChannelType.NLOS_MODE0: "H_NLOS_mode0.txt",
    ChannelType.NLOS_MODE1: "H_NLOS_mode1.txt",
}


def interleave(frames: np.ndarray) -> np.ndarray:
    """(N, M) complex -> (N, 2M) real with real/imag interleaved."""
    out = np.empty((frames.shape[0], 2 * frames.shape[1]), dtype=float)
    out[:, 0::2] = frames.real
    out[:, 1::2] = frames.imag
    return out


def write_history(path: Union[str, Path], history: ChannelHistory) -> Path:
    """
    Write one channel history to a text file.

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    with open(path, "w") as f:
        np.savetxt(
            f,
            interleave(history.as_array()),
            fmt="%.17g",
            delimiter=",",
            header=EXPORT_HEADER,
            comments="",
        )
    return path


def read_history(path: Union[str, Path], num_subcarriers: Optional[int] = None) -> np.ndarray:
    """
    Parse an exported file back into a (num_frames, num_subcarriers) complex array.

    The file format does not record the subcarrier count, so a header-only
    file parses to shape (0, 0) unless num_subcarriers is given.

    Args:
        path: Exported history file
        num_subcarriers: Expected subcarrier count; checked against every line

    Raises:
        ValueError: If the header is missing, a line has an odd field count,
            or the subcarrier count differs from num_subcarriers
    """
    lines = Path(path).read_text().splitlines()
    if not lines or lines[0].strip() != EXPORT_HEADER:
        raise ValueError(f"{path}: missing export header")

    rows = [line for line in lines[1:] if line.strip()]
    if not rows:
        return np.empty((0, num_subcarriers or 0), dtype=complex)

    data = np.loadtxt(rows, delimiter=",", ndmin=2)
    if data.shape[1] % 2:
        raise ValueError(f"{path}: odd number of fields per line ({data.shape[1]})")
    if num_subcarriers is not None and data.shape[1] // 2 != num_subcarriers:
        raise ValueError(
            f"{path}: expected {num_subcarriers} subcarriers, got {data.shape[1] // 2}"
        )
    return data[:, 0::2] + 1j * data[:, 1::2]


class ResultExporter:
    """Writes all channel histories once, at the end of a run."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self._exported = False
        self.written: dict[ChannelType, Path] = {}

    @property
    def exported(self) -> bool:
        return self._exported

    def export(self, histories: Mapping[ChannelType, ChannelHistory]) -> dict[ChannelType, Path]:
        """
        Export every history to its file.

        Args:
            histories: History per channel type

        Returns:
            Mapping of channel type to written file (failed channels omitted).
            Empty if this exporter already ran.
        """
        if self._exported:
            logger.info("Results already exported to %s, skipping", self.output_dir)
            return {}
        self._exported = True

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create output directory %s: %s", self.output_dir, e)

        for channel_type, history in histories.items():
            path = self.output_dir / CHANNEL_FILENAMES[channel_type]
            try:
                self.written[channel_type] = write_history(path, history)
            except OSError as e:
                logger.error("Failed to export %s to %s: %s", channel_type.value, path, e)
                continue
            logger.info(
                "Exported %s: %d frames x %d subcarriers -> %s",
                channel_type.value,
                len(history),
                history.num_subcarriers,
                path,
            )
        return dict(self.written)
