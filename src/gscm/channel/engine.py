"""
Channel computation engine.

Each simulation tick the engine:

1. takes the current TX/RX positions
2. computes LOS distance/occlusion and the ground-reflection geometry
3. builds the frame's PathCache from the scatterer catalog
4. fans the subcarrier range out over a fixed number of worker tasks
5. merges the worker output in subcarrier order into a FrameResult
6. appends one frame per channel type to the histories
7. exports the histories once the configured simulated duration is reached

Workers share a read-only FrameContext. Their only write is storing their
chunk result in the context under its lock; the orchestrator waits for all of
them before merging.
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from gscm.channel.draw import (
    COLOR_GROUND,
    COLOR_LOS,
    COLOR_ORDER1,
    COLOR_ORDER2,
    DrawQueue,
)
from gscm.channel.export import ResultExporter
from gscm.channel.history import ChannelHistory, ChannelType, FrameResult, new_histories
from gscm.channel.path_cache import PathCache, PropagationSettings
from gscm.channel.propagation import SPEED_OF_LIGHT, GainMode, ground_reflection_gain
from gscm.scene.occlusion import OcclusionOracle, is_blocked
from gscm.scene.scatterers import ScattererCatalog

logger = logging.getLogger(__name__)

DEFAULT_NUM_WORKERS = 8


class EngineState(str, Enum):
    """Where the engine is within a tick."""

    IDLE = "idle"
    COMPUTING = "computing"
    MERGED = "merged"
    APPENDED = "appended"
    EXPORTED = "exported"


@dataclass
class EngineSettings:
    """Fixed per-run engine parameters."""

    carrier_frequency_hz: float = 3.2e9
    num_subcarriers: int = 1024
    subcarrier_spacing_hz: float = 500e3
    num_workers: int = DEFAULT_NUM_WORKERS
    duration_s: float = 10.0
    propagation: PropagationSettings = field(default_factory=PropagationSettings)
    draw_gain_mode: GainMode = GainMode.ENHANCED
    draw_threshold_db: float = -100.0

    def subcarrier_frequencies(self) -> np.ndarray:
        """f_i = fc - N/2 * df + i * df, for i in [0, N)."""
        n = self.num_subcarriers
        return (
            self.carrier_frequency_hz
            - n * 0.5 * self.subcarrier_spacing_hz
            + np.arange(n) * self.subcarrier_spacing_hz
        )


@dataclass(frozen=True)
class GroundGeometry:
    """Specular ground reflection for one TX/RX pair."""

    intersection: Optional[np.ndarray]
    distance: float
    grazing_angle: float
    blocked: bool


def ground_reflection_geometry(
    tx,
    rx,
    ground_height: float,
    oracle: OcclusionOracle | None,
) -> GroundGeometry:
    """
    Locate the ground bounce point and test both legs for occlusion.

    TX is mirrored across the plane y = ground_height; the ray from the mirror
    image to RX crosses the plane at the bounce point. The reflection is
    blocked when either TX->bounce or bounce->RX is blocked, or when there is
    no valid crossing (TX or RX at/below ground).
    """
    tx = np.asarray(tx, dtype=float)
    rx = np.asarray(rx, dtype=float)
    mirror = tx.copy()
    mirror[1] = 2.0 * ground_height - tx[1]

    distance = float(np.linalg.norm(rx - mirror))
    dy = rx[1] - mirror[1]
    if distance <= 0.0 or dy == 0.0:
        return GroundGeometry(None, distance, 0.0, True)

    t = (ground_height - mirror[1]) / dy
    if not 0.0 <= t <= 1.0:
        return GroundGeometry(None, distance, 0.0, True)

    intersection = mirror + t * (rx - mirror)
    horizontal = math.hypot(rx[0] - mirror[0], rx[2] - mirror[2])
    grazing_angle = math.atan2(abs(dy), horizontal)

    blocked = is_blocked(oracle, tx, intersection) or is_blocked(oracle, intersection, rx)
    return GroundGeometry(intersection, distance, grazing_angle, blocked)


def partition_subcarriers(num_subcarriers: int, num_chunks: int) -> list[tuple[int, int]]:
    """
    Split [0, num_subcarriers) into contiguous, ordered, non-overlapping chunks.

    Chunks are ceil(N / num_chunks) long; empty trailing chunks are skipped.
    """
    if num_subcarriers <= 0:
        return []
    num_chunks = max(1, num_chunks)
    size = -(-num_subcarriers // num_chunks)
    chunks = []
    for k in range(num_chunks):
        start = k * size
        end = min(num_subcarriers, start + size)
        if start >= end:
            continue
        chunks.append((start, end))
    return chunks


@dataclass
class FrameContext:
    """Frame-invariant inputs shared by all workers, plus the result slots."""

    tx: np.ndarray
    rx: np.ndarray
    frequencies: np.ndarray
    los_distance: float
    los_blocked: bool
    ground: GroundGeometry
    paths: PathCache
    results: dict[int, np.ndarray] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def store(self, chunk_index: int, samples: np.ndarray) -> None:
        with self.lock:
            self.results[chunk_index] = samples


def _phase(frequencies: np.ndarray, distance) -> np.ndarray:
    return np.exp(-2j * np.pi * frequencies * distance / SPEED_OF_LIGHT)


def compute_chunk(context: FrameContext, start: int, end: int) -> np.ndarray:
    """
    Compute (LOS, ground, NLOS mode 0, NLOS mode 1) for subcarriers [start, end).

    Returns:
        (end - start, 4) complex array in subcarrier order
    """
    f = context.frequencies[start:end]
    g0 = SPEED_OF_LIGHT / (4.0 * np.pi * f)
    out = np.zeros((end - start, 4), dtype=complex)

    if not context.los_blocked:
        d = context.los_distance
        out[:, 0] = g0 / d * _phase(f, d)

    ground = context.ground
    if not ground.blocked:
        d = ground.distance
        gain = ground_reflection_gain(ground.grazing_angle, f)
        out[:, 1] = g0 * gain / d * _phase(f, d)

    paths = context.paths
    if len(paths):
        d = paths.distances[np.newaxis, :]
        rotation = _phase(f[:, np.newaxis], d) * (g0[:, np.newaxis] / d)
        out[:, 2] = rotation @ paths.gains_mode0
        out[:, 3] = rotation @ paths.gains_mode1

    return out


def _worker(context: FrameContext, chunk_index: int, start: int, end: int) -> None:
    context.store(chunk_index, compute_chunk(context, start, end))


class ChannelEngine:
    """
    Multipath channel engine for one TX/RX pair.

    Thread-safety: tick() must be called from a single thread. Parallelism is
    internal: each tick fans out to the engine's worker pool and joins before
    returning.
    """

    def __init__(
        self,
        settings: EngineSettings,
        catalog: ScattererCatalog,
        oracle: OcclusionOracle | None,
        ground_height: float | None,
        exporter: ResultExporter | None = None,
        draw_queue: DrawQueue | None = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.oracle = oracle
        self.ground_height = ground_height
        self.exporter = exporter
        self.draw_queue = draw_queue

        self.frequencies = settings.subcarrier_frequencies()
        self.chunks = partition_subcarriers(settings.num_subcarriers, settings.num_workers)
        self.histories: dict[ChannelType, ChannelHistory] = new_histories(settings.num_subcarriers)
        self.state = EngineState.IDLE
        self.simulated_time = 0.0
        self.frames_computed = 0
        self.frames_skipped = 0
        self._export_done = False

        self._executor = ThreadPoolExecutor(
            max_workers=max(1, settings.num_workers), thread_name_prefix="gscm-worker"
        )

    @property
    def exported(self) -> bool:
        return self._export_done

    def close(self) -> None:
        """Shut down the worker pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ChannelEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def build_context(self, tx, rx) -> FrameContext:
        """Compute all frame-invariant geometry for the given positions."""
        tx = np.asarray(tx, dtype=float)
        rx = np.asarray(rx, dtype=float)
        return FrameContext(
            tx=tx,
            rx=rx,
            frequencies=self.frequencies,
            los_distance=float(np.linalg.norm(rx - tx)),
            los_blocked=is_blocked(self.oracle, tx, rx),
            ground=ground_reflection_geometry(tx, rx, self.ground_height, self.oracle),
            paths=PathCache.build(tx, rx, self.catalog, self.oracle, self.settings.propagation),
        )

    def compute_frame(self, tx, rx) -> FrameResult:
        """
        Compute one frame without touching the histories.

        Blocks until every worker has finished; no partial frame is returned.
        """
        self.state = EngineState.COMPUTING
        context = self.build_context(tx, rx)

        futures = [
            self._executor.submit(_worker, context, index, start, end)
            for index, (start, end) in enumerate(self.chunks)
        ]
        wait(futures)
        for future in futures:
            # Re-raise any worker failure in the orchestrating thread
            future.result()

        # Chunks are contiguous and ordered, so concatenating by chunk index
        # yields ascending subcarrier order.
        if self.chunks:
            merged = np.concatenate([context.results[i] for i in range(len(self.chunks))])
        else:
            merged = np.zeros((0, 4), dtype=complex)
        self.state = EngineState.MERGED

        if self.draw_queue is not None:
            self._emit_draw_requests(context)

        return FrameResult.from_samples(merged)

    def tick(self, tx, rx, dt: float) -> FrameResult | None:
        """
        Advance the simulation by one frame.

        Missing TX, RX or ground height skips the tick entirely. Once the
        accumulated simulated time reaches the configured duration the
        histories are exported exactly once; later ticks still compute frames
        but no longer append or export.

        Returns:
            The frame's FrameResult, or None if the tick was skipped or failed
        """
        if tx is None or rx is None or self.ground_height is None:
            missing = [
                name
                for name, ref in (("tx", tx), ("rx", rx), ("ground", self.ground_height))
                if ref is None
            ]
            logger.debug("Skipping tick, missing reference(s): %s", ", ".join(missing))
            self.frames_skipped += 1
            return None

        try:
            frame = self.compute_frame(tx, rx)
        except Exception as e:
            logger.error("Frame computation failed, skipping tick: %s", e)
            self.state = EngineState.EXPORTED if self.exported else EngineState.IDLE
            self.frames_skipped += 1
            return None

        self.frames_computed += 1
        if self.exported:
            self.state = EngineState.EXPORTED
            return frame

        for channel_type, response in frame.by_type().items():
            self.histories[channel_type].append(response)
        self.state = EngineState.APPENDED

        self.simulated_time += dt
        if self.simulated_time >= self.settings.duration_s:
            self.export()

        return frame

    def export(self) -> dict:
        """Export all histories (one-shot)."""
        if self._export_done:
            return {}
        self._export_done = True
        self.state = EngineState.EXPORTED
        if self.exporter is None:
            logger.warning("No exporter configured, results not written")
            return {}
        return self.exporter.export(self.histories)

    def _emit_draw_requests(self, context: FrameContext) -> None:
        """Queue path segments whose one-way gain at the carrier beats the threshold."""
        fc = self.settings.carrier_frequency_hz
        g0 = SPEED_OF_LIGHT / (4.0 * np.pi * fc)
        threshold = self.settings.draw_threshold_db
        mode = self.settings.draw_gain_mode

        def above(gain: float, distance: float) -> bool:
            amplitude = g0 * gain / distance
            return amplitude > 0 and 20.0 * math.log10(amplitude) > threshold

        tx, rx = context.tx, context.rx
        if not context.los_blocked and above(1.0, context.los_distance):
            self.draw_queue.emit(tx, rx, COLOR_LOS)

        ground = context.ground
        if not ground.blocked:
            gain = ground_reflection_gain(ground.grazing_angle, fc)
            if above(gain, ground.distance):
                self.draw_queue.emit_polyline([tx, ground.intersection, rx], COLOR_GROUND)

        for record in context.paths.records:
            if above(record.gain(mode), record.total_distance):
                color = COLOR_ORDER1 if record.order == 1 else COLOR_ORDER2
                self.draw_queue.emit_polyline([tx, *record.reflection_points, rx], color)
