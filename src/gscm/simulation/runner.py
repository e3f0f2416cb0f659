"""
SimulationRunner: wires a SimulationConfig into a running channel engine.

Builds the occlusion oracle from the scene's buildings, the scatterer catalog
(with a seeded random generator when the config sets a seed), the engine,
exporter and draw queue, then steps the simulation clock at the configured
frame rate until the engine has exported its histories.
"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from gscm.channel.draw import DrawQueue
from gscm.channel.engine import ChannelEngine, EngineSettings
from gscm.channel.export import ResultExporter
from gscm.channel.history import ChannelType
from gscm.channel.path_cache import PropagationSettings
from gscm.config.schema import SimulationConfig
from gscm.scene.occlusion import Box, BoxOcclusionOracle, OcclusionOracle
from gscm.scene.scatterers import ScattererCatalog
from gscm.simulation.mobility import LinearMobility, PositionSource

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """What a run produced."""

    name: str
    frames_computed: int
    frames_skipped: int
    simulated_time_s: float
    num_first_order: int
    num_second_order_pairs: int
    written: dict[ChannelType, Path] = field(default_factory=dict)
    draw_requests: int = 0
    draw_dropped: int = 0


def build_oracle(config: SimulationConfig) -> BoxOcclusionOracle:
    """Occlusion oracle over the scene's building boxes."""
    boxes = [
        Box(name=b.name, min_corner=b.min.as_tuple(), max_corner=b.max.as_tuple())
        for b in config.scene.buildings
    ]
    return BoxOcclusionOracle(boxes)


def engine_settings(config: SimulationConfig) -> EngineSettings:
    """Translate the config into engine settings."""
    ch = config.channel
    prop = config.propagation
    return EngineSettings(
        carrier_frequency_hz=ch.carrier_frequency_hz,
        num_subcarriers=ch.num_subcarriers,
        subcarrier_spacing_hz=ch.subcarrier_spacing_hz,
        num_workers=ch.num_workers,
        duration_s=config.simulation.duration_s,
        propagation=PropagationSettings(
            angle_tolerance=prop.angle_tolerance_rad,
            diffuse_enabled=prop.diffuse_enabled,
            penalty_factors=dict(prop.penalty_factors),
        ),
        draw_gain_mode=prop.draw_gain_mode,
        draw_threshold_db=prop.draw_threshold_db,
    )


class SimulationRunner:
    """Run one configured simulation from start to export."""

    def __init__(
        self,
        config: SimulationConfig,
        engine: ChannelEngine,
        tx_source: Optional[PositionSource],
        rx_source: Optional[PositionSource],
        draw_queue: Optional[DrawQueue] = None,
        draw_path: Optional[Callable[[tuple, tuple, str], None]] = None,
    ):
        self.config = config
        self.engine = engine
        self.tx_source = tx_source
        self.rx_source = rx_source
        self.draw_queue = draw_queue
        self.draw_path = draw_path
        self.draw_requests = 0

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        oracle: Optional[OcclusionOracle] = None,
        output_dir: Optional[Path] = None,
        draw_path: Optional[Callable[[tuple, tuple, str], None]] = None,
    ) -> "SimulationRunner":
        """
        Build every collaborator from the config.

        Args:
            config: Validated simulation config
            oracle: Occlusion oracle; defaults to one built from the buildings
            output_dir: Overrides config.output.directory
            draw_path: Optional renderer callback fed from the draw queue
        """
        rng = np.random.default_rng(config.simulation.seed)
        if config.simulation.seed is None:
            logger.info("No seed configured; catalog sampling is not reproducible")

        oracle = oracle if oracle is not None else build_oracle(config)
        catalog = ScattererCatalog.build(
            config.scene.scatterers,
            metal_only=config.catalog.metal_only,
            max_order2_pairs=config.catalog.max_order2_pairs,
            oracle=oracle,
            rng=rng,
            metallic_buildings=config.scene.metallic_buildings,
        )

        draw_queue = DrawQueue(config.propagation.draw_queue_size)
        exporter = ResultExporter(output_dir or Path(config.output.directory))
        engine = ChannelEngine(
            engine_settings(config),
            catalog,
            oracle,
            config.scene.ground_height,
            exporter=exporter,
            draw_queue=draw_queue,
        )
        return cls(
            config,
            engine,
            LinearMobility.from_config(config.scene.tx),
            LinearMobility.from_config(config.scene.rx),
            draw_queue=draw_queue,
            draw_path=draw_path,
        )

    @property
    def dt(self) -> float:
        return 1.0 / self.config.simulation.frame_rate_hz

    @property
    def max_frames(self) -> int:
        """Frame cap so that a run with missing references still terminates."""
        sim = self.config.simulation
        return math.ceil(sim.duration_s * sim.frame_rate_hz) + 1

    def step(self, frame_index: int) -> None:
        """Run one tick at simulated time frame_index * dt."""
        t = frame_index * self.dt
        tx = self.tx_source.position_at(t) if self.tx_source is not None else None
        rx = self.rx_source.position_at(t) if self.rx_source is not None else None
        self.engine.tick(tx, rx, self.dt)

        if self.draw_queue is not None:
            if self.draw_path is not None:
                self.draw_requests += self.draw_queue.drain_to(self.draw_path)
            else:
                self.draw_requests += len(self.draw_queue.drain())

    def run(self) -> RunSummary:
        """Tick until the engine exports (or the frame cap is hit)."""
        logger.info(
            "Running '%s': %d subcarriers, %.1f s at %.1f fps",
            self.config.name,
            self.config.channel.num_subcarriers,
            self.config.simulation.duration_s,
            self.config.simulation.frame_rate_hz,
        )
        written: dict[ChannelType, Path] = {}
        with self.engine:
            for frame_index in range(self.max_frames):
                self.step(frame_index)
                if self.engine.exported:
                    break
            else:
                logger.warning(
                    "Frame cap reached after %d frames without export "
                    "(%d skipped); exporting what was accumulated",
                    self.max_frames,
                    self.engine.frames_skipped,
                )
            if not self.engine.exported:
                self.engine.export()
            if self.engine.exporter is not None:
                written = dict(self.engine.exporter.written)

        return RunSummary(
            name=self.config.name,
            frames_computed=self.engine.frames_computed,
            frames_skipped=self.engine.frames_skipped,
            simulated_time_s=self.engine.simulated_time,
            num_first_order=len(self.engine.catalog.first_order),
            num_second_order_pairs=len(self.engine.catalog.second_order_pairs),
            written=written,
            draw_requests=self.draw_requests,
            draw_dropped=self.draw_queue.dropped if self.draw_queue is not None else 0,
        )
