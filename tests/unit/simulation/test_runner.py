"""
Unit tests for runner.py - end-to-end simulation runs.

Uses small in-memory configs (few subcarriers, short duration) so every run
finishes in well under a second.
"""

import numpy as np
import pytest

from gscm.channel.export import CHANNEL_FILENAMES, read_history
from gscm.channel.history import ChannelType
from gscm.config.schema import SimulationConfig
from gscm.scene.occlusion import OpenSkyOracle
from gscm.simulation.runner import SimulationRunner, build_oracle, engine_settings


def small_config(**scene_overrides) -> SimulationConfig:
    scene = {
        "ground_height": 0.0,
        "scatterers": [
            {"position": [0.0, 5.0, 20.0], "normal": [0.0, 0.0, -1.0], "material": "metal"},
            {"position": [0.0, 5.0, -20.0], "normal": [0.0, 0.0, 1.0], "material": "glass"},
        ],
        "tx": {"position": {"x": -50, "y": 2, "z": 0}, "velocity": {"x": 5, "y": 0, "z": 0}},
        "rx": {"position": {"x": 50, "y": 1.5, "z": 0}},
    }
    scene.update(scene_overrides)
    return SimulationConfig.model_validate(
        {
            "name": "small",
            "channel": {"num_subcarriers": 8, "num_workers": 3},
            "simulation": {"duration_s": 1.0, "frame_rate_hz": 4, "seed": 3},
            "scene": scene,
        }
    )


class TestSimulationRunner:
    """Test full runs."""

    def test_run_exports_all_histories(self, tmp_path):
        """A run ticks until the duration is reached and writes four files."""
        runner = SimulationRunner.from_config(small_config(), output_dir=tmp_path)
        summary = runner.run()

        assert summary.frames_computed == 4
        assert summary.frames_skipped == 0
        assert summary.simulated_time_s == pytest.approx(1.0)
        assert summary.num_first_order == 2
        assert set(summary.written) == set(ChannelType)
        for channel_type, name in CHANNEL_FILENAMES.items():
            data = read_history(tmp_path / name)
            assert data.shape == (4, 8)
            assert np.all(np.isfinite(data))

    def test_moving_tx_changes_los(self, tmp_path):
        """Each frame reflects the TX position at its own time."""
        SimulationRunner.from_config(small_config(), output_dir=tmp_path).run()
        los = read_history(tmp_path / CHANNEL_FILENAMES[ChannelType.LOS])
        assert not np.allclose(los[0], los[-1])
        # Moving closer raises the free-space magnitude
        assert np.abs(los[-1, 0]) > np.abs(los[0, 0])

    def test_missing_tx_skips_every_frame(self, tmp_path):
        """Without a TX nothing is computed; empty histories are exported at the frame cap."""
        runner = SimulationRunner.from_config(small_config(tx=None), output_dir=tmp_path)
        summary = runner.run()

        assert summary.frames_computed == 0
        assert summary.frames_skipped == runner.max_frames
        assert summary.simulated_time_s == 0.0
        assert len(summary.written) == 4
        assert read_history(tmp_path / CHANNEL_FILENAMES[ChannelType.LOS]).shape == (0, 0)

    def test_same_seed_same_results(self, tmp_path):
        """A seeded run is reproducible."""
        config = small_config()
        SimulationRunner.from_config(config, output_dir=tmp_path / "a").run()
        SimulationRunner.from_config(config, output_dir=tmp_path / "b").run()
        name = CHANNEL_FILENAMES[ChannelType.NLOS_MODE1]
        np.testing.assert_array_equal(
            read_history(tmp_path / "a" / name), read_history(tmp_path / "b" / name)
        )

    def test_draw_callback_receives_segments(self, tmp_path):
        """Draw requests are forwarded to the renderer callback after each tick."""
        segments = []
        runner = SimulationRunner.from_config(
            small_config(),
            oracle=OpenSkyOracle(),
            output_dir=tmp_path,
            draw_path=lambda start, end, tag: segments.append(tag),
        )
        summary = runner.run()

        assert summary.draw_requests == len(segments)
        assert "los" in segments
        assert "ground" in segments


class TestConfigTranslation:
    """Test config -> collaborator helpers."""

    def test_engine_settings(self):
        settings = engine_settings(small_config())
        assert settings.num_subcarriers == 8
        assert settings.num_workers == 3
        assert settings.duration_s == 1.0
        assert settings.propagation.angle_tolerance == 0.35

    def test_build_oracle(self):
        config = small_config(
            buildings=[{"name": "wall", "min": {"x": -1, "y": 0, "z": -5}, "max": {"x": 1, "y": 50, "z": 5}}]
        )
        oracle = build_oracle(config)
        assert oracle.num_boxes == 1
        assert oracle.blocked((-10, 2, 0), (10, 2, 0))
        assert not oracle.blocked((-10, 2, 20), (10, 2, 20))
