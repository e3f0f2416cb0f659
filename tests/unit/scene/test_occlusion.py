"""
Unit tests for occlusion.py - segment occlusion oracles.

Tests include:
- Box slab test for crossing, missing and axis-parallel segments
- Endpoint margin for scatterers on building faces
- Fail-safe handling of missing or unavailable oracles
"""

import pytest

from gscm.scene.occlusion import (
    Box,
    BoxOcclusionOracle,
    OcclusionQueryUnavailable,
    OpenSkyOracle,
    is_blocked,
)


@pytest.fixture
def tower() -> BoxOcclusionOracle:
    """Single 2 x 10 x 2 m tower centred on the origin."""
    return BoxOcclusionOracle([Box("tower", (-1.0, 0.0, -1.0), (1.0, 10.0, 1.0))])


class TestBoxOcclusionOracle:
    """Test segment vs axis-aligned box queries."""

    def test_segment_through_box_is_blocked(self, tower):
        """A segment crossing the tower is blocked."""
        assert tower.blocked((-5, 1, 0), (5, 1, 0))

    def test_segment_over_box_is_clear(self, tower):
        """A segment passing above the tower is clear."""
        assert not tower.blocked((-5, 20, 0), (5, 20, 0))

    def test_segment_beside_box_is_clear(self, tower):
        """A diagonal segment missing the tower is clear."""
        assert not tower.blocked((-5, 1, 5), (5, 2, 3))

    def test_axis_parallel_outside_slab(self, tower):
        """Segment parallel to two axes but outside the z slab is clear."""
        assert not tower.blocked((-5, 1, 5), (5, 1, 5))

    def test_axis_parallel_inside_slabs(self, tower):
        """Segment parallel to two axes and inside both slabs is blocked."""
        assert tower.blocked((-5, 5, 0.5), (5, 5, 0.5))

    def test_segment_ending_on_face_is_clear(self, tower):
        """A scatterer on the face is not hidden by its own building."""
        assert not tower.blocked((-5, 1, 0), (-1, 1, 0))

    def test_segment_ending_inside_box_is_blocked(self, tower):
        """A segment that penetrates past the margin is blocked."""
        assert tower.blocked((-5, 1, 0), (-0.5, 1, 0))

    def test_segment_shorter_than_margin(self, tower):
        """Degenerate short segments are never blocked."""
        assert not tower.blocked((0, 0, 0), (0.01, 0, 0))

    def test_segment_reversed_direction(self, tower):
        """Direction does not matter."""
        assert tower.blocked((5, 1, 0), (-5, 1, 0))

    def test_empty_scene(self):
        """No boxes, nothing blocked."""
        oracle = BoxOcclusionOracle([])
        assert oracle.num_boxes == 0
        assert not oracle.blocked((0, 0, 0), (10, 10, 10))

    def test_multiple_boxes(self):
        """Any box on the segment blocks it."""
        oracle = BoxOcclusionOracle(
            [
                Box("a", (10, 0, -1), (12, 5, 1)),
                Box("b", (20, 0, -1), (22, 5, 1)),
            ]
        )
        assert oracle.blocked((15, 1, 0), (25, 1, 0))
        assert not oracle.blocked((13, 1, 0), (19, 1, 0))

    def test_not_ready_raises(self, tower):
        """Queries before the scene is ready raise OcclusionQueryUnavailable."""
        tower.ready = False
        with pytest.raises(OcclusionQueryUnavailable):
            tower.blocked((-5, 1, 0), (5, 1, 0))


class TestIsBlocked:
    """Test the fail-safe query wrapper."""

    def test_open_sky(self):
        """OpenSkyOracle never blocks."""
        assert not is_blocked(OpenSkyOracle(), (0, 0, 0), (100, 0, 0))

    def test_missing_oracle_blocks(self):
        """No oracle at all: everything is blocked."""
        assert is_blocked(None, (0, 0, 0), (100, 0, 0))

    def test_unavailable_oracle_blocks(self, tower):
        """An unavailable oracle fails safe as blocked."""
        tower.ready = False
        assert is_blocked(tower, (-5, 20, 0), (5, 20, 0))

    def test_passes_through_answer(self, tower):
        """A ready oracle's answer is returned unchanged."""
        assert is_blocked(tower, (-5, 1, 0), (5, 1, 0))
        assert not is_blocked(tower, (-5, 20, 0), (5, 20, 0))
