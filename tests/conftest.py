"""Pytest configuration and fixtures for gscm tests."""

from pathlib import Path

import numpy as np
import pytest

from gscm.config.schema import ScattererConfig


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def examples_dir(project_root: Path) -> Path:
    """Return the examples directory."""
    return project_root / "examples"


@pytest.fixture
def sample_config_path(examples_dir: Path) -> Path:
    """Return path to the sample simulation config."""
    return examples_dir / "urban_street" / "simulation.yaml"


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator for reproducible catalogs."""
    return np.random.default_rng(1234)


def make_scatterer(
    position,
    normal=(0.0, 1.0, 0.0),
    material: str = "concrete",
    order: int = 1,
    building: str = "",
) -> ScattererConfig:
    """Build a scatterer descriptor."""
    return ScattererConfig(
        position=tuple(position),
        normal=tuple(normal),
        material=material,
        order=order,
        building=building,
    )


@pytest.fixture
def scatterer_factory():
    """Factory fixture for scatterer descriptors."""
    return make_scatterer
