"""Configuration schema and loading for gscm simulations."""

from gscm.config.schema import (
    BuildingConfig,
    CatalogParams,
    ChannelParams,
    NodeConfig,
    OutputConfig,
    Position,
    PropagationParams,
    SceneConfig,
    ScattererConfig,
    SimulationConfig,
    SimulationParams,
)
from gscm.config.loader import ConfigLoader, ConfigLoadError, load_config

__all__ = [
    "BuildingConfig",
    "CatalogParams",
    "ChannelParams",
    "ConfigLoadError",
    "ConfigLoader",
    "NodeConfig",
    "OutputConfig",
    "Position",
    "PropagationParams",
    "SceneConfig",
    "ScattererConfig",
    "SimulationConfig",
    "SimulationParams",
    "load_config",
]
