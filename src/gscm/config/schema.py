"""
Pydantic models for gscm simulation configuration.

This module defines the schema for simulation YAML files that describe:
- The OFDM subcarrier grid
- Simulation duration and random seed
- Angular gain / propagation parameters
- Scatterer catalog options
- The scene: ground, buildings, scatterers, TX and RX
- Output location
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gscm.channel.propagation import DEFAULT_PENALTY_FACTORS, GainMode
from gscm.scene.materials import Material


class Position(BaseModel):
    """3D position in meters (y is up)."""

    model_config = ConfigDict(extra="forbid")

    x: float = Field(..., description="X coordinate in meters")
    y: float = Field(..., description="Y coordinate in meters (height)")
    z: float = Field(..., description="Z coordinate in meters")

    def as_tuple(self) -> tuple[float, float, float]:
        """Return position as (x, y, z) tuple."""
        return (self.x, self.y, self.z)


class ChannelParams(BaseModel):
    """OFDM subcarrier grid and worker fan-out."""

    model_config = ConfigDict(extra="forbid")

    carrier_frequency_hz: float = Field(default=3.2e9, gt=0.0, description="Carrier frequency")
    num_subcarriers: int = Field(default=1024, gt=0, description="Number of subcarriers")
    subcarrier_spacing_hz: float = Field(default=500e3, gt=0.0, description="Subcarrier spacing")
    num_workers: int = Field(default=8, ge=1, le=256, description="Parallel worker tasks per frame")

    @model_validator(mode="after")
    def validate_band_positive(self) -> "ChannelParams":
        """Lowest subcarrier must stay above 0 Hz."""
        lowest = self.carrier_frequency_hz - self.num_subcarriers * 0.5 * self.subcarrier_spacing_hz
        if lowest <= 0:
            raise ValueError(
                f"Subcarrier grid reaches {lowest:.0f} Hz; "
                "reduce num_subcarriers or subcarrier_spacing_hz"
            )
        return self

    @property
    def bandwidth_hz(self) -> float:
        return self.num_subcarriers * self.subcarrier_spacing_hz


class SimulationParams(BaseModel):
    """Simulation clock and randomness."""

    model_config = ConfigDict(extra="forbid")

    duration_s: float = Field(default=10.0, gt=0.0, description="Simulated duration before export")
    frame_rate_hz: float = Field(default=60.0, gt=0.0, description="Simulation ticks per second")
    seed: int | None = Field(
        default=None, description="Random seed; omit for non-reproducible runs"
    )


class PropagationParams(BaseModel):
    """Angular gain and diagnostic drawing parameters."""

    model_config = ConfigDict(extra="forbid")

    angle_tolerance_rad: float = Field(default=0.35, ge=0.0, le=3.1416)
    diffuse_enabled: bool = Field(default=False)
    penalty_factors: dict[Material, float] = Field(
        default_factory=lambda: dict(DEFAULT_PENALTY_FACTORS),
        description="Specular deviation penalty per material",
    )
    draw_gain_mode: GainMode = Field(
        default=GainMode.ENHANCED,
        description="Angular gain mode used for the draw threshold (0 or 1)",
    )
    draw_threshold_db: float = Field(default=-100.0, description="Minimum one-way gain to draw")
    draw_queue_size: int = Field(default=4096, ge=1)

    @field_validator("penalty_factors", mode="after")
    @classmethod
    def fill_missing_materials(cls, v: dict[Material, float]) -> dict[Material, float]:
        """Materials not listed keep their default penalty."""
        for material, factor in v.items():
            if factor < 0:
                raise ValueError(f"Penalty factor for {material.value} must be >= 0")
        return {**DEFAULT_PENALTY_FACTORS, **v}


class CatalogParams(BaseModel):
    """Scatterer catalog options."""

    model_config = ConfigDict(extra="forbid")

    metal_only: bool = Field(default=False, description="Keep only metallic scatterers/pairs")
    max_order2_pairs: int = Field(default=2000, ge=0)


class BuildingConfig(BaseModel):
    """Axis-aligned building box."""

    model_config = ConfigDict(extra="forbid")

    name: str
    min: Position
    max: Position
    material: Material = Field(default=Material.CONCRETE)

    @model_validator(mode="after")
    def validate_corners(self) -> "BuildingConfig":
        for axis in ("x", "y", "z"):
            if getattr(self.min, axis) > getattr(self.max, axis):
                raise ValueError(f"Building '{self.name}': min.{axis} > max.{axis}")
        return self


class ScattererConfig(BaseModel):
    """A scatterer descriptor from the scene generator."""

    model_config = ConfigDict(extra="forbid")

    position: tuple[float, float, float]
    normal: tuple[float, float, float]
    material: str = Field(default="other", description="Unknown materials map to 'other'")
    order: int = Field(default=1, description="1 or 2; other values are ignored")
    building: str = Field(default="")


class NodeConfig(BaseModel):
    """TX or RX placement with optional constant velocity."""

    model_config = ConfigDict(extra="forbid")

    position: Position
    velocity: Position | None = Field(default=None, description="Constant velocity in m/s")


class SceneConfig(BaseModel):
    """Scene contents consumed by the channel engine."""

    model_config = ConfigDict(extra="forbid")

    ground_height: float | None = Field(default=0.0, description="Ground plane height (y)")
    buildings: list[BuildingConfig] = Field(default_factory=list)
    scatterers: list[ScattererConfig] = Field(default_factory=list)
    tx: NodeConfig | None = None
    rx: NodeConfig | None = None

    @property
    def metallic_buildings(self) -> set[str]:
        return {b.name for b in self.buildings if b.material is Material.METAL}


class OutputConfig(BaseModel):
    """Where exported histories go."""

    model_config = ConfigDict(extra="forbid")

    directory: str = Field(default="output")


class SimulationConfig(BaseModel):
    """Root definition for simulation YAML files."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Run name")
    channel: ChannelParams = Field(default_factory=ChannelParams)
    simulation: SimulationParams = Field(default_factory=SimulationParams)
    propagation: PropagationParams = Field(default_factory=PropagationParams)
    catalog: CatalogParams = Field(default_factory=CatalogParams)
    scene: SceneConfig = Field(default_factory=SceneConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
