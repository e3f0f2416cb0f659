"""
Propagation model: angular gain, material reflection and ground reflection.

Angular gain models how much energy a scatterer redirects from the TX towards
the RX, given the geometry at the scatter point. Two modes are supported:

- EMPIRICAL (mode 0): COST-IRACON style exponential penalties for leaving the
  specular direction and for near-grazing incidence/exitance.
- ENHANCED (mode 1): Fresnel-like boost towards grazing angles combined with
  the same specular-deviation penalty.

Material reflection coefficients are drawn at random per scatterer. Mode 0
ignores the material on purpose (the empirical baseline), mode 1 samples a
material-specific range.

Ground reflection uses the complex Fresnel coefficients of a lossy ground
whose permittivity follows the ITU-R P.2040 power law for medium-dry ground.
"""

import logging
import math
from enum import IntEnum
from typing import NamedTuple, Sequence

import numpy as np

from gscm.channel.complex_math import magnitude, principal_sqrt
from gscm.scene.materials import Material

logger = logging.getLogger(__name__)

# Physical constants
SPEED_OF_LIGHT = 299_792_458.0  # m/s

# Angular gain constants
DEFAULT_ANGLE_TOLERANCE_RAD = 0.35
GRAZING_THRESHOLD_RAD = 1.22  # ~70 degrees
GRAZING_PENALTY = 12.0

DEFAULT_PENALTY_FACTORS: dict[Material, float] = {
    Material.CONCRETE: 4.0,
    Material.GLASS: 6.0,
    Material.METAL: 8.0,
    Material.OTHER: 4.0,
}

# Material reflection coefficient ranges (mode 1) and the empirical range (mode 0)
EMPIRICAL_REFLECTION_RANGE = (0.139, 0.984)
MATERIAL_REFLECTION_RANGES: dict[Material, tuple[float, float]] = {
    Material.METAL: (0.99, 1.0),
    Material.GLASS: (0.3, 0.55),
    Material.CONCRETE: (0.25, 0.5),
}
DEFAULT_REFLECTION_COEFF = 0.375

# ITU-R P.2040 medium-dry ground: eps' = a f^b, sigma = c f^d (f in GHz)
GROUND_EPS_A = 15.0
GROUND_EPS_B = -0.1
GROUND_SIGMA_C = 0.035
GROUND_SIGMA_D = 1.63


class GainMode(IntEnum):
    """Angular gain / reflection coefficient model."""

    EMPIRICAL = 0
    ENHANCED = 1


class ReflectionAngles(NamedTuple):
    """Angles at a scatter point, all in radians."""

    incidence: float
    exitance: float
    deviation: float


MIN_LEG_LENGTH = 1e-12  # m; shorter legs or normals have no direction

INVALID_ANGLES = ReflectionAngles(math.nan, math.nan, math.nan)


def reflection_angles(
    tx: Sequence[float],
    rx: Sequence[float],
    scatter_pos: Sequence[float],
    normal: Sequence[float],
) -> ReflectionAngles:
    """
    Compute incidence, exitance and specular deviation at a scatter point.

    Incidence and exitance are measured from the surface normal. Deviation is
    the angle between the specular reflection of the incoming ray and the
    actual outgoing ray towards the RX.

    A zero-length leg or normal has no direction; all three angles are then
    NaN (INVALID_ANGLES).
    """
    tx = np.asarray(tx, dtype=float)
    rx = np.asarray(rx, dtype=float)
    pos = np.asarray(scatter_pos, dtype=float)
    n = np.asarray(normal, dtype=float)
    d_in = pos - tx
    d_out = rx - pos

    lengths = [float(np.linalg.norm(v)) for v in (n, d_in, d_out)]
    if min(lengths) < MIN_LEG_LENGTH:
        return INVALID_ANGLES
    n, d_in, d_out = (v / length for v, length in zip((n, d_in, d_out), lengths))

    incidence = math.acos(float(np.clip(np.dot(-d_in, n), -1.0, 1.0)))
    exitance = math.acos(float(np.clip(np.dot(d_out, n), -1.0, 1.0)))

    specular = d_in - 2.0 * np.dot(d_in, n) * n
    deviation = math.acos(float(np.clip(np.dot(specular, d_out), -1.0, 1.0)))

    return ReflectionAngles(incidence, exitance, deviation)


def angular_gain(
    mode: GainMode,
    tx: Sequence[float],
    rx: Sequence[float],
    scatter_pos: Sequence[float],
    normal: Sequence[float],
    material: Material = Material.OTHER,
    penalty_factor: float | None = None,
    diffuse_enabled: bool = False,
    angle_tolerance: float = DEFAULT_ANGLE_TOLERANCE_RAD,
) -> float:
    """
    Angular gain of a single bounce TX -> scatter point -> RX.

    Args:
        mode: EMPIRICAL (0) or ENHANCED (1)
        tx: Position the ray arrives from
        rx: Position the ray leaves towards
        scatter_pos: Scatter point position
        normal: Surface normal at the scatter point
        material: Surface material, selects the default penalty factor
        penalty_factor: Deviation penalty; defaults to the material's entry
            in DEFAULT_PENALTY_FACTORS
        diffuse_enabled: Mode 0 only; use the grazing penalty for the
            deviation term when incidence is near-grazing
        angle_tolerance: Specular deviation tolerated without penalty (rad)

    Returns:
        Non-negative gain (mode 1 may exceed 1 before clamping)
    """
    if penalty_factor is None:
        penalty_factor = DEFAULT_PENALTY_FACTORS.get(material, DEFAULT_PENALTY_FACTORS[Material.OTHER])

    theta_i, theta_o, deviation = reflection_angles(tx, rx, scatter_pos, normal)
    if not (math.isfinite(theta_i) and math.isfinite(theta_o)):
        return 1.0

    deviation_excess = max(0.0, abs(deviation) - angle_tolerance)

    if mode == GainMode.EMPIRICAL:
        k_dev = penalty_factor
        if diffuse_enabled and theta_i > GRAZING_THRESHOLD_RAD:
            k_dev = GRAZING_PENALTY
        grazing_excess = max(0.0, theta_i - GRAZING_THRESHOLD_RAD) + max(
            0.0, theta_o - GRAZING_THRESHOLD_RAD
        )
        return math.exp(-k_dev * deviation_excess - GRAZING_PENALTY * grazing_excess)

    mean_angle_deg = math.degrees(0.5 * (theta_i + theta_o))
    boost = 1.0 + 1.44 * (mean_angle_deg / 90.0) ** 6.96
    return boost * math.exp(-penalty_factor * deviation_excess)


def clamp_gain(gain: float) -> float:
    """Clamp a gain product into [0, 1]; a reflection cannot amplify."""
    return min(1.0, max(0.0, gain))


def material_reflection_coefficient(
    material: Material,
    mode: GainMode,
    rng: np.random.Generator,
) -> float:
    """
    Draw a reflection coefficient for a scatterer.

    Mode 0 is material-blind: uniform in [0.139, 0.984]. Mode 1 samples a
    material-specific range and falls back to 0.375 for unknown materials.
    """
    if mode == GainMode.EMPIRICAL:
        low, high = EMPIRICAL_REFLECTION_RANGE
        return float(rng.uniform(low, high))

    bounds = MATERIAL_REFLECTION_RANGES.get(material)
    if bounds is None:
        return DEFAULT_REFLECTION_COEFF
    return float(rng.uniform(*bounds))


def ground_permittivity(frequency_hz):
    """
    Complex relative permittivity of medium-dry ground.

    eps = a f^b - j * 17.98 * (c f^d) / f, with f in GHz.
    """
    f_ghz = np.asarray(frequency_hz, dtype=float) / 1e9
    eps_real = GROUND_EPS_A * f_ghz**GROUND_EPS_B
    sigma = GROUND_SIGMA_C * f_ghz**GROUND_SIGMA_D
    return eps_real - 1j * 17.98 * sigma / f_ghz


def fresnel_coefficients(grazing_angle, permittivity):
    """
    TE and TM Fresnel reflection coefficients for a grazing angle (rad).

    Returns:
        (gamma_te, gamma_tm) complex values (or arrays)
    """
    sin_psi = np.sin(grazing_angle)
    root = principal_sqrt(permittivity - np.cos(grazing_angle) ** 2)
    gamma_te = (sin_psi - root) / (sin_psi + root)
    gamma_tm = (permittivity * sin_psi - root) / (permittivity * sin_psi + root)
    return gamma_te, gamma_tm


def ground_reflection_gain(grazing_angle, frequency_hz):
    """
    Magnitude of the ground reflection coefficient.

    Combines TE and TM as the root-mean-square of their squares. A result
    above 1 is physically invalid; it is logged and returned unchanged.

    Args:
        grazing_angle: Angle between the ray and the ground plane (rad)
        frequency_hz: Frequency in Hz (scalar or numpy array)

    Returns:
        Gain magnitude (float, or array matching frequency_hz)
    """
    gamma_te, gamma_tm = fresnel_coefficients(grazing_angle, ground_permittivity(frequency_hz))
    gain = magnitude(principal_sqrt((gamma_te**2 + gamma_tm**2) / 2.0))

    if np.any(gain > 1.0):
        logger.warning(
            "Invalid ground reflection gain %.6f > 1 (grazing angle %.4f rad)",
            float(np.max(gain)),
            float(grazing_angle),
        )

    if np.ndim(gain) == 0:
        return float(gain)
    return gain
