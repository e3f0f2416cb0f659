"""
Complex helpers used by the propagation model.

Python's built-in ``complex`` (and numpy ``complex128`` arrays) already cover
add/sub/mul/div/power. The square root used for the Fresnel coefficients is
spelled out here so its branch is explicit:

    |sqrt(z)| = sqrt(|z|),  arg(sqrt(z)) = atan2(im, re) / 2

All functions accept Python scalars or numpy arrays.
"""

import numpy as np


def magnitude(z):
    """Return |z|."""
    return np.abs(z)


def from_polar(mag, angle):
    """Build a complex value from magnitude and angle (radians)."""
    return mag * np.exp(1j * angle)


def principal_sqrt(z):
    """Principal complex square root (branch cut along the negative real axis)."""
    z = np.asarray(z, dtype=complex)
    result = from_polar(np.sqrt(np.abs(z)), np.arctan2(z.imag, z.real) / 2.0)
    if result.ndim == 0:
        return complex(result)
    return result
