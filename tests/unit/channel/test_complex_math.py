"""Unit tests for complex_math.py - principal square root and polar helpers."""

import math

import numpy as np
import pytest

from gscm.channel.complex_math import from_polar, magnitude, principal_sqrt


class TestPrincipalSqrt:
    """Test the explicit principal-branch square root."""

    @pytest.mark.parametrize(
        "z,expected",
        [
            (4.0 + 0j, 2.0 + 0j),
            (-4.0 + 0j, 2j),
            (3.0 + 4j, 2.0 + 1j),
            (0j, 0j),
        ],
    )
    def test_known_values(self, z: complex, expected: complex):
        """Scalar inputs return Python complex values on the principal branch."""
        result = principal_sqrt(z)
        assert isinstance(result, complex)
        assert result == pytest.approx(expected)

    def test_squares_back(self):
        """sqrt(z)^2 recovers z."""
        z = 13.35 - 1.31j
        assert principal_sqrt(z) ** 2 == pytest.approx(z)

    def test_non_negative_real_part(self):
        """The principal root never has a negative real part."""
        rng = np.random.default_rng(3)
        z = rng.normal(size=100) + 1j * rng.normal(size=100)
        assert np.all(principal_sqrt(z).real >= 0)

    def test_matches_numpy_on_arrays(self):
        """Array input agrees with numpy's principal sqrt."""
        rng = np.random.default_rng(5)
        z = rng.normal(size=50) + 1j * rng.normal(size=50)
        np.testing.assert_allclose(principal_sqrt(z), np.sqrt(z), rtol=1e-12)


class TestPolarHelpers:
    """Test magnitude and from_polar."""

    def test_from_polar(self):
        """Magnitude 2 at 90 degrees is 2j."""
        assert complex(from_polar(2.0, math.pi / 2)) == pytest.approx(2j)

    def test_magnitude(self):
        """|3 + 4j| is 5."""
        assert magnitude(3 + 4j) == pytest.approx(5.0)
