"""Unit tests for hapnet.network.geometry."""

from __future__ import annotations

import math

import numpy as np
import pytest

from hapnet.network.geometry import (
    angle_between,
    as_vector,
    azimuth_deg,
    direction_to,
    distance_m,
    vector_norm,
)


class TestAsVector:
    """Tests for as_vector."""

    def test_list_becomes_float_array(self) -> None:
        """Lists are converted to float64 arrays."""
        v = as_vector([1, 2, 3])
        assert v.dtype == np.float64
        assert v.tolist() == [1.0, 2.0, 3.0]

    def test_wrong_shape_rejected(self) -> None:
        """Only 3-vectors are accepted."""
        with pytest.raises(ValueError):
            as_vector([1.0, 2.0])


class TestDistances:
    """Tests for vector_norm, distance_m and direction_to."""

    def test_norm(self) -> None:
        assert vector_norm([3.0, 4.0, 0.0]) == pytest.approx(5.0)

    def test_distance_is_symmetric(self) -> None:
        a, b = (0.0, 0.0, 20000.0), (2500.0, 0.0, 0.0)
        assert distance_m(a, b) == pytest.approx(distance_m(b, a))
        assert distance_m(a, b) == pytest.approx(math.hypot(2500.0, 20000.0))

    def test_direction_to(self) -> None:
        d = direction_to((1.0, 1.0, 1.0), (2.0, 3.0, 4.0))
        assert d.tolist() == [1.0, 2.0, 3.0]


class TestAngleBetween:
    """Tests for angle_between."""

    def test_parallel_vectors(self) -> None:
        """Same direction gives zero angle regardless of length."""
        assert angle_between([1, 0, 0], [5, 0, 0]) == pytest.approx(0.0)

    def test_perpendicular_vectors(self) -> None:
        assert angle_between([1, 0, 0], [0, 1, 0]) == pytest.approx(math.pi / 2)

    def test_opposite_vectors(self) -> None:
        assert angle_between([0, 0, 1], [0, 0, -2]) == pytest.approx(math.pi)

    def test_zero_length_vector_gives_zero(self) -> None:
        """Degenerate geometry is not an error: angle is defined as 0."""
        assert angle_between([0, 0, 0], [1, 2, 3]) == 0.0
        assert angle_between([1, 2, 3], [0, 0, 0]) == 0.0

    def test_rounding_does_not_leave_acos_domain(self) -> None:
        """Nearly parallel vectors whose cosine rounds above 1 still work."""
        v = [0.1, 0.2, 0.3]
        w = [0.1 * 3, 0.2 * 3, 0.3 * 3]
        angle = angle_between(v, w)
        assert 0.0 <= angle < 1e-6


class TestAzimuth:
    """Tests for azimuth_deg."""

    @pytest.mark.parametrize(
        "vector, expected",
        [
            ((1.0, 0.0, 0.0), 0.0),
            ((0.0, 1.0, 5.0), 90.0),
            ((-1.0, 0.0, -3.0), 180.0),
            ((0.0, -1.0, 0.0), -90.0),
        ],
    )
    def test_quadrants(self, vector, expected) -> None:
        """Azimuth ignores z and follows atan2(y, x)."""
        assert azimuth_deg(vector) == pytest.approx(expected)
