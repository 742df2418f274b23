"""Vector geometry primitives for platform/endpoint link geometry.

All positions are Cartesian (x, y, z) in meters in a local scenario frame
with z pointing up. Functions accept any 3-element sequence and return
plain floats or numpy arrays.
"""

from __future__ import annotations

import math
from typing import Sequence, Union

import numpy as np

VectorLike = Union[Sequence[float], np.ndarray]


def as_vector(v: VectorLike) -> np.ndarray:
    """Return ``v`` as a float64 numpy array of shape (3,)."""
    arr = np.asarray(v, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {arr.shape}")
    return arr


def vector_norm(v: VectorLike) -> float:
    return float(np.linalg.norm(as_vector(v)))


def distance_m(a: VectorLike, b: VectorLike) -> float:
    """Euclidean distance between two points in meters."""
    return float(np.linalg.norm(as_vector(a) - as_vector(b)))


def direction_to(origin: VectorLike, target: VectorLike) -> np.ndarray:
    """Vector from ``origin`` to ``target`` (not normalised)."""
    return as_vector(target) - as_vector(origin)


def angle_between(v1: VectorLike, v2: VectorLike) -> float:
    """
    Angle in radians between two vectors, in [0, pi].

    The cosine is clamped to [-1, 1] before ``acos`` to absorb rounding.
    If either vector has zero length the angle is defined as 0 (no
    deflection penalty).
    """
    a = as_vector(v1)
    b = as_vector(v2)
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na == 0.0 or nb == 0.0:
        return 0.0

    cos_angle = float(np.dot(a, b) / (na * nb))
    cos_angle = min(1.0, max(-1.0, cos_angle))
    return math.acos(cos_angle)


def azimuth_deg(v: VectorLike) -> float:
    """Azimuth of the horizontal projection of ``v`` in degrees, (-180, 180]."""
    a = as_vector(v)
    return math.degrees(math.atan2(a[1], a[0]))
