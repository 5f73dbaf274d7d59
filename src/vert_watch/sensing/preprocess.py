"""Vertical acceleration extraction from raw device motion."""

from __future__ import annotations

import math
import numbers
from typing import Any

import numpy as np
from numpy.typing import NDArray

from vert_watch.core.exceptions import SensorReadError
from vert_watch.core.types import MotionReading, Sample, Vector3

GRAVITY_EPSILON = 1e-9


def vertical_g(gravity: Vector3, user_acceleration: Vector3) -> float:
    """Project total specific force onto the gravity direction.

    The result is independent of how the device is oriented on the wrist:
    about 1.0 at rest, near 0.0 in free fall, above 1.0 on impact.

    Args:
        gravity: Gravity vector in device frame (g)
        user_acceleration: User acceleration in device frame (g)

    Returns:
        Vertical acceleration in g
    """
    magnitude = max(gravity.norm, GRAVITY_EPSILON)
    down = Vector3(gravity.x / magnitude, gravity.y / magnitude, gravity.z / magnitude)
    return (user_acceleration + gravity).dot(down)


def vertical_g_series(
    gravity: NDArray[np.floating[Any]],
    user_acceleration: NDArray[np.floating[Any]],
) -> NDArray[np.float64]:
    """Vectorized :func:`vertical_g` over an ``(N, 3)`` recording.

    Args:
        gravity: Gravity vectors, shape (N, 3)
        user_acceleration: User acceleration vectors, shape (N, 3)

    Returns:
        Vertical acceleration per row, shape (N,)
    """
    gravity = np.asarray(gravity, dtype=np.float64)
    user_acceleration = np.asarray(user_acceleration, dtype=np.float64)
    if gravity.shape != user_acceleration.shape or gravity.ndim != 2 or gravity.shape[1] != 3:
        raise ValueError("expected two arrays of shape (N, 3)")

    magnitude = np.maximum(np.linalg.norm(gravity, axis=1), GRAVITY_EPSILON)
    down = gravity / magnitude[:, np.newaxis]
    return np.einsum("ij,ij->i", user_acceleration + gravity, down)


def _is_finite_number(value: object) -> bool:
    return isinstance(value, numbers.Real) and math.isfinite(value)


def to_sample(reading: MotionReading, last_timestamp: float | None = None) -> Sample:
    """Decode one motion tick into a scalar sample.

    Args:
        reading: Raw device-motion reading
        last_timestamp: Timestamp of the previous accepted tick, if any

    Returns:
        Sample ready for filtering

    Raises:
        SensorReadError: If the tick holds non-numeric or non-finite values,
            or goes back in time
    """
    if not _is_finite_number(reading.timestamp):
        raise SensorReadError(f"Invalid motion timestamp {reading.timestamp!r}")
    components = (
        reading.gravity.x,
        reading.gravity.y,
        reading.gravity.z,
        reading.user_acceleration.x,
        reading.user_acceleration.y,
        reading.user_acceleration.z,
    )
    if not all(_is_finite_number(value) for value in components):
        raise SensorReadError(f"Invalid motion values at t={reading.timestamp}")
    if last_timestamp is not None and reading.timestamp <= last_timestamp:
        raise SensorReadError(
            f"Timestamp {reading.timestamp:.4f} does not advance past {last_timestamp:.4f}"
        )

    return Sample(
        vertical_g=vertical_g(reading.gravity, reading.user_acceleration),
        timestamp=reading.timestamp,
    )
