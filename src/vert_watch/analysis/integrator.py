"""Vertical velocity integration, apex detection and crossing interpolation.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

from collections import deque

from vert_watch.core.config import ApexSettings

CROSSING_EPSILON = 1e-9


def interpolate_crossing_time(
    prev_t: float,
    prev_value: float,
    curr_t: float,
    curr_value: float,
    threshold: float,
) -> float:
    """Estimate when a signal crossed ``threshold`` between two samples.

    Args:
        prev_t: Previous sample timestamp
        prev_value: Previous sample value
        curr_t: Current sample timestamp
        curr_value: Current sample value
        threshold: Level being crossed

    Returns:
        Interpolated crossing time, within ``[prev_t, curr_t]``
    """
    denominator = curr_value - prev_value
    if abs(denominator) < CROSSING_EPSILON:
        return curr_t

    fraction = max(0.0, min(1.0, (threshold - prev_value) / denominator))
    return prev_t + fraction * (curr_t - prev_t)


class VelocityIntegrator:
    """Integrates (a - 1g) while airborne and finds the apex.

    Velocity starts at zero at takeoff, falls while the signal reads below
    1 g and climbs back as it rises above it. The upward zero crossing is
    reported as the apex.
    """

    def __init__(
        self,
        settings: ApexSettings | None = None,
        standard_gravity: float = 9.80665,
    ) -> None:
        """Initialize integrator.

        Args:
            settings: Apex detection parameters (uses defaults if None)
            standard_gravity: g0 in m/s^2
        """
        self.settings = settings or ApexSettings()
        self.standard_gravity = standard_gravity
        self._history: deque[float] = deque(maxlen=self.settings.history_size)
        self._velocity = 0.0
        self._previous_velocity = 0.0
        self._apex_time: float | None = None

    @property
    def velocity(self) -> float:
        """Current vertical velocity estimate (m/s)."""
        return self._velocity

    @property
    def history(self) -> list[float]:
        """Recent velocities, oldest first."""
        return list(self._history)

    @property
    def apex_time(self) -> float | None:
        """Interpolated apex time, if found."""
        return self._apex_time

    @property
    def apex_found(self) -> bool:
        """True once the apex of the current flight has been located."""
        return self._apex_time is not None

    def reset(self) -> None:
        """Start a new flight."""
        self._history.clear()
        self._velocity = 0.0
        self._previous_velocity = 0.0
        self._apex_time = None

    def update(
        self,
        accel_g: float,
        prev_t: float,
        curr_t: float,
        takeoff_time: float | None,
    ) -> bool:
        """Integrate one airborne sample and try to locate the apex.

        Args:
            accel_g: Filtered vertical acceleration (g)
            prev_t: Previous sample timestamp
            curr_t: Current sample timestamp
            takeoff_time: Interpolated takeoff time of this flight

        Returns:
            True if the apex was found on this sample
        """
        dt = curr_t - prev_t
        limit = self.settings.velocity_limit

        self._previous_velocity = self._velocity
        velocity = self._velocity + (accel_g - 1.0) * self.standard_gravity * dt
        self._velocity = max(-limit, min(limit, velocity))
        self._history.append(self._velocity)

        if self.apex_found:
            return False
        return self._detect_apex(curr_t, dt, takeoff_time)

    def _detect_apex(self, curr_t: float, dt: float, takeoff_time: float | None) -> bool:
        s = self.settings
        v_prev = self._previous_velocity
        v = self._velocity

        crossed_zero = v_prev < s.prev_velocity_tolerance and v >= s.velocity_tolerance
        if not crossed_zero:
            return False

        elapsed = curr_t - (takeoff_time if takeoff_time is not None else curr_t)
        if not (s.min_time < elapsed < s.max_time):
            return False

        if not self._is_decelerating():
            return False

        fraction = abs(v) / (abs(v) + abs(v_prev) + s.interpolation_epsilon)
        fraction = max(0.0, min(1.0, fraction))
        self._apex_time = curr_t - fraction * dt
        return True

    def _is_decelerating(self) -> bool:
        """Short histories pass; otherwise the last velocities must rise."""
        window = self.settings.trend_window
        if len(self._history) < window:
            return True
        recent = list(self._history)[-window:]
        return all(earlier < later for earlier, later in zip(recent, recent[1:]))
