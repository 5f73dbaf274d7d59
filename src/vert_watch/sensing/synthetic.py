"""Deterministic synthetic motion traces."""

from __future__ import annotations

from vert_watch.core.types import AltitudeReading, MotionReading, Sample, Vector3

DEFAULT_GRAVITY = Vector3(0.0, 0.0, -1.0)


class TraceBuilder:
    """Builds a trace out of constant vertical-g segments.

    Sample ``i`` is stamped ``start_time + i * period`` so that timestamps
    are reproducible regardless of how the trace was assembled.

    Example:
        >>> trace = TraceBuilder(period=0.01).hold(1.0, 50).hold(0.3, 10).hold(1.4, 16)
        >>> samples = trace.samples()
    """

    def __init__(
        self,
        period: float = 0.01,
        start_time: float = 0.0,
        gravity: Vector3 = DEFAULT_GRAVITY,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self.period = period
        self.start_time = start_time
        self.gravity = gravity
        self._values: list[float] = []
        self._altitudes: dict[int, float] = {}

    def __len__(self) -> int:
        return len(self._values)

    @property
    def values(self) -> list[float]:
        """Vertical g of every sample so far."""
        return list(self._values)

    def timestamp(self, index: int) -> float:
        """Timestamp of sample ``index``."""
        return self.start_time + index * self.period

    def hold(self, vertical_g: float, count: int) -> TraceBuilder:
        """Append ``count`` samples at a constant vertical g."""
        self._values.extend([vertical_g] * count)
        return self

    def ramp(self, start_g: float, end_g: float, count: int) -> TraceBuilder:
        """Append ``count`` samples moving linearly from ``start_g`` to ``end_g``."""
        if count == 1:
            return self.hold(end_g, 1)
        step = (end_g - start_g) / (count - 1)
        self._values.extend(start_g + i * step for i in range(count))
        return self

    def altitude(self, relative_altitude: float, index: int | None = None) -> TraceBuilder:
        """Attach a barometer reading to sample ``index`` (default: the next one)."""
        self._altitudes[len(self._values) if index is None else index] = relative_altitude
        return self

    def samples(self) -> list[Sample]:
        """Trace as preprocessed samples."""
        return [Sample(value, self.timestamp(i)) for i, value in enumerate(self._values)]

    def readings(self) -> list[MotionReading | AltitudeReading]:
        """Trace as raw device-motion ticks.

        User acceleration is ``(g - 1)`` along the gravity direction, so the
        projected vertical g of every tick equals the held value.
        """
        magnitude = self.gravity.norm
        down = Vector3(
            self.gravity.x / magnitude, self.gravity.y / magnitude, self.gravity.z / magnitude
        )
        readings: list[MotionReading | AltitudeReading] = []
        for i, value in enumerate(self._values):
            timestamp = self.timestamp(i)
            if i in self._altitudes:
                readings.append(AltitudeReading(self._altitudes[i], timestamp))
            extra = value - magnitude
            readings.append(
                MotionReading(
                    gravity=self.gravity,
                    user_acceleration=Vector3(down.x * extra, down.y * extra, down.z * extra),
                    timestamp=timestamp,
                )
            )
        return readings


def parabolic_jump_trace(
    flight_time: float = 0.40,
    period: float = 0.01,
    stand_samples: int = 50,
    freefall_g: float = 0.05,
    landing_g: float = 1.8,
    landing_samples: int = 20,
    settle_samples: int = 50,
    peak_altitude: float | None = None,
    gravity: Vector3 = DEFAULT_GRAVITY,
) -> TraceBuilder:
    """A clean jump: stand, free fall for ``flight_time``, land, settle.

    The body follows a parabola while airborne, which a wrist sensor sees as
    near-zero vertical g for the whole flight.

    Args:
        flight_time: Seconds of free fall
        period: Sample period (s)
        stand_samples: Resting samples before takeoff
        freefall_g: Vertical g read during flight
        landing_g: Vertical g of the landing impact
        landing_samples: Samples of landing impact
        settle_samples: Resting samples after landing
        peak_altitude: If given, barometer readings follow the flight parabola
            up to this height
        gravity: Gravity vector in device frame

    Returns:
        TraceBuilder holding the jump
    """
    flight_samples = max(1, round(flight_time / period))
    builder = TraceBuilder(period=period, gravity=gravity)
    builder.hold(1.0, stand_samples)

    if peak_altitude is not None:
        builder.altitude(0.0, 0)
        for i in range(flight_samples + 1):
            # h(u) = 4 * peak * u * (1 - u), u in [0, 1]
            u = i / flight_samples
            builder.altitude(4.0 * peak_altitude * u * (1.0 - u), stand_samples + i)

    builder.hold(freefall_g, flight_samples)
    builder.hold(landing_g, landing_samples)
    builder.hold(1.0, settle_samples)
    return builder
