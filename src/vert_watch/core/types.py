"""Core data types and structures."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field, fields
from enum import Enum, auto

DEFAULT_JUMP_HISTORY = 100


@dataclass(frozen=True, slots=True)
class Vector3:
    """A 3-axis reading in device coordinates, in units of g."""

    x: float
    y: float
    z: float

    @property
    def norm(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    @property
    def is_finite(self) -> bool:
        """True when no component is NaN or infinite."""
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def dot(self, other: Vector3) -> float:
        """Scalar product with another vector."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    @classmethod
    def from_sequence(cls, values: tuple[float, ...] | list[float]) -> Vector3:
        """Build from a 3-element sequence.

        Raises:
            ValueError: If the sequence does not hold exactly three values
        """
        if len(values) != 3:
            raise ValueError(f"expected 3 components, got {len(values)}")
        return cls(float(values[0]), float(values[1]), float(values[2]))


@dataclass(frozen=True, slots=True)
class MotionReading:
    """One raw device-motion tick as delivered by the sensor driver.

    Attributes:
        gravity: Gravity estimate in device frame (g)
        user_acceleration: Acceleration with gravity removed (g)
        timestamp: Monotonic seconds
    """

    gravity: Vector3
    user_acceleration: Vector3
    timestamp: float


@dataclass(frozen=True, slots=True)
class AltitudeReading:
    """Relative altitude from the barometer, in meters since stream start."""

    relative_altitude: float
    timestamp: float


@dataclass(frozen=True, slots=True)
class Sample:
    """Scalar vertical acceleration for one tick.

    Attributes:
        vertical_g: Total specific force along gravity, in g
        timestamp: Monotonic seconds
    """

    vertical_g: float
    timestamp: float


class FlightPhase(Enum):
    """States in the flight state machine."""

    GROUNDED = auto()
    ARMED = auto()
    FREEFALL = auto()
    IN_FLIGHT = auto()
    LANDING = auto()

    @property
    def is_airborne(self) -> bool:
        """True once free fall has been confirmed."""
        return self in (FlightPhase.IN_FLIGHT, FlightPhase.LANDING)


class AttemptOutcome(Enum):
    """How a free-fall attempt was resolved."""

    ACCEPTED = auto()
    REJECTED_FLIGHT_TIME = auto()
    REJECTED_SCORE = auto()
    DISCARDED = auto()


@dataclass(frozen=True, slots=True)
class JumpEvent:
    """An accepted vertical jump.

    Attributes:
        height: Estimated jump height in meters
        flight_time: Validated flight time in seconds
        quality_score: Composite quality score (0-10 by default)
        timestamp: Sample timestamp at which the landing was confirmed
    """

    height: float
    flight_time: float
    quality_score: float
    timestamp: float

    @property
    def height_cm(self) -> float:
        """Jump height in centimeters."""
        return self.height * 100.0


@dataclass(slots=True)
class SessionStats:
    """Accepted jumps for the current session.

    Count, best, minimum, mean and spread cover every jump of the session;
    only the most recent ``max_history`` events are kept.

    Attributes:
        start_time: Session start timestamp
        max_history: Number of recent jump events retained
        jumps: Most recent accepted jumps, oldest first
        jump_count: Total number of accepted jumps
        best_height: Best height so far in meters (0.0 before any jump)
        min_height: Lowest height so far in meters
    """

    start_time: float = 0.0
    max_history: int = DEFAULT_JUMP_HISTORY
    jumps: deque[JumpEvent] = field(init=False)
    jump_count: int = field(default=0, init=False)
    best_height: float = field(default=0.0, init=False)
    min_height: float | None = field(default=None, init=False)
    _mean_height: float = field(default=0.0, init=False, repr=False)
    _height_m2: float = field(default=0.0, init=False, repr=False)
    _quality_sum: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.jumps = deque(maxlen=self.max_history)

    @property
    def last_height(self) -> float:
        """Height of the most recent jump in meters (0.0 before any jump)."""
        return self.jumps[-1].height if self.jumps else 0.0

    @property
    def avg_height(self) -> float | None:
        """Average jump height in meters."""
        if self.jump_count == 0:
            return None
        return self._mean_height

    @property
    def std_height(self) -> float | None:
        """Population standard deviation of jump heights."""
        if self.jump_count < 2:
            return None
        return math.sqrt(self._height_m2 / self.jump_count)

    @property
    def avg_quality_score(self) -> float | None:
        """Average quality score of accepted jumps."""
        if self.jump_count == 0:
            return None
        return self._quality_sum / self.jump_count

    @property
    def last_jump(self) -> JumpEvent | None:
        """Most recent jump event."""
        return self.jumps[-1] if self.jumps else None

    def add_jump(self, event: JumpEvent) -> None:
        """Record an accepted jump."""
        self.jumps.append(event)
        self.jump_count += 1
        self.best_height = max(self.best_height, event.height)
        if self.min_height is None or event.height < self.min_height:
            self.min_height = event.height
        # Welford update
        delta = event.height - self._mean_height
        self._mean_height += delta / self.jump_count
        self._height_m2 += delta * (event.height - self._mean_height)
        self._quality_sum += event.quality_score

    def snapshot(self) -> SessionStats:
        """Independent copy, safe to hand to another thread."""
        copy = SessionStats(start_time=self.start_time, max_history=self.max_history)
        for f in fields(self):
            if not f.init:
                setattr(copy, f.name, getattr(self, f.name))
        copy.jumps = deque(self.jumps, maxlen=self.max_history)
        return copy

    def reset(self) -> None:
        """Clear all recorded jumps."""
        self.jumps.clear()
        self.jump_count = 0
        self.best_height = 0.0
        self.min_height = None
        self._mean_height = 0.0
        self._height_m2 = 0.0
        self._quality_sum = 0.0
