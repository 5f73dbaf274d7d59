"""Core infrastructure: config, types, exceptions, and logging."""

from vert_watch.core.config import Settings, get_settings
from vert_watch.core.exceptions import (
    ConfigurationError,
    JumpDetectionError,
    SensorReadError,
    SensorUnavailableError,
    VertWatchError,
)
from vert_watch.core.logging import get_logger, setup_logging
from vert_watch.core.types import (
    AltitudeReading,
    AttemptOutcome,
    FlightPhase,
    JumpEvent,
    MotionReading,
    Sample,
    SessionStats,
    Vector3,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "Vector3",
    "MotionReading",
    "AltitudeReading",
    "Sample",
    "FlightPhase",
    "AttemptOutcome",
    "JumpEvent",
    "SessionStats",
    # Exceptions
    "VertWatchError",
    "SensorUnavailableError",
    "SensorReadError",
    "JumpDetectionError",
    "ConfigurationError",
    # Logging
    "setup_logging",
    "get_logger",
]
