"""Jump session orchestration."""

from __future__ import annotations

import math
import numbers
import threading
from collections.abc import Sequence

from vert_watch.analysis.detector import JumpDetector
from vert_watch.analysis.metrics import MetricsTracker, SessionSummary
from vert_watch.core.config import Settings, get_settings
from vert_watch.core.exceptions import (
    JumpDetectionError,
    SensorReadError,
    SensorUnavailableError,
)
from vert_watch.core.logging import get_logger
from vert_watch.core.types import (
    AltitudeReading,
    FlightPhase,
    JumpEvent,
    MotionReading,
    SessionStats,
    Vector3,
)
from vert_watch.pipeline.publisher import EventPublisher, JumpCallback
from vert_watch.sensing.preprocess import to_sample
from vert_watch.sensing.source import MotionSource

logger = get_logger(__name__)


def _as_vector(value: Vector3 | Sequence[float]) -> Vector3:
    if isinstance(value, Vector3):
        return value
    try:
        return Vector3.from_sequence(value)
    except (TypeError, ValueError) as e:
        raise SensorReadError(f"Malformed vector: {e}") from e


class JumpSession:
    """Hosts a detector between start() and stop().

    Coordinates:
    - Tick decoding (bad ticks are dropped, not fatal)
    - Jump detection
    - Session statistics
    - Asynchronous delivery of accepted jumps to subscribers

    Samples must be delivered serially; the statistics may be read from
    any thread.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize session with settings.

        Args:
            settings: Application settings (uses defaults if None)
        """
        self.settings = settings or get_settings()

        # Components
        self._detector = JumpDetector(self.settings)
        self._metrics = MetricsTracker(standard_gravity=self.settings.detection.standard_gravity)
        self._publisher: EventPublisher | None = None
        self._subscribers: list[JumpCallback] = []

        # State
        self._lock = threading.Lock()
        self._running = False
        self._first_timestamp: float | None = None
        self._last_timestamp: float | None = None
        self._dropped_samples = 0
        self._barometer_warned = False
        self._max_sample_gap = self._gap_limit()

    @property
    def detector(self) -> JumpDetector:
        """Underlying jump detector."""
        return self._detector

    @property
    def is_running(self) -> bool:
        """True between start() and stop()."""
        return self._running

    @property
    def current_phase(self) -> FlightPhase:
        """Get current flight phase."""
        return self._detector.current_phase

    @property
    def stats(self) -> SessionStats:
        """Snapshot of the accepted jumps."""
        with self._lock:
            return self._metrics.stats.snapshot()

    @property
    def last_height(self) -> float:
        """Height of the most recent jump in meters."""
        with self._lock:
            return self._metrics.last_height

    @property
    def best_height(self) -> float:
        """Best height of the session in meters."""
        with self._lock:
            return self._metrics.best_height

    @property
    def jump_count(self) -> int:
        """Number of accepted jumps."""
        with self._lock:
            return self._metrics.jump_count

    @property
    def dropped_samples(self) -> int:
        """Ticks skipped because they could not be decoded."""
        return self._dropped_samples

    def subscribe(self, callback: JumpCallback) -> None:
        """Register a callback invoked (off the sample path) for each accepted jump."""
        self._subscribers.append(callback)
        if self._publisher is not None:
            self._publisher.subscribe(callback)

    def unsubscribe(self, callback: JumpCallback) -> None:
        """Stop delivering accepted jumps to a callback."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)
        if self._publisher is not None:
            self._publisher.unsubscribe(callback)

    def start(self) -> None:
        """Reset all state and begin accepting samples."""
        if self._running:
            logger.debug("Session already running")
            return

        self._detector.reset()
        with self._lock:
            self._metrics.reset()
        self._first_timestamp = None
        self._last_timestamp = None
        self._dropped_samples = 0
        self._barometer_warned = False

        self._publisher = EventPublisher()
        for callback in self._subscribers:
            self._publisher.subscribe(callback)
        self._publisher.start()

        self._running = True
        logger.info(
            "Session started (adaptive thresholds %s)",
            "on" if self._detector.adaptive_enabled else "off",
        )

    def stop(self) -> None:
        """Stop accepting samples; an attempt in progress is discarded."""
        if not self._running:
            return
        self._running = False

        timestamp = self._last_timestamp if self._last_timestamp is not None else 0.0
        if self._detector.discard_attempt(timestamp):
            logger.info("Session stopped mid-attempt; attempt discarded")

        if self._publisher is not None:
            self._publisher.stop()
            self._publisher = None

        logger.info(
            "Session stopped: %d jumps, best %.1f cm, %d dropped ticks",
            self.jump_count,
            self.best_height * 100.0,
            self._dropped_samples,
        )

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until subscribers have received every accepted jump."""
        if self._publisher is None:
            return True
        return self._publisher.flush(timeout)

    def process_motion(
        self,
        gravity: Vector3 | Sequence[float],
        user_acceleration: Vector3 | Sequence[float],
        timestamp: float,
    ) -> JumpEvent | None:
        """Process one device-motion tick.

        Args:
            gravity: Gravity vector in device frame (g)
            user_acceleration: User acceleration in device frame (g)
            timestamp: Monotonic seconds

        Returns:
            JumpEvent if a jump was accepted on this tick

        Raises:
            JumpDetectionError: If the session is not running
        """
        self._ensure_running()
        try:
            reading = MotionReading(_as_vector(gravity), _as_vector(user_acceleration), timestamp)
        except SensorReadError as e:
            self._drop(e)
            return None
        return self._process_reading(reading)

    def process_altitude(self, relative_altitude: float, timestamp: float) -> None:
        """Process one barometer tick.

        Raises:
            JumpDetectionError: If the session is not running
        """
        self._ensure_running()
        if not self.settings.sensor.barometer_enabled:
            return
        if not (isinstance(relative_altitude, numbers.Real) and math.isfinite(relative_altitude)):
            if not self._barometer_warned:
                logger.warning("Invalid barometer reading at t=%s; fusion skipped", timestamp)
                self._barometer_warned = True
            return
        self._detector.update_altitude(relative_altitude)

    def run(self, source: MotionSource) -> list[JumpEvent]:
        """Drive the session from a motion source until it is exhausted.

        Args:
            source: Source of motion and altitude readings

        Returns:
            Jumps accepted while running the source

        Raises:
            SensorUnavailableError: If the source cannot be started
            JumpDetectionError: If the session is not running
        """
        self._ensure_running()
        if not source.is_available():
            raise SensorUnavailableError(f"Motion source {source!r} is not available")

        events: list[JumpEvent] = []
        source.open()
        try:
            for reading in source.readings():
                if not self._running:
                    break
                if isinstance(reading, AltitudeReading):
                    self.process_altitude(reading.relative_altitude, reading.timestamp)
                    continue
                event = self._process_reading(reading)
                if event is not None:
                    events.append(event)
        finally:
            source.close()

        return events

    def get_summary(self) -> SessionSummary:
        """Summary of the session so far."""
        duration = 0.0
        if self._first_timestamp is not None and self._last_timestamp is not None:
            duration = self._last_timestamp - self._first_timestamp
        with self._lock:
            return self._metrics.get_summary(duration)

    def _process_reading(self, reading: MotionReading) -> JumpEvent | None:
        try:
            sample = to_sample(reading, self._last_timestamp)
        except SensorReadError as e:
            self._drop(e)
            return None

        if self._last_timestamp is not None:
            gap = sample.timestamp - self._last_timestamp
            if gap > self._max_sample_gap:
                logger.warning("Sample gap of %.3fs at t=%.3f", gap, sample.timestamp)
        else:
            self._first_timestamp = sample.timestamp
            with self._lock:
                self._metrics.stats.start_time = sample.timestamp
        self._last_timestamp = sample.timestamp

        event = self._detector.update(sample)
        if event is not None:
            self._record(event)
        return event

    def _record(self, event: JumpEvent) -> None:
        with self._lock:
            self._metrics.add_jump(event)
        if self._publisher is not None:
            self._publisher.publish(event)

    def _drop(self, error: SensorReadError) -> None:
        self._dropped_samples += 1
        logger.debug("Dropped tick: %s", error)

    def _gap_limit(self) -> float:
        sensor = self.settings.sensor
        if sensor.max_sample_gap_s is not None:
            return sensor.max_sample_gap_s
        return sensor.gap_warning_periods * self.settings.detection.sample_period

    def _ensure_running(self) -> None:
        if not self._running:
            raise JumpDetectionError("Session is not running; call start() first")

    def __enter__(self) -> JumpSession:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()
