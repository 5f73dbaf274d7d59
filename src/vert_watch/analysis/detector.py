"""Jump detection state machine.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

import dataclasses
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from vert_watch.analysis.calculator import HeightEstimate, HeightEstimator
from vert_watch.analysis.integrator import VelocityIntegrator, interpolate_crossing_time
from vert_watch.analysis.scoring import FlightMetrics, QualityScorer, ScoreBreakdown
from vert_watch.core.config import Settings
from vert_watch.core.exceptions import ConfigurationError, JumpDetectionError
from vert_watch.core.logging import get_logger
from vert_watch.core.types import AttemptOutcome, FlightPhase, JumpEvent, Sample
from vert_watch.sensing.baseline import AdaptiveBaseline
from vert_watch.sensing.filters import DualRateFilter, FilterState

logger = get_logger(__name__)


@dataclass(slots=True)
class Counters:
    """Run-length counters of the state machine."""

    freefall_sample_count: int = 0
    ground_contact_sample_count: int = 0
    pre_jump_stability_count: int = 0
    landing_dip_count: int = 0


@dataclass(slots=True)
class FlightContext:
    """Working state of one attempt, from the first free-fall sample on.

    A fresh context is created for every attempt and dropped when the
    attempt resolves, so nothing leaks from one flight into the next.
    """

    takeoff_time: float
    integrator: VelocityIntegrator
    acceleration_buffer: deque[float]
    min_flight_accel: float
    landing_candidate_time: float | None = None
    max_landing_accel: float = 0.0
    total_variation: float = 0.0
    quality_score: float = 0.0
    start_barometric_altitude: float | None = None
    peak_barometric_altitude: float | None = None

    @classmethod
    def begin(
        cls,
        takeoff_time: float,
        accel: float,
        settings: Settings,
        altitude: float | None = None,
    ) -> FlightContext:
        """Create the context for a new attempt."""
        return cls(
            takeoff_time=takeoff_time,
            integrator=VelocityIntegrator(settings.apex, settings.detection.standard_gravity),
            acceleration_buffer=deque(maxlen=settings.detection.acceleration_buffer_size),
            min_flight_accel=accel,
            start_barometric_altitude=altitude,
            peak_barometric_altitude=altitude,
        )

    @property
    def vertical_velocity(self) -> float:
        """Integrated vertical velocity (m/s)."""
        return self.integrator.velocity

    @property
    def velocity_history(self) -> list[float]:
        """Recent velocities, oldest first."""
        return self.integrator.history

    @property
    def apex_time(self) -> float | None:
        """Interpolated apex time, if found."""
        return self.integrator.apex_time

    @property
    def apex_found(self) -> bool:
        """Whether the apex of this flight was located."""
        return self.integrator.apex_found

    @property
    def apex_flight_time(self) -> float | None:
        """Flight time implied by the apex, ``2 * (apex - takeoff)``."""
        if self.apex_time is None:
            return None
        return 2.0 * max(0.0, self.apex_time - self.takeoff_time)

    @property
    def barometric_height(self) -> float | None:
        """Peak minus start altitude, None without barometer data."""
        if self.start_barometric_altitude is None or self.peak_barometric_altitude is None:
            return None
        return max(0.0, self.peak_barometric_altitude - self.start_barometric_altitude)

    def track_altitude(self, altitude: float) -> None:
        """Record an altitude reading taken while airborne."""
        if self.start_barometric_altitude is None:
            # Altitude stream started mid-flight: no usable reference
            return
        if self.peak_barometric_altitude is None or altitude > self.peak_barometric_altitude:
            self.peak_barometric_altitude = altitude

    def impact_peak(self, window: int) -> float:
        """Largest acceleration among the last ``window`` airborne samples."""
        if not self.acceleration_buffer:
            return 0.0
        return max(list(self.acceleration_buffer)[-window:])


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """Diagnostic record of a resolved attempt.

    Attributes:
        outcome: How the attempt ended
        takeoff_time: Interpolated takeoff time
        landing_time: Interpolated landing time, if one was confirmed
        flight_time: Flight time used for validation, if computed
        score: Score breakdown, if the attempt was scored
        timestamp: Sample timestamp at resolution
    """

    outcome: AttemptOutcome
    takeoff_time: float
    landing_time: float | None
    flight_time: float | None
    score: ScoreBreakdown | None
    timestamp: float


class JumpDetector:
    """State machine for detecting vertical jumps from vertical acceleration.

    Transitions:
        GROUNDED -> ARMED: Enough in-band samples build up pre-jump stability
        ARMED -> FREEFALL: Filtered signal drops below the free-fall threshold
        FREEFALL -> IN_FLIGHT: Free fall held for the required sample count
        IN_FLIGHT -> LANDING: Signal rises above the ground threshold
        LANDING -> GROUNDED: Landing held long enough; the attempt is either
            accepted (JumpEvent emitted) or rejected

    Free fall and landing must both be contiguous runs. One sample in, at
    most one JumpEvent out; ``update`` must not be re-entered.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize detector with settings.

        Args:
            settings: Application settings (uses defaults if None)
        """
        self.settings = settings or Settings()
        detection = self.settings.detection

        self._filter = DualRateFilter(self.settings.filter)
        self._baseline = AdaptiveBaseline(self.settings.adaptive)
        self._scorer = QualityScorer(self.settings.scoring, detection.impact_peak_g)
        self._estimator = HeightEstimator(self.settings.height, detection.standard_gravity)

        self._freefall_override: float | None = None
        self._ground_override: float | None = None
        self._freefall_threshold = detection.freefall_threshold_g
        self._ground_threshold = detection.ground_threshold_g
        self._adaptive_enabled = detection.use_adaptive_thresholds

        self._phase = FlightPhase.GROUNDED
        self._counters = Counters()
        self._flight: FlightContext | None = None
        self._altitude: float | None = None
        self._recent: deque[float] = deque(maxlen=detection.recent_history_size)
        self._attempts: deque[AttemptRecord] = deque(maxlen=detection.attempt_log_size)
        self._last_estimate: HeightEstimate | None = None
        self._processing = False

        if self.settings.scoring.strongest_single_signal >= detection.min_jump_score:
            logger.warning(
                "A single scoring signal (%.1f) can clear min_jump_score=%.1f on its own",
                self.settings.scoring.strongest_single_signal,
                detection.min_jump_score,
            )

    @property
    def current_phase(self) -> FlightPhase:
        """Get current flight phase."""
        return self._phase

    @property
    def is_jumping(self) -> bool:
        """Check if an attempt is in progress (free fall or airborne)."""
        return self._flight is not None

    @property
    def counters(self) -> Counters:
        """Snapshot of the run-length counters."""
        return dataclasses.replace(self._counters)

    @property
    def flight(self) -> FlightContext | None:
        """Context of the attempt in progress, if any."""
        return self._flight

    @property
    def filter_state(self) -> FilterState:
        """Current dual-rate filter state."""
        return self._filter.state

    @property
    def freefall_threshold(self) -> float:
        """Active free-fall threshold (g)."""
        return self._freefall_threshold

    @property
    def ground_threshold(self) -> float:
        """Active ground-contact threshold (g)."""
        return self._ground_threshold

    @property
    def adaptive_enabled(self) -> bool:
        """Whether thresholds are still being recomputed from the baseline."""
        return self._adaptive_enabled

    @property
    def baseline(self) -> AdaptiveBaseline:
        """Adaptive baseline estimator."""
        return self._baseline

    @property
    def recent_history(self) -> list[float]:
        """Most recent filtered values, oldest first."""
        return list(self._recent)

    @property
    def attempts(self) -> list[AttemptRecord]:
        """Recently resolved attempts, oldest first."""
        return list(self._attempts)

    @property
    def last_estimate(self) -> HeightEstimate | None:
        """Height estimate of the most recently accepted jump."""
        return self._last_estimate

    def reset(self) -> None:
        """Reset detector to initial state.

        Manual threshold overrides survive a reset; everything else,
        including the adaptive baseline, starts over.
        """
        detection = self.settings.detection
        self._filter.reset()
        self._baseline.reset()
        self._freefall_threshold = (
            self._freefall_override
            if self._freefall_override is not None
            else detection.freefall_threshold_g
        )
        self._ground_threshold = (
            self._ground_override
            if self._ground_override is not None
            else detection.ground_threshold_g
        )
        self._adaptive_enabled = detection.use_adaptive_thresholds and not self._has_override
        self._phase = FlightPhase.GROUNDED
        self._counters = Counters()
        self._flight = None
        self._altitude = None
        self._recent.clear()
        self._attempts.clear()
        self._last_estimate = None

    def set_freefall_threshold(self, threshold: float) -> None:
        """Override the free-fall threshold and stop adapting thresholds.

        Raises:
            ConfigurationError: If the threshold is not below the ground threshold
        """
        if not 0.0 < threshold < self._ground_threshold:
            raise ConfigurationError(
                f"Free-fall threshold {threshold:.2f} must be in (0, {self._ground_threshold:.2f})"
            )
        self._freefall_override = threshold
        self._freefall_threshold = threshold
        self._disable_adaptive()

    def set_ground_threshold(self, threshold: float) -> None:
        """Override the ground-contact threshold and stop adapting thresholds.

        Raises:
            ConfigurationError: If the threshold is not above the free-fall threshold
        """
        if threshold <= self._freefall_threshold:
            raise ConfigurationError(
                f"Ground threshold {threshold:.2f} must exceed {self._freefall_threshold:.2f}"
            )
        self._ground_override = threshold
        self._ground_threshold = threshold
        self._disable_adaptive()

    def update_altitude(self, relative_altitude: float) -> None:
        """Record the latest barometric relative altitude (m)."""
        self._altitude = relative_altitude
        if self._flight is not None:
            self._flight.track_altitude(relative_altitude)

    def discard_attempt(self, timestamp: float) -> bool:
        """Drop an attempt in progress without scoring it.

        Args:
            timestamp: Time of the discard

        Returns:
            True if an attempt was discarded
        """
        if self._flight is None:
            return False
        self._resolve(self._flight, AttemptOutcome.DISCARDED, timestamp)
        return True

    def update(self, sample: Sample) -> JumpEvent | None:
        """Process one sample.

        Args:
            sample: Raw vertical acceleration sample

        Returns:
            JumpEvent if a jump was accepted on this sample, None otherwise

        Raises:
            JumpDetectionError: If called while another sample is being processed,
                or if the airborne state has lost its flight context
        """
        if self._processing:
            raise JumpDetectionError("update() re-entered while processing a sample")

        self._processing = True
        try:
            first_sample = not self._filter.is_initialized
            state = self._filter.update(sample)
            if first_sample:
                return None

            self._recent.append(state.curr_filtered)

            if self._phase in (FlightPhase.GROUNDED, FlightPhase.ARMED):
                self._update_baseline(state.curr_filtered)

            if self._phase.is_airborne:
                if self._flight is None:
                    raise JumpDetectionError(f"{self._phase.name} without a flight context")
                return self._process_in_flight(self._flight, state, sample.timestamp)

            self._process_ground(state)
            return None
        finally:
            self._processing = False

    # Ground logic

    def _process_ground(self, state: FilterState) -> None:
        """Stability gate, free-fall confirmation and flight transition."""
        detection = self.settings.detection
        counters = self._counters
        value = state.curr_filtered

        if detection.stable_min_g <= value <= detection.stable_max_g:
            counters.pre_jump_stability_count = min(
                detection.stability_cap,
                counters.pre_jump_stability_count + detection.stability_gain,
            )
        else:
            counters.pre_jump_stability_count = max(
                0, counters.pre_jump_stability_count - detection.stability_decay
            )

        armed = (
            counters.pre_jump_stability_count >= detection.need_pre_jump_stable_samples
            or counters.freefall_sample_count > 0
        )
        if not armed:
            if value < self._freefall_threshold:
                logger.debug(
                    "Free fall blocked: g=%.2f stability=%d/%d",
                    value,
                    counters.pre_jump_stability_count,
                    detection.need_pre_jump_stable_samples,
                )
            counters.freefall_sample_count = 0
            self._flight = None
            self._phase = FlightPhase.GROUNDED
            return

        if value < self._freefall_threshold:
            counters.freefall_sample_count += 1
            if counters.freefall_sample_count == 1:
                takeoff = interpolate_crossing_time(
                    state.prev_timestamp,
                    state.prev_filtered,
                    state.curr_timestamp,
                    value,
                    self._freefall_threshold,
                )
                self._flight = FlightContext.begin(takeoff, value, self.settings, self._altitude)
                logger.debug("Takeoff candidate at t=%.3f g=%.2f", takeoff, value)
        else:
            if counters.freefall_sample_count > 0:
                logger.debug(
                    "Free fall broken after %d samples", counters.freefall_sample_count
                )
            counters.freefall_sample_count = 0
            self._flight = None

        if (
            counters.freefall_sample_count >= detection.need_below_freefall_samples
            and self._flight is not None
        ):
            self._enter_flight(self._flight)
        elif counters.freefall_sample_count > 0:
            self._phase = FlightPhase.FREEFALL
        else:
            self._phase = FlightPhase.ARMED

    def _enter_flight(self, flight: FlightContext) -> None:
        self._phase = FlightPhase.IN_FLIGHT
        self._counters.ground_contact_sample_count = 0
        self._counters.landing_dip_count = 0
        flight.landing_candidate_time = None
        flight.acceleration_buffer.clear()
        logger.debug("In flight since t=%.3f", flight.takeoff_time)

    # Flight logic

    def _process_in_flight(
        self, flight: FlightContext, state: FilterState, timestamp: float
    ) -> JumpEvent | None:
        """Per-sample flight metrics, apex search and landing confirmation."""
        value = state.curr_filtered

        flight.acceleration_buffer.append(value)
        flight.total_variation += abs(value - state.prev_filtered)
        flight.min_flight_accel = min(flight.min_flight_accel, value)
        if value > self._ground_threshold:
            flight.max_landing_accel = max(flight.max_landing_accel, value)

        if flight.integrator.update(
            value, state.prev_timestamp, state.curr_timestamp, flight.takeoff_time
        ):
            logger.debug(
                "Apex at t=%.3f (%.3fs after takeoff)",
                flight.apex_time,
                (flight.apex_time or 0.0) - flight.takeoff_time,
            )

        self._track_landing(flight, state)

        if self._altitude is not None:
            flight.track_altitude(self._altitude)

        return self._check_completion(flight, timestamp)

    def _track_landing(self, flight: FlightContext, state: FilterState) -> None:
        """Count contiguous ground contact, forgiving short dips if configured."""
        counters = self._counters
        value = state.curr_filtered

        if value > self._ground_threshold:
            counters.ground_contact_sample_count += 1
            counters.landing_dip_count = 0
            if counters.ground_contact_sample_count == 1:
                flight.landing_candidate_time = interpolate_crossing_time(
                    state.prev_timestamp,
                    state.prev_filtered,
                    state.curr_timestamp,
                    value,
                    self._ground_threshold,
                )
            self._phase = FlightPhase.LANDING
        elif (
            counters.ground_contact_sample_count > 0
            and counters.landing_dip_count < self.settings.detection.landing_dip_tolerance
        ):
            counters.landing_dip_count += 1
        else:
            counters.ground_contact_sample_count = 0
            counters.landing_dip_count = 0
            flight.landing_candidate_time = None
            self._phase = FlightPhase.IN_FLIGHT

    def _check_completion(self, flight: FlightContext, timestamp: float) -> JumpEvent | None:
        """Validate, score and size a confirmed landing."""
        detection = self.settings.detection

        if (
            self._counters.ground_contact_sample_count < detection.need_above_ground_samples
            or flight.landing_candidate_time is None
        ):
            return None

        flight_time = flight.landing_candidate_time - flight.takeoff_time
        apex_flight_time = flight.apex_flight_time
        if (
            apex_flight_time is not None
            and 0.0 < apex_flight_time <= flight_time * detection.apex_flight_time_ratio
        ):
            flight_time = apex_flight_time

        if not detection.min_flight_time <= flight_time <= detection.max_flight_time:
            self._resolve(flight, AttemptOutcome.REJECTED_FLIGHT_TIME, timestamp, flight_time)
            return None

        metrics = FlightMetrics(
            flight_time=flight_time,
            min_flight_accel=flight.min_flight_accel,
            max_landing_accel=flight.max_landing_accel,
            total_variation=flight.total_variation,
            apex_found=flight.apex_found,
            impact_peak=flight.impact_peak(detection.impact_window_samples),
        )
        breakdown = self._scorer.score(metrics)
        flight.quality_score = breakdown.total

        if breakdown.total < detection.min_jump_score:
            self._resolve(flight, AttemptOutcome.REJECTED_SCORE, timestamp, flight_time, breakdown)
            return None

        estimate = self._estimator.estimate(
            flight_time,
            breakdown.total,
            detection.min_jump_score,
            max_score=self.settings.scoring.max_score,
            apex_flight_time=apex_flight_time,
            barometric_height=flight.barometric_height,
        )
        event = JumpEvent(
            height=estimate.height,
            flight_time=flight_time,
            quality_score=breakdown.total,
            timestamp=timestamp,
        )
        self._last_estimate = estimate
        self._resolve(flight, AttemptOutcome.ACCEPTED, timestamp, flight_time, breakdown)
        logger.info(
            "Jump accepted: %.1f cm, t=%.3fs, score=%.1f",
            event.height_cm,
            flight_time,
            breakdown.total,
        )
        return event

    # Helpers

    def _resolve(
        self,
        flight: FlightContext,
        outcome: AttemptOutcome,
        timestamp: float,
        flight_time: float | None = None,
        score: ScoreBreakdown | None = None,
    ) -> None:
        """Record the outcome and return to GROUNDED with a clean slate."""
        self._attempts.append(
            AttemptRecord(
                outcome=outcome,
                takeoff_time=flight.takeoff_time,
                landing_time=flight.landing_candidate_time,
                flight_time=flight_time,
                score=score,
                timestamp=timestamp,
            )
        )
        if outcome is not AttemptOutcome.ACCEPTED:
            logger.debug(
                "Attempt %s: t=%s score=%s",
                outcome.name,
                f"{flight_time:.3f}s" if flight_time is not None else "n/a",
                f"{score.total:.1f}" if score is not None else "n/a",
            )

        self._flight = None
        self._counters = Counters()
        self._phase = FlightPhase.GROUNDED

    def _update_baseline(self, value: float) -> None:
        if not self._adaptive_enabled:
            return
        thresholds = self._baseline.update(value)
        if thresholds is None:
            return
        self._freefall_threshold = thresholds.freefall_threshold_g
        self._ground_threshold = thresholds.ground_threshold_g

    def _disable_adaptive(self) -> None:
        if self._adaptive_enabled:
            logger.info("Manual threshold set; adaptive thresholds disabled")
        self._adaptive_enabled = False

    @property
    def _has_override(self) -> bool:
        return self._freefall_override is not None or self._ground_override is not None


def detect_jumps_batch(
    samples: Iterable[Sample],
    settings: Settings | None = None,
) -> list[JumpEvent]:
    """Process a sequence of samples and return all accepted jumps.

    Pure function for replaying recorded data.

    Args:
        samples: Samples in timestamp order
        settings: Application settings

    Returns:
        List of accepted jump events
    """
    detector = JumpDetector(settings)
    events: list[JumpEvent] = []

    for sample in samples:
        event = detector.update(sample)
        if event is not None:
            events.append(event)

    return events
