"""Tests for jump detection state machine."""

from __future__ import annotations

import pytest
from conftest import make_settings, run_samples, scenario_c_trace

from vert_watch.analysis.calculator import kinematic_height
from vert_watch.analysis.detector import JumpDetector, detect_jumps_batch
from vert_watch.core.config import Settings
from vert_watch.core.exceptions import ConfigurationError, JumpDetectionError
from vert_watch.core.types import AttemptOutcome, FlightPhase, JumpEvent, Sample
from vert_watch.sensing.synthetic import TraceBuilder, parabolic_jump_trace

TICK = 1.0 / 128.0


def _boundary_trace(freefall_samples: int) -> list[Sample]:
    """Trace whose measured flight time is exactly (freefall_samples + 1) ticks."""
    return (
        TraceBuilder(period=TICK)
        .hold(1.0, 10)
        .hold(0.0, freefall_samples)
        .hold(1.0, 1)
        .hold(1.5, 3)
        .hold(1.0, 5)
        .samples()
    )


def _boundary_settings(**overrides: float) -> Settings:
    values: dict[str, float] = {
        "freefall_threshold_g": 0.5,
        "ground_threshold_g": 1.25,
        "need_below_freefall_samples": 4,
        "need_above_ground_samples": 3,
        "need_pre_jump_stable_samples": 3,
        "min_jump_score": 0.0,
        "apex_flight_time_ratio": 0.0,
    }
    values.update(overrides)
    return make_settings(**values)


class TestJumpDetector:
    """Tests for the JumpDetector class."""

    def test_initial_state_is_grounded(self, exact_settings: Settings) -> None:
        """Detector should start in GROUNDED phase."""
        detector = JumpDetector(exact_settings)
        assert detector.current_phase == FlightPhase.GROUNDED
        assert not detector.is_jumping
        assert detector.flight is None

    def test_first_sample_only_initializes_filter(self, exact_settings: Settings) -> None:
        """The first sample primes the filter without touching the state machine."""
        detector = JumpDetector(exact_settings)

        assert detector.update(Sample(0.0, 0.0)) is None

        assert detector.filter_state.initialized
        assert detector.counters.pre_jump_stability_count == 0
        assert detector.current_phase == FlightPhase.GROUNDED

    def test_standing_never_triggers(
        self, exact_settings: Settings, standing_samples: list[Sample]
    ) -> None:
        """Constant 1 g for 200 samples: no events, stability saturates."""
        detector = JumpDetector(exact_settings)

        events = run_samples(detector, standing_samples)

        assert events == []
        assert detector.counters.pre_jump_stability_count == exact_settings.detection.stability_cap
        assert detector.counters.freefall_sample_count == 0
        assert detector.current_phase == FlightPhase.ARMED
        assert detector.attempts == []

    def test_brief_dip_is_not_a_takeoff(self, smoothed_settings: Settings) -> None:
        """A smoothed 10-sample dip never stays below threshold for 8 samples."""
        detector = JumpDetector(smoothed_settings)
        trace = TraceBuilder().hold(1.0, 50).hold(0.30, 10).hold(1.0, 5)

        events = run_samples(detector, trace.samples())

        assert events == []
        assert detector.attempts == []
        assert detector.flight is None
        assert detector.counters.freefall_sample_count == 0

    def test_short_freefall_run_emits_nothing(self, exact_settings: Settings) -> None:
        """Seven samples of free fall cannot confirm a takeoff that needs eight."""
        detector = JumpDetector(exact_settings)
        trace = TraceBuilder().hold(1.0, 50).hold(0.0, 7).hold(1.5, 20).hold(1.0, 20)

        events = run_samples(detector, trace.samples())

        assert events == []
        assert detector.attempts == []

    def test_clean_jump_is_accepted(
        self, exact_settings: Settings, scenario_c_samples: list[Sample]
    ) -> None:
        """Scenario with a strong landing produces exactly one event."""
        detector = JumpDetector(exact_settings)

        events = run_samples(detector, scenario_c_samples)

        assert len(events) == 1
        event = events[0]
        # takeoff interpolated to 0.4986, landing to 0.62375
        assert event.flight_time == pytest.approx(0.62375 - (0.49 + 0.6 / 0.7 * 0.01), abs=1e-9)
        assert event.quality_score == pytest.approx(9.0)
        assert event.quality_score >= exact_settings.detection.min_jump_score
        assert event.timestamp == pytest.approx(0.77)
        assert event.height == pytest.approx(
            kinematic_height(event.flight_time) * 0.995 * 1.15, rel=1e-9
        )
        assert detector.current_phase == FlightPhase.GROUNDED
        assert detector.attempts[-1].outcome == AttemptOutcome.ACCEPTED

    def test_clean_jump_finds_apex(
        self, exact_settings: Settings, scenario_c_samples: list[Sample]
    ) -> None:
        """Velocity integration should locate the apex before landing completes."""
        detector = JumpDetector(exact_settings)
        apex_times = []

        for sample in scenario_c_samples:
            detector.update(sample)
            if detector.flight is not None and detector.flight.apex_found:
                apex_times.append(detector.flight.apex_time)

        assert apex_times
        assert 0.64 < apex_times[0] < 0.65
        assert detector.attempts[-1].score is not None
        assert detector.attempts[-1].score.apex == pytest.approx(0.5)

    def test_quality_gate_rejects_and_rearms(self) -> None:
        """An unreachable score rejects every attempt but keeps the machine cycling."""
        settings = make_settings(min_jump_score=9.5)
        detector = JumpDetector(settings)
        first = scenario_c_trace().samples()
        second = scenario_c_trace(start_time=1.0).samples()

        events = run_samples(detector, first)
        assert events == []
        assert detector.current_phase == FlightPhase.GROUNDED
        assert detector.counters.pre_jump_stability_count == 0
        assert detector.flight is None

        events = run_samples(detector, second)
        assert events == []

        outcomes = [attempt.outcome for attempt in detector.attempts]
        assert outcomes == [AttemptOutcome.REJECTED_SCORE, AttemptOutcome.REJECTED_SCORE]

    def test_stability_gate_blocks_freefall(self, exact_settings: Settings) -> None:
        """Restless input before the dip keeps the detector disarmed."""
        detector = JumpDetector(exact_settings)
        trace = TraceBuilder()
        for _ in range(25):
            trace.hold(1.0, 1).hold(1.5, 1)
        trace.hold(0.0, 20).hold(1.5, 20)

        events = run_samples(detector, trace.samples())

        assert events == []
        assert detector.attempts == []
        assert detector.current_phase == FlightPhase.GROUNDED

    def test_reset_clears_state(
        self, exact_settings: Settings, scenario_c_samples: list[Sample]
    ) -> None:
        """Reset should return detector to initial state."""
        detector = JumpDetector(exact_settings)
        run_samples(detector, scenario_c_samples[:58])
        assert detector.current_phase == FlightPhase.IN_FLIGHT

        detector.reset()

        assert detector.current_phase == FlightPhase.GROUNDED
        assert not detector.is_jumping
        assert not detector.filter_state.initialized
        assert detector.recent_history == []
        assert detector.attempts == []

    def test_phases_follow_the_jump(
        self, exact_settings: Settings, scenario_c_samples: list[Sample]
    ) -> None:
        """Phases should progress ARMED -> FREEFALL -> IN_FLIGHT -> LANDING -> GROUNDED."""
        detector = JumpDetector(exact_settings)
        phases = []

        for sample in scenario_c_samples:
            detector.update(sample)
            if not phases or phases[-1] != detector.current_phase:
                phases.append(detector.current_phase)

        assert phases == [
            FlightPhase.GROUNDED,
            FlightPhase.ARMED,
            FlightPhase.FREEFALL,
            FlightPhase.IN_FLIGHT,
            FlightPhase.LANDING,
            FlightPhase.GROUNDED,
        ]

    def test_recent_history_is_bounded(
        self, exact_settings: Settings, standing_samples: list[Sample]
    ) -> None:
        """Diagnostic history keeps only the most recent values."""
        detector = JumpDetector(exact_settings)
        run_samples(detector, standing_samples)

        assert len(detector.recent_history) == exact_settings.detection.recent_history_size

    def test_reentrant_update_raises(
        self, exact_settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Calling update() from inside update() is a contract violation."""
        detector = JumpDetector(exact_settings)
        original = detector._filter.update

        def reenter(sample: Sample) -> object:
            detector.update(sample)
            return original(sample)

        monkeypatch.setattr(detector._filter, "update", reenter)

        with pytest.raises(JumpDetectionError):
            detector.update(Sample(1.0, 0.0))

    def test_airborne_without_flight_context_raises(self, exact_settings: Settings) -> None:
        """An airborne phase with no flight context is reported, not ignored."""
        detector = JumpDetector(exact_settings)
        detector.update(Sample(1.0, 0.0))
        detector._phase = FlightPhase.IN_FLIGHT

        with pytest.raises(JumpDetectionError):
            detector.update(Sample(1.0, 0.01))

    def test_discard_attempt_in_flight(
        self, exact_settings: Settings, scenario_c_samples: list[Sample]
    ) -> None:
        """Discarding mid-flight records the attempt without scoring it."""
        detector = JumpDetector(exact_settings)
        run_samples(detector, scenario_c_samples[:60])

        assert detector.discard_attempt(0.6)
        assert detector.attempts[-1].outcome == AttemptOutcome.DISCARDED
        assert detector.attempts[-1].score is None
        assert detector.current_phase == FlightPhase.GROUNDED
        assert not detector.discard_attempt(0.61)


class TestFlightTimeWindow:
    """Flight time validation at the exact window boundaries."""

    def test_flight_time_at_minimum_is_accepted(self) -> None:
        """t == min_flight_time passes the window check."""
        detector = JumpDetector(_boundary_settings(min_flight_time=13 * TICK))

        events = run_samples(detector, _boundary_trace(12))

        assert len(events) == 1
        assert events[0].flight_time == 13 * TICK

    def test_flight_time_below_minimum_is_rejected(self) -> None:
        """One tick short of min_flight_time is rejected."""
        detector = JumpDetector(_boundary_settings(min_flight_time=13 * TICK))

        events = run_samples(detector, _boundary_trace(11))

        assert events == []
        assert detector.attempts[-1].outcome == AttemptOutcome.REJECTED_FLIGHT_TIME
        assert detector.attempts[-1].flight_time == 12 * TICK

    def test_flight_time_at_maximum_is_accepted(self) -> None:
        """t == max_flight_time passes the window check."""
        detector = JumpDetector(_boundary_settings(max_flight_time=20 * TICK))

        events = run_samples(detector, _boundary_trace(19))

        assert len(events) == 1
        assert events[0].flight_time == 20 * TICK

    def test_flight_time_above_maximum_is_rejected(self) -> None:
        """One tick over max_flight_time is rejected."""
        detector = JumpDetector(_boundary_settings(max_flight_time=20 * TICK))

        events = run_samples(detector, _boundary_trace(20))

        assert events == []
        assert detector.attempts[-1].outcome == AttemptOutcome.REJECTED_FLIGHT_TIME


class TestLandingDipTolerance:
    """Reset-vs-forgive policy for sub-threshold ticks during landing."""

    @staticmethod
    def _trace() -> list[Sample]:
        return (
            TraceBuilder()
            .hold(1.0, 50)
            .hold(0.30, 15)
            .hold(1.4, 5)
            .hold(1.0, 1)
            .hold(1.4, 15)
            .hold(1.0, 20)
            .samples()
        )

    def test_strict_policy_restarts_landing(self) -> None:
        """With no tolerance the landing time moves to the second crossing."""
        detector = JumpDetector(make_settings(apex_flight_time_ratio=0.0))

        events = run_samples(detector, self._trace())

        assert len(events) == 1
        assert events[0].flight_time == pytest.approx(0.70375 - 0.4985714, abs=1e-6)
        assert events[0].timestamp == pytest.approx(0.85)

    def test_tolerant_policy_keeps_first_crossing(self) -> None:
        """A forgiven dip keeps both the count and the first landing time."""
        settings = make_settings(apex_flight_time_ratio=0.0, landing_dip_tolerance=1)
        detector = JumpDetector(settings)

        events = run_samples(detector, self._trace())

        assert len(events) == 1
        expected = 0.64 + 0.85 / 1.1 * 0.01 - 0.4985714
        assert events[0].flight_time == pytest.approx(expected, abs=1e-6)
        assert events[0].timestamp == pytest.approx(0.80)


class TestApexFlightTime:
    """Apex-derived flight time replacing the landing-based estimate."""

    @staticmethod
    def _trace() -> list[Sample]:
        # Rise back to ~0 m/s mid-flight so the apex is found early
        return (
            TraceBuilder()
            .hold(1.0, 50)
            .hold(0.05, 20)
            .hold(2.05, 11)
            .hold(0.05, 20)
            .hold(3.0, 20)
            .hold(1.0, 20)
            .samples()
        )

    @staticmethod
    def _run(detector: JumpDetector, samples: list[Sample]) -> tuple[list[JumpEvent], float]:
        events: list[JumpEvent] = []
        apex_flight_time = None
        for sample in samples:
            event = detector.update(sample)
            if event is not None:
                events.append(event)
            flight = detector.flight
            if flight is not None and flight.apex_found:
                apex_flight_time = flight.apex_flight_time
        assert apex_flight_time is not None
        return events, apex_flight_time

    def test_apex_estimate_replaces_flight_time(self) -> None:
        """0 < apex estimate <= ratio * t: the apex estimate is used."""
        detector = JumpDetector(make_settings(ground_threshold_g=2.5, apex_flight_time_ratio=1.5))

        events, apex_flight_time = self._run(detector, self._trace())

        attempt = detector.attempts[-1]
        assert attempt.landing_time is not None
        raw = attempt.landing_time - attempt.takeoff_time
        assert raw == pytest.approx(1.0083051 - 0.4963158, abs=1e-6)
        assert 0.0 < apex_flight_time <= 1.5 * raw
        assert len(events) == 1
        assert events[0].flight_time == pytest.approx(apex_flight_time)
        assert events[0].flight_time != pytest.approx(raw)

    def test_apex_estimate_over_ratio_is_ignored(self) -> None:
        """An apex estimate above ratio * t leaves the landing-based time."""
        detector = JumpDetector(make_settings(ground_threshold_g=2.5, apex_flight_time_ratio=1.1))

        events, apex_flight_time = self._run(detector, self._trace())

        attempt = detector.attempts[-1]
        assert attempt.landing_time is not None
        raw = attempt.landing_time - attempt.takeoff_time
        assert apex_flight_time > 1.1 * raw
        assert len(events) == 1
        assert events[0].flight_time == pytest.approx(raw)


class TestThresholds:
    """Adaptive and manual thresholds."""

    def test_adaptive_thresholds_follow_baseline(self) -> None:
        """After warm-up, thresholds are recomputed from the resting level."""
        detector = JumpDetector(make_settings(adaptive=True))

        run_samples(detector, TraceBuilder().hold(1.02, 60).samples())

        assert detector.baseline.is_warm
        assert detector.ground_threshold == pytest.approx(1.17)
        assert detector.freefall_threshold == pytest.approx(0.40)

    def test_baseline_frozen_while_airborne(self) -> None:
        """In-flight 1 g readings must not leak into the resting baseline."""
        detector = JumpDetector(make_settings(adaptive=True))
        samples = scenario_c_trace().samples()

        run_samples(detector, samples[:57])
        count_at_takeoff = detector.baseline.stats.sample_count
        run_samples(detector, samples[57:63])

        assert count_at_takeoff == 49
        assert detector.current_phase.is_airborne
        assert detector.baseline.stats.sample_count == count_at_takeoff

    def test_manual_override_disables_adaptation(self, default_settings: Settings) -> None:
        """A manual threshold sticks, even across reset()."""
        detector = JumpDetector(default_settings)
        assert detector.adaptive_enabled

        detector.set_freefall_threshold(0.35)
        run_samples(detector, TraceBuilder().hold(1.02, 80).samples())

        assert not detector.adaptive_enabled
        assert detector.freefall_threshold == 0.35
        assert detector.ground_threshold == default_settings.detection.ground_threshold_g

        detector.reset()

        assert detector.freefall_threshold == 0.35
        assert not detector.adaptive_enabled

    def test_ground_override_sticks(self, default_settings: Settings) -> None:
        """A manual ground threshold survives adaptation and reset()."""
        detector = JumpDetector(default_settings)

        detector.set_ground_threshold(1.30)
        run_samples(detector, TraceBuilder().hold(1.02, 80).samples())

        assert not detector.adaptive_enabled
        assert detector.ground_threshold == 1.30
        assert detector.freefall_threshold == default_settings.detection.freefall_threshold_g

        detector.reset()

        assert detector.ground_threshold == 1.30
        assert detector.freefall_threshold == default_settings.detection.freefall_threshold_g
        assert not detector.adaptive_enabled

    def test_inconsistent_override_raises(self, exact_settings: Settings) -> None:
        """Free-fall threshold must stay below the ground threshold."""
        detector = JumpDetector(exact_settings)

        with pytest.raises(ConfigurationError):
            detector.set_freefall_threshold(1.5)
        with pytest.raises(ConfigurationError):
            detector.set_ground_threshold(0.2)


class TestDetectJumpsBatch:
    """Tests for the batch detection function."""

    def test_batch_detection_finds_jumps(self, exact_settings: Settings) -> None:
        """Batch detection should find a clean parabolic jump."""
        trace = parabolic_jump_trace(flight_time=0.40)

        events = detect_jumps_batch(trace.samples(), exact_settings)

        assert len(events) == 1
        kinematic = kinematic_height(events[0].flight_time)
        assert events[0].flight_time == pytest.approx(0.40, abs=0.01)
        assert 0.85 * kinematic <= events[0].height <= 1.15 * kinematic

    def test_empty_sequence_returns_empty_list(self, exact_settings: Settings) -> None:
        """Empty input should return empty output."""
        assert detect_jumps_batch([], exact_settings) == []

    def test_batch_matches_incremental(
        self, exact_settings: Settings, scenario_c_samples: list[Sample]
    ) -> None:
        """Batch and incremental detection should give same results."""
        batch_events = detect_jumps_batch(scenario_c_samples, exact_settings)

        detector = JumpDetector(exact_settings)
        incremental_events = run_samples(detector, scenario_c_samples)

        assert batch_events == incremental_events

    def test_fresh_detectors_are_independent(self, exact_settings: Settings) -> None:
        """Two fresh detectors produce identical events for the same trace."""
        trace = parabolic_jump_trace(flight_time=0.35).hold(1.0, 20)
        trace.hold(0.05, 45).hold(1.8, 20).hold(1.0, 50)
        samples = trace.samples()

        first = detect_jumps_batch(samples, exact_settings)
        second = detect_jumps_batch(samples, exact_settings)

        assert len(first) == 2
        assert first == second
