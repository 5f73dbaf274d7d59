"""Pytest fixtures for Vert Watch tests."""

from __future__ import annotations

import pytest

from vert_watch.core.config import (
    AdaptiveSettings,
    DetectionSettings,
    FilterSettings,
    HeightSettings,
    ScoringSettings,
    Settings,
)
from vert_watch.core.types import JumpEvent, Sample
from vert_watch.sensing.synthetic import TraceBuilder


def make_settings(
    alpha: float = 1.0,
    adaptive: bool = False,
    **detection: float | int | bool,
) -> Settings:
    """Settings with unsmoothed input and fixed thresholds unless overridden.

    Defaults follow the classic watch tuning: free fall below 0.40 g for 8
    samples, landing above 1.15 g for 15 samples, 3 stable samples to arm.
    """
    values: dict[str, float | int | bool] = {
        "freefall_threshold_g": 0.40,
        "ground_threshold_g": 1.15,
        "need_below_freefall_samples": 8,
        "need_above_ground_samples": 15,
        "need_pre_jump_stable_samples": 3,
        "min_jump_score": 4.0,
        "use_adaptive_thresholds": adaptive,
    }
    values.update(detection)
    return Settings(
        detection=DetectionSettings(**values),
        filter=FilterSettings(alpha_slow=alpha, alpha_fast=alpha),
        adaptive=AdaptiveSettings(),
        scoring=ScoringSettings(),
        height=HeightSettings(),
    )


def scenario_c_trace(start_time: float = 0.0) -> TraceBuilder:
    """Stand, 10 samples of 0.30 g, 3 samples of 1.0 g, 16 samples of 1.4 g."""
    return (
        TraceBuilder(period=0.01, start_time=start_time)
        .hold(1.0, 50)
        .hold(0.30, 10)
        .hold(1.0, 3)
        .hold(1.4, 16)
    )


def run_samples(detector: object, samples: list[Sample]) -> list[JumpEvent]:
    """Feed samples to a detector and collect emitted events."""
    events = []
    for sample in samples:
        event = detector.update(sample)  # type: ignore[attr-defined]
        if event is not None:
            events.append(event)
    return events


@pytest.fixture
def exact_settings() -> Settings:
    """Unsmoothed settings with fixed thresholds."""
    return make_settings()


@pytest.fixture
def smoothed_settings() -> Settings:
    """Same thresholds, but the classifier sees a 0.30 EMA."""
    return make_settings(alpha=0.30)


@pytest.fixture
def default_settings() -> Settings:
    """Shipped defaults, isolated from the environment's .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def scenario_c_samples() -> list[Sample]:
    """Samples of a short but clean jump."""
    return scenario_c_trace().samples()


@pytest.fixture
def standing_samples() -> list[Sample]:
    """Two seconds of perfectly still standing at 100 Hz."""
    return TraceBuilder(period=0.01).hold(1.0, 200).samples()


@pytest.fixture
def sample_jump_event() -> JumpEvent:
    """Create a sample jump event."""
    return JumpEvent(height=0.30, flight_time=0.495, quality_score=8.5, timestamp=12.5)
