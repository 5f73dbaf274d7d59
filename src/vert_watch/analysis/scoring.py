"""Quality scoring for candidate jumps.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from vert_watch.core.config import Band, ScoringSettings


@dataclass(frozen=True, slots=True)
class FlightMetrics:
    """Signals collected over one attempt and fed to the scorer.

    Attributes:
        flight_time: Validated flight time (s)
        min_flight_accel: Lowest filtered g while airborne
        max_landing_accel: Highest filtered g above the ground threshold
        total_variation: Sum of absolute sample-to-sample changes (g)
        apex_found: Whether the apex was located
        impact_peak: Largest g in the impact window of the landing
    """

    flight_time: float
    min_flight_accel: float
    max_landing_accel: float
    total_variation: float
    apex_found: bool
    impact_peak: float = 0.0

    @property
    def g_range(self) -> float:
        """Spread between landing peak and free-fall minimum."""
        return self.max_landing_accel - self.min_flight_accel


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Per-signal contributions to a quality score."""

    flight_time: float
    free_fall: float
    landing: float
    variation: float
    apex: float
    impact: float
    consistency: float
    total: float


def band_points(value: float, bands: list[Band], matches: Callable[[float, float], bool]) -> float:
    """Points of the first band whose threshold ``value`` satisfies.

    Args:
        value: Observed signal
        bands: ``(threshold, points)`` pairs, strongest band first
        matches: Comparison between value and threshold

    Returns:
        Points of the matching band, 0.0 if none matches
    """
    for threshold, points in bands:
        if matches(value, threshold):
            return points
    return 0.0


class QualityScorer:
    """Graduated multi-signal score for a free-fall/landing sequence.

    Flight duration, free-fall depth, landing impact and signal variation
    each earn partial points within their own bands; the apex and a
    consistent g-range/flight-time envelope add small bonuses. With the
    default bands no single signal can reach the acceptance score alone.
    """

    def __init__(self, settings: ScoringSettings | None = None, impact_peak_g: float = 2.2) -> None:
        """Initialize scorer.

        Args:
            settings: Score bands (uses defaults if None)
            impact_peak_g: Impact level that earns the impact bonus
        """
        self.settings = settings or ScoringSettings()
        self.impact_peak_g = impact_peak_g

    def score(self, metrics: FlightMetrics) -> ScoreBreakdown:
        """Score one attempt.

        Args:
            metrics: Signals collected during the attempt

        Returns:
            ScoreBreakdown with the total clamped to ``[0, max_score]``
        """
        s = self.settings

        flight = band_points(metrics.flight_time, s.flight_time_bands, lambda v, t: v >= t)
        free_fall = band_points(metrics.min_flight_accel, s.min_g_bands, lambda v, t: v < t)
        landing = band_points(metrics.max_landing_accel, s.landing_peak_bands, lambda v, t: v > t)
        variation = band_points(metrics.total_variation, s.variation_bands, lambda v, t: v > t)
        apex = s.apex_bonus if metrics.apex_found else 0.0
        impact = s.impact_bonus if metrics.impact_peak >= self.impact_peak_g else 0.0
        consistency = s.consistency_bonus if self._is_consistent(metrics) else 0.0

        total = flight + free_fall + landing + variation + apex + impact + consistency
        return ScoreBreakdown(
            flight_time=flight,
            free_fall=free_fall,
            landing=landing,
            variation=variation,
            apex=apex,
            impact=impact,
            consistency=consistency,
            total=max(0.0, min(s.max_score, total)),
        )

    def _is_consistent(self, metrics: FlightMetrics) -> bool:
        """Check the g-range vs flight-time envelope of a real jump."""
        s = self.settings
        ratio = metrics.flight_time / s.consistency_reference_time
        return (
            metrics.g_range > s.consistency_min_g_range
            and s.consistency_ratio_min < ratio < s.consistency_ratio_max
        )
