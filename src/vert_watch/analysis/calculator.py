"""Height estimation from flight time.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

from vert_watch.core.config import HeightSettings
from vert_watch.core.logging import get_logger

logger = get_logger(__name__)


def kinematic_height(flight_time: float, standard_gravity: float = 9.80665) -> float:
    """Height reached for a symmetric flight of ``flight_time`` seconds.

    Rise and fall each take t/2 under constant gravity, so
    h = 1/2 * g * (t/2)^2 = g * t^2 / 8.

    Args:
        flight_time: Total time airborne (s)
        standard_gravity: g0 in m/s^2

    Returns:
        Height in meters
    """
    return standard_gravity * flight_time * flight_time / 8.0


@dataclass(frozen=True, slots=True)
class HeightEstimate:
    """Intermediate and final values of one height estimate.

    Attributes:
        flight_time: Flight time fed to the kinematic formula (s)
        kinematic_height: g*t^2/8 before any correction (m)
        corrected_height: After quality multiplier and empirical bands (m)
        barometric_height: Barometer delta altitude, if one was supplied (m)
        barometer_fused: Whether the barometer reading was blended in
        height: Final clamped height (m)
    """

    flight_time: float
    kinematic_height: float
    corrected_height: float
    barometric_height: float | None
    barometer_fused: bool
    height: float


class HeightEstimator:
    """Turns a validated flight time into a jump height.

    Steps:
    - Blend the flight time with the apex-derived estimate when they agree
    - Kinematic base h = g*t^2/8
    - Quality-weighted multiplier, then range-based empirical correction
    - Optional barometric fusion when the barometer agrees
    - Clamp to a physically plausible range
    """

    def __init__(
        self,
        settings: HeightSettings | None = None,
        standard_gravity: float = 9.80665,
    ) -> None:
        """Initialize estimator.

        Args:
            settings: Height estimation parameters (uses defaults if None)
            standard_gravity: g0 in m/s^2
        """
        self.settings = settings or HeightSettings()
        self.standard_gravity = standard_gravity

    def estimate(
        self,
        flight_time: float,
        quality_score: float,
        min_jump_score: float,
        max_score: float = 10.0,
        apex_flight_time: float | None = None,
        barometric_height: float | None = None,
    ) -> HeightEstimate:
        """Estimate the height of an accepted jump.

        Args:
            flight_time: Validated flight time (s)
            quality_score: Score the jump was accepted with
            min_jump_score: Acceptance threshold the score was compared with
            max_score: Upper bound of the score scale
            apex_flight_time: ``2 * (apex - takeoff)`` if the apex was found
            barometric_height: Peak minus start altitude during the flight

        Returns:
            HeightEstimate with all intermediate values
        """
        s = self.settings

        effective_time = self.blend_flight_time(flight_time, apex_flight_time)
        base = kinematic_height(effective_time, self.standard_gravity)

        quality = max(0.0, min(1.0, quality_score / max_score)) if max_score > 0 else 1.0
        multiplier = s.quality_floor + (s.quality_ceiling - s.quality_floor) * quality
        corrected = self.apply_corrections(base * multiplier, quality_score, min_jump_score)

        barometer_fused = self.barometer_usable(corrected, barometric_height)
        fused = self.fuse_barometer(corrected, barometric_height)
        height = max(s.min_height, min(s.max_height, fused))

        return HeightEstimate(
            flight_time=effective_time,
            kinematic_height=base,
            corrected_height=corrected,
            barometric_height=barometric_height,
            barometer_fused=barometer_fused,
            height=height,
        )

    def blend_flight_time(self, flight_time: float, apex_flight_time: float | None) -> float:
        """Weighted average of raw and apex-derived flight time.

        The apex estimate only participates when it is positive and within
        ``apex_blend_max_ratio`` of the raw one.
        """
        s = self.settings
        if apex_flight_time is None:
            return flight_time
        if 0.0 < apex_flight_time <= flight_time * s.apex_blend_max_ratio:
            w = s.apex_blend_weight
            return (1.0 - w) * flight_time + w * apex_flight_time
        return flight_time

    def correction_factor(self, raw_height: float) -> float:
        """Empirical factor for the band ``raw_height`` falls in."""
        for threshold, factor in self.settings.correction_bands:
            if raw_height >= threshold:
                return factor
        return self.settings.lowest_band_factor

    def apply_corrections(
        self,
        raw_height: float,
        quality_score: float,
        min_jump_score: float,
    ) -> float:
        """Range-based correction plus a small trim for high-quality jumps."""
        s = self.settings
        adjusted = raw_height * self.correction_factor(raw_height)

        quality_ratio = min(1.0, quality_score / min_jump_score) if min_jump_score > 0 else 1.0
        if quality_ratio > s.high_quality_ratio:
            adjusted *= s.high_quality_base + (1.0 - s.high_quality_base) * quality_ratio

        return adjusted

    def barometer_usable(self, height: float, barometric_height: float | None) -> bool:
        """Check that the barometer height is plausible and agrees."""
        s = self.settings
        if barometric_height is None:
            return False
        plausible = s.baro_min_height < barometric_height < s.baro_max_height
        agrees = abs(barometric_height - height) < s.baro_max_divergence
        return plausible and agrees

    def fuse_barometer(self, height: float, barometric_height: float | None) -> float:
        """Blend in the barometer when it is usable.

        Otherwise the barometer is ignored entirely for this jump.
        """
        if barometric_height is None:
            return height
        if not self.barometer_usable(height, barometric_height):
            logger.debug(
                "Ignoring barometer: %.3f m vs accelerometer %.3f m", barometric_height, height
            )
            return height

        weight = self.settings.baro_weight
        return (1.0 - weight) * height + weight * barometric_height


def calculate_jump_height(
    flight_time: float,
    quality_score: float,
    settings: HeightSettings | None = None,
    min_jump_score: float = 4.5,
    standard_gravity: float = 9.80665,
) -> float:
    """Pure function to calculate jump height.

    Args:
        flight_time: Validated flight time (s)
        quality_score: Score the jump was accepted with
        settings: Height estimation parameters
        min_jump_score: Acceptance threshold
        standard_gravity: g0 in m/s^2

    Returns:
        Jump height in meters
    """
    estimator = HeightEstimator(settings, standard_gravity)
    return estimator.estimate(flight_time, quality_score, min_jump_score).height
