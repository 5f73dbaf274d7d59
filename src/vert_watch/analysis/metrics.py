"""Session statistics and metrics tracking.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from vert_watch.core.types import JumpEvent, SessionStats


@dataclass
class JumpMetrics:
    """Computed metrics for a single jump."""

    height_cm: float
    flight_time_s: float
    takeoff_velocity: float
    quality_score: float


@dataclass
class SessionSummary:
    """Summary statistics for a training session."""

    total_jumps: int
    best_height_cm: float | None
    avg_height_cm: float | None
    std_height_cm: float | None
    min_height_cm: float | None
    avg_quality_score: float | None
    total_duration_s: float
    jumps_per_minute: float


class MetricsTracker:
    """Tracks and computes session metrics.

    Maintains a SessionStats object and provides computed statistics.
    """

    def __init__(
        self, stats: SessionStats | None = None, standard_gravity: float = 9.80665
    ) -> None:
        """Initialize tracker with optional existing stats.

        Args:
            stats: Existing session stats to continue tracking
            standard_gravity: g0 in m/s^2, used for takeoff velocity
        """
        self.stats = stats or SessionStats()
        self.standard_gravity = standard_gravity

    @property
    def jump_count(self) -> int:
        """Get total jump count."""
        return self.stats.jump_count

    @property
    def last_height(self) -> float:
        """Get most recent jump height in meters."""
        return self.stats.last_height

    @property
    def best_height(self) -> float:
        """Get best jump height in meters."""
        return self.stats.best_height

    @property
    def avg_height(self) -> float | None:
        """Get average jump height in meters."""
        return self.stats.avg_height

    @property
    def last_jump(self) -> JumpEvent | None:
        """Get most recent jump."""
        return self.stats.last_jump

    def add_jump(self, event: JumpEvent) -> JumpMetrics:
        """Add a jump event and compute metrics.

        Args:
            event: Accepted jump event

        Returns:
            Computed metrics for the jump
        """
        self.stats.add_jump(event)

        # v = sqrt(2 * g * h)
        velocity = 0.0
        if event.height > 0:
            velocity = math.sqrt(2.0 * self.standard_gravity * event.height)

        return JumpMetrics(
            height_cm=event.height_cm,
            flight_time_s=event.flight_time,
            takeoff_velocity=velocity,
            quality_score=event.quality_score,
        )

    def get_summary(self, session_duration_s: float = 0.0) -> SessionSummary:
        """Get session summary statistics.

        Args:
            session_duration_s: Total session duration in seconds

        Returns:
            SessionSummary with computed statistics
        """
        stats = self.stats
        avg = stats.avg_height
        std = stats.std_height
        jumps_per_min = (
            self.jump_count / (session_duration_s / 60.0) if session_duration_s > 0 else 0.0
        )

        return SessionSummary(
            total_jumps=self.jump_count,
            best_height_cm=stats.best_height * 100.0 if stats.jump_count else None,
            avg_height_cm=avg * 100.0 if avg is not None else None,
            std_height_cm=std * 100.0 if std is not None else None,
            min_height_cm=stats.min_height * 100.0 if stats.min_height is not None else None,
            avg_quality_score=stats.avg_quality_score,
            total_duration_s=session_duration_s,
            jumps_per_minute=jumps_per_min,
        )

    def get_recent_jumps(self, count: int = 5) -> list[JumpEvent]:
        """Get most recent jumps.

        Args:
            count: Number of recent jumps to return

        Returns:
            List of recent jump events (newest first)
        """
        return list(reversed(list(self.stats.jumps)[-count:]))

    def get_height_trend(self) -> list[float]:
        """Get retained jump heights in cm, in chronological order."""
        return [j.height_cm for j in self.stats.jumps]

    def reset(self) -> None:
        """Clear all recorded data."""
        self.stats.reset()
