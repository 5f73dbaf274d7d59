"""Jump analysis: detection state machine, scoring and height estimation."""

from vert_watch.analysis.calculator import (
    HeightEstimate,
    HeightEstimator,
    calculate_jump_height,
    kinematic_height,
)
from vert_watch.analysis.detector import (
    AttemptRecord,
    Counters,
    FlightContext,
    JumpDetector,
    detect_jumps_batch,
)
from vert_watch.analysis.integrator import VelocityIntegrator, interpolate_crossing_time
from vert_watch.analysis.metrics import JumpMetrics, MetricsTracker, SessionSummary
from vert_watch.analysis.scoring import FlightMetrics, QualityScorer, ScoreBreakdown

__all__ = [
    "JumpDetector",
    "FlightContext",
    "Counters",
    "AttemptRecord",
    "detect_jumps_batch",
    "interpolate_crossing_time",
    "VelocityIntegrator",
    "FlightMetrics",
    "ScoreBreakdown",
    "QualityScorer",
    "kinematic_height",
    "HeightEstimate",
    "HeightEstimator",
    "calculate_jump_height",
    "MetricsTracker",
    "SessionSummary",
    "JumpMetrics",
]
