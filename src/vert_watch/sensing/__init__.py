"""Sensor input: preprocessing, smoothing, baseline estimation and sources."""

from vert_watch.sensing.baseline import AdaptiveBaseline, AdaptiveThresholds, BaselineStats
from vert_watch.sensing.filters import DualRateFilter, FilterState
from vert_watch.sensing.preprocess import to_sample, vertical_g, vertical_g_series
from vert_watch.sensing.source import MotionSource, TraceReplaySource, load_trace, write_trace
from vert_watch.sensing.synthetic import TraceBuilder, parabolic_jump_trace

__all__ = [
    "vertical_g",
    "vertical_g_series",
    "to_sample",
    "FilterState",
    "DualRateFilter",
    "BaselineStats",
    "AdaptiveBaseline",
    "AdaptiveThresholds",
    "MotionSource",
    "TraceReplaySource",
    "load_trace",
    "write_trace",
    "TraceBuilder",
    "parabolic_jump_trace",
]
