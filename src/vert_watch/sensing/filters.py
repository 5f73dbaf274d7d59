"""Dual-rate exponential smoothing of the vertical acceleration signal."""

from __future__ import annotations

from dataclasses import dataclass

from vert_watch.core.config import FilterSettings
from vert_watch.core.logging import get_logger
from vert_watch.core.types import Sample

logger = get_logger(__name__)


@dataclass(slots=True)
class FilterState:
    """Smoothed values and the prev/curr pair used for interpolation.

    ``prev_filtered``/``curr_filtered`` hold whichever stream feeds the
    classifier, so the state machine always interpolates on the signal it
    thresholds.
    """

    slow_ema: float = 1.0
    fast_ema: float = 1.0
    prev_filtered: float = 1.0
    prev_timestamp: float = 0.0
    curr_filtered: float = 1.0
    curr_timestamp: float = 0.0
    initialized: bool = False

    @property
    def dt(self) -> float:
        """Seconds between the previous and current sample."""
        return self.curr_timestamp - self.prev_timestamp


class DualRateFilter:
    """Two single-pole EMAs over the same raw signal.

    The slow EMA favours stability and the fast one responsiveness;
    ``classifier_stream`` selects which one is exposed as the filtered value.
    """

    def __init__(self, settings: FilterSettings | None = None) -> None:
        """Initialize filter.

        Args:
            settings: Filter coefficients (uses defaults if None)
        """
        self.settings = settings or FilterSettings()
        self._state = FilterState()

    @property
    def state(self) -> FilterState:
        """Current filter state."""
        return self._state

    @property
    def is_initialized(self) -> bool:
        """True once the first sample of the session has been seen."""
        return self._state.initialized

    def reset(self) -> None:
        """Forget all history; the next sample re-initializes the filter."""
        self._state = FilterState()

    def update(self, sample: Sample) -> FilterState:
        """Feed one raw sample.

        A gap in timestamps (dropped ticks) is not a reason to re-initialize:
        the EMAs simply continue from their last value.

        Args:
            sample: Raw vertical acceleration sample

        Returns:
            Updated filter state
        """
        state = self._state
        raw = sample.vertical_g

        if not state.initialized:
            state.slow_ema = raw
            state.fast_ema = raw
            state.prev_filtered = raw
            state.curr_filtered = raw
            state.prev_timestamp = sample.timestamp
            state.curr_timestamp = sample.timestamp
            state.initialized = True
            logger.debug("Filter initialized at %.3f g", raw)
            return state

        state.prev_filtered = state.curr_filtered
        state.prev_timestamp = state.curr_timestamp

        alpha_slow = self.settings.alpha_slow
        alpha_fast = self.settings.alpha_fast
        state.slow_ema = alpha_slow * raw + (1.0 - alpha_slow) * state.slow_ema
        state.fast_ema = alpha_fast * raw + (1.0 - alpha_fast) * state.fast_ema

        if self.settings.classifier_stream == "fast":
            state.curr_filtered = state.fast_ema
        else:
            state.curr_filtered = state.slow_ema
        state.curr_timestamp = sample.timestamp

        return state
