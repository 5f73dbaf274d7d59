"""Online resting-baseline statistics and adaptive thresholds.

Pure logic: no I/O, no dependency on the state machine. The caller decides
when a sample counts as ground contact.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from vert_watch.core.config import AdaptiveSettings
from vert_watch.core.logging import get_logger

logger = get_logger(__name__)


def clamp(value: float, lower: float, upper: float) -> float:
    """Limit ``value`` to ``[lower, upper]``."""
    return max(lower, min(upper, value))


@dataclass(slots=True)
class BaselineStats:
    """Welford accumulator over resting samples."""

    running_mean: float = 1.0
    variance_accumulator: float = 0.0
    sample_count: int = 0

    def add(self, value: float) -> None:
        """Fold one value into the running mean and variance."""
        self.sample_count += 1
        delta = value - self.running_mean
        self.running_mean += delta / self.sample_count
        self.variance_accumulator += delta * (value - self.running_mean)

    @property
    def variance(self) -> float:
        """Sample variance (0.0 with fewer than two samples)."""
        if self.sample_count < 2:
            return 0.0
        return max(self.variance_accumulator, 0.0) / (self.sample_count - 1)


@dataclass(frozen=True, slots=True)
class AdaptiveThresholds:
    """Thresholds recomputed from the resting baseline."""

    ground_threshold_g: float
    freefall_threshold_g: float


class AdaptiveBaseline:
    """Tracks the resting level of the vertical signal.

    Only plausible resting values are accepted. Once the warm-up count is
    exceeded, every accepted sample yields fresh thresholds:

        ground   = clamp(mean + offset, ground_min, ground_max)
        freefall = clamp(mean - k * sigma, freefall_min, freefall_max)
    """

    def __init__(self, settings: AdaptiveSettings | None = None) -> None:
        """Initialize estimator.

        Args:
            settings: Adaptive baseline parameters (uses defaults if None)
        """
        self.settings = settings or AdaptiveSettings()
        self._stats = BaselineStats()
        self._warm = False

    @property
    def stats(self) -> BaselineStats:
        """Current accumulator."""
        return self._stats

    @property
    def is_warm(self) -> bool:
        """True once enough samples have been collected to adapt."""
        return self._stats.sample_count > self.settings.warmup_samples

    @property
    def std(self) -> float:
        """Sample standard deviation, floored to avoid a zero spread."""
        return math.sqrt(max(self._stats.variance, self.settings.variance_floor))

    def reset(self) -> None:
        """Discard all collected statistics."""
        self._stats = BaselineStats()
        self._warm = False

    def accepts(self, value: float) -> bool:
        """Check whether ``value`` is plausible as a resting sample."""
        return self.settings.plausible_min_g < value < self.settings.plausible_max_g

    def update(self, value: float) -> AdaptiveThresholds | None:
        """Add a ground-contact sample.

        Args:
            value: Filtered vertical acceleration (g)

        Returns:
            New thresholds once warmed up, None otherwise
        """
        if not self.accepts(value):
            return None

        self._stats.add(value)
        if not self.is_warm:
            return None

        thresholds = self.thresholds()
        if not self._warm:
            self._warm = True
            logger.info(
                "Adaptive baseline ready: mean=%.3f g sigma=%.4f -> freefall=%.2f ground=%.2f",
                self._stats.running_mean,
                self.std,
                thresholds.freefall_threshold_g,
                thresholds.ground_threshold_g,
            )
        return thresholds

    def thresholds(self) -> AdaptiveThresholds:
        """Thresholds implied by the current statistics."""
        s = self.settings
        mean = self._stats.running_mean
        return AdaptiveThresholds(
            ground_threshold_g=clamp(mean + s.ground_offset, s.ground_min, s.ground_max),
            freefall_threshold_g=clamp(
                mean - s.freefall_sigma_k * self.std, s.freefall_min, s.freefall_max
            ),
        )
