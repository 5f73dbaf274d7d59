"""Application configuration via Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Band = tuple[float, float]


class DetectionSettings(BaseSettings):
    """Flight state machine thresholds, counts and physical constants."""

    model_config = SettingsConfigDict(env_prefix="JUMP_", env_file=".env", extra="ignore")

    freefall_threshold_g: float = Field(default=0.32, gt=0.0)
    ground_threshold_g: float = Field(default=1.25, gt=0.0)
    need_below_freefall_samples: int = Field(default=5, ge=1)
    need_above_ground_samples: int = Field(default=10, ge=1)
    need_pre_jump_stable_samples: int = Field(default=4, ge=0)
    stable_min_g: float = 0.85
    stable_max_g: float = 1.20
    stability_gain: int = Field(default=1, ge=1)
    stability_decay: int = Field(default=2, ge=0)
    stability_cap: int = Field(default=50, ge=1)
    min_flight_time: float = Field(default=0.10, ge=0.0)
    max_flight_time: float = Field(default=1.20, gt=0.0)
    impact_peak_g: float = 2.2
    impact_window_samples: int = Field(default=20, ge=1)
    min_jump_score: float = Field(default=4.5, ge=0.0)
    update_frequency_hz: float = Field(default=100.0, gt=0.0)
    standard_gravity: float = Field(default=9.80665, gt=0.0)
    use_adaptive_thresholds: bool = True
    apex_flight_time_ratio: float = Field(default=1.5, ge=0.0)
    landing_dip_tolerance: int = Field(default=0, ge=0)
    acceleration_buffer_size: int = Field(default=64, ge=1)
    recent_history_size: int = Field(default=20, ge=1)
    attempt_log_size: int = Field(default=32, ge=1)

    @model_validator(mode="after")
    def check_ranges(self) -> DetectionSettings:
        if self.stable_min_g >= self.stable_max_g:
            raise ValueError("stable_min_g must be below stable_max_g")
        if self.min_flight_time > self.max_flight_time:
            raise ValueError("min_flight_time must not exceed max_flight_time")
        if self.freefall_threshold_g >= self.ground_threshold_g:
            raise ValueError("freefall_threshold_g must be below ground_threshold_g")
        if self.stability_cap < self.need_pre_jump_stable_samples:
            raise ValueError("stability_cap must be at least need_pre_jump_stable_samples")
        return self

    @property
    def sample_period(self) -> float:
        """Nominal seconds between samples."""
        return 1.0 / self.update_frequency_hz


class FilterSettings(BaseSettings):
    """Dual-rate EMA smoothing parameters."""

    model_config = SettingsConfigDict(env_prefix="FILTER_", env_file=".env", extra="ignore")

    alpha_slow: float = Field(default=0.25, gt=0.0, le=1.0)
    alpha_fast: float = Field(default=0.40, gt=0.0, le=1.0)
    classifier_stream: Literal["slow", "fast"] = "slow"


class AdaptiveSettings(BaseSettings):
    """Online baseline estimation and threshold recomputation."""

    model_config = SettingsConfigDict(env_prefix="ADAPTIVE_", env_file=".env", extra="ignore")

    plausible_min_g: float = 0.7
    plausible_max_g: float = 1.3
    warmup_samples: int = Field(default=50, ge=2)
    ground_offset: float = 0.15
    ground_min: float = 1.10
    ground_max: float = 1.30
    freefall_sigma_k: float = Field(default=4.0, ge=0.0)
    freefall_min: float = 0.30
    freefall_max: float = 0.40
    variance_floor: float = Field(default=1e-6, gt=0.0)

    @model_validator(mode="after")
    def check_ranges(self) -> AdaptiveSettings:
        if self.plausible_min_g >= self.plausible_max_g:
            raise ValueError("plausible_min_g must be below plausible_max_g")
        if self.ground_min > self.ground_max or self.freefall_min > self.freefall_max:
            raise ValueError("adaptive clamp bounds are inverted")
        return self


class ApexSettings(BaseSettings):
    """Velocity integration and apex detection parameters."""

    model_config = SettingsConfigDict(env_prefix="APEX_", env_file=".env", extra="ignore")

    velocity_limit: float = Field(default=6.0, gt=0.0)
    history_size: int = Field(default=10, ge=1)
    prev_velocity_tolerance: float = -0.05
    velocity_tolerance: float = -0.03
    min_time: float = 0.08
    max_time: float = 1.0
    trend_window: int = Field(default=3, ge=2)
    interpolation_epsilon: float = Field(default=0.001, gt=0.0)


class ScoringSettings(BaseSettings):
    """Quality score bands.

    Each band list holds ``(threshold, points)`` pairs. Only the best matching
    band of a signal contributes, so every boundary and every contribution can
    be tuned on its own.
    """

    model_config = SettingsConfigDict(env_prefix="SCORE_", env_file=".env", extra="ignore")

    # flight time >= threshold
    flight_time_bands: list[Band] = Field(
        default_factory=lambda: [(0.20, 3.5), (0.15, 3.0), (0.12, 2.5), (0.10, 2.0), (0.08, 1.5)]
    )
    # minimum in-flight g < threshold
    min_g_bands: list[Band] = Field(
        default_factory=lambda: [(0.60, 2.5), (0.70, 2.0), (0.80, 1.5), (0.90, 1.0)]
    )
    # peak landing g > threshold
    landing_peak_bands: list[Band] = Field(
        default_factory=lambda: [(1.40, 2.5), (1.25, 2.0), (1.15, 1.5), (1.05, 1.0)]
    )
    # total variation > threshold
    variation_bands: list[Band] = Field(
        default_factory=lambda: [(1.0, 1.0), (0.5, 0.7), (0.3, 0.5)]
    )
    apex_bonus: float = Field(default=0.5, ge=0.0)
    impact_bonus: float = Field(default=0.0, ge=0.0)
    consistency_bonus: float = Field(default=0.5, ge=0.0)
    consistency_min_g_range: float = 0.8
    consistency_reference_time: float = Field(default=0.5, gt=0.0)
    consistency_ratio_min: float = 0.2
    consistency_ratio_max: float = 2.0
    max_score: float = Field(default=10.0, gt=0.0)

    @field_validator("flight_time_bands", "landing_peak_bands", "variation_bands")
    @classmethod
    def sort_descending(cls, bands: list[Band]) -> list[Band]:
        if not bands:
            raise ValueError("band list must not be empty")
        return sorted(bands, key=lambda band: band[0], reverse=True)

    @field_validator("min_g_bands")
    @classmethod
    def sort_ascending(cls, bands: list[Band]) -> list[Band]:
        if not bands:
            raise ValueError("band list must not be empty")
        return sorted(bands, key=lambda band: band[0])

    @property
    def strongest_single_signal(self) -> float:
        """Largest score any one signal can contribute on its own."""
        return max(
            max(points for _, points in self.flight_time_bands),
            max(points for _, points in self.min_g_bands),
            max(points for _, points in self.landing_peak_bands),
            max(points for _, points in self.variation_bands),
            self.apex_bonus,
            self.impact_bonus,
            self.consistency_bonus,
        )


class HeightSettings(BaseSettings):
    """Height estimation, empirical correction and barometric fusion."""

    model_config = SettingsConfigDict(env_prefix="HEIGHT_", env_file=".env", extra="ignore")

    apex_blend_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    apex_blend_max_ratio: float = Field(default=1.3, ge=0.0)
    quality_floor: float = Field(default=0.95, gt=0.0)
    quality_ceiling: float = Field(default=1.0, gt=0.0)
    # raw height >= threshold -> factor
    correction_bands: list[Band] = Field(
        default_factory=lambda: [(0.50, 0.88), (0.35, 0.92), (0.20, 0.97), (0.10, 1.02)]
    )
    lowest_band_factor: float = Field(default=1.15, gt=0.0)
    high_quality_ratio: float = 0.8
    high_quality_base: float = Field(default=0.98, gt=0.0, le=1.0)
    baro_min_height: float = 0.08
    baro_max_height: float = 1.0
    baro_max_divergence: float = Field(default=0.3, ge=0.0)
    baro_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    min_height: float = Field(default=0.02, ge=0.0)
    max_height: float = Field(default=2.0, gt=0.0)

    @field_validator("correction_bands")
    @classmethod
    def sort_descending(cls, bands: list[Band]) -> list[Band]:
        return sorted(bands, key=lambda band: band[0], reverse=True)

    @model_validator(mode="after")
    def check_ranges(self) -> HeightSettings:
        if self.min_height > self.max_height:
            raise ValueError("min_height must not exceed max_height")
        if self.quality_floor > self.quality_ceiling:
            raise ValueError("quality_floor must not exceed quality_ceiling")
        return self


class SensorSettings(BaseSettings):
    """Sensor delivery settings."""

    model_config = SettingsConfigDict(env_prefix="SENSOR_", env_file=".env", extra="ignore")

    barometer_enabled: bool = True
    # None: gap_warning_periods nominal sample periods
    max_sample_gap_s: float | None = Field(default=None, gt=0.0)
    gap_warning_periods: float = Field(default=25.0, gt=1.0)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    file: str | None = None


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    filter: FilterSettings = Field(default_factory=FilterSettings)
    adaptive: AdaptiveSettings = Field(default_factory=AdaptiveSettings)
    apex: ApexSettings = Field(default_factory=ApexSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    height: HeightSettings = Field(default_factory=HeightSettings)
    sensor: SensorSettings = Field(default_factory=SensorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings instance."""
    return Settings()
