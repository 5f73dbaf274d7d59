"""Tests for configuration loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vert_watch.core.config import (
    DetectionSettings,
    FilterSettings,
    HeightSettings,
    ScoringSettings,
    Settings,
)


class TestDetectionSettings:
    """Tests for DetectionSettings."""

    def test_defaults(self) -> None:
        """Shipped defaults match the watch tuning."""
        settings = DetectionSettings(_env_file=None)  # type: ignore[call-arg]

        assert settings.freefall_threshold_g == 0.32
        assert settings.ground_threshold_g == 1.25
        assert settings.need_below_freefall_samples == 5
        assert settings.need_above_ground_samples == 10
        assert settings.min_jump_score == 4.5
        assert settings.sample_period == pytest.approx(0.01)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """JUMP_ environment variables override defaults."""
        monkeypatch.setenv("JUMP_MIN_JUMP_SCORE", "6.0")
        monkeypatch.setenv("JUMP_LANDING_DIP_TOLERANCE", "2")

        settings = DetectionSettings()

        assert settings.min_jump_score == 6.0
        assert settings.landing_dip_tolerance == 2

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stable_min_g": 1.2, "stable_max_g": 0.9},
            {"min_flight_time": 0.5, "max_flight_time": 0.4},
            {"freefall_threshold_g": 1.3, "ground_threshold_g": 1.2},
            {"stability_cap": 2, "need_pre_jump_stable_samples": 3},
            {"need_below_freefall_samples": 0},
        ],
    )
    def test_inconsistent_values_rejected(self, overrides: dict[str, float]) -> None:
        """Cross-field rules are enforced at construction."""
        with pytest.raises(ValidationError):
            DetectionSettings(**overrides)


class TestScoringSettings:
    """Tests for ScoringSettings."""

    def test_bands_are_sorted(self) -> None:
        """Band order in the input does not matter."""
        settings = ScoringSettings(
            flight_time_bands=[(0.10, 2.0), (0.20, 3.5)],
            min_g_bands=[(0.90, 1.0), (0.60, 2.5)],
        )

        assert settings.flight_time_bands == [(0.20, 3.5), (0.10, 2.0)]
        assert settings.min_g_bands == [(0.60, 2.5), (0.90, 1.0)]

    def test_empty_bands_rejected(self) -> None:
        """Each signal needs at least one band."""
        with pytest.raises(ValidationError):
            ScoringSettings(variation_bands=[])


class TestSettings:
    """Tests for the root Settings."""

    def test_sections_are_independent(self) -> None:
        """Sections can be supplied individually."""
        settings = Settings(
            filter=FilterSettings(alpha_slow=1.0),
            height=HeightSettings(max_height=1.5),
        )

        assert settings.filter.alpha_slow == 1.0
        assert settings.height.max_height == 1.5
        assert settings.detection.stability_cap == 50

    def test_invalid_alpha_rejected(self) -> None:
        """Smoothing factors live in (0, 1]."""
        with pytest.raises(ValidationError):
            FilterSettings(alpha_slow=0.0)
