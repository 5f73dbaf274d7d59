#!/usr/bin/env python3
"""Standalone calibration routine for Vert Watch.

Record the wearer standing still for a few seconds, then run this script on
the trace to get free-fall and ground thresholds fitted to that device and
wearer. The result is printed as ``.env`` lines; pass ``--write`` to store
them.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np

from vert_watch.core.config import get_settings
from vert_watch.core.exceptions import SensorUnavailableError
from vert_watch.core.logging import get_logger, setup_logging
from vert_watch.core.types import MotionReading
from vert_watch.sensing.baseline import AdaptiveBaseline
from vert_watch.sensing.preprocess import vertical_g_series
from vert_watch.sensing.source import load_trace

logger = get_logger(__name__)

DEFAULT_ENV_PATH = Path(".env")


def standing_signal(trace_path: Path) -> np.ndarray:
    """Vertical g of every finite motion tick in a trace."""
    motion = [r for r in load_trace(trace_path) if isinstance(r, MotionReading)]
    gravity = np.array([(r.gravity.x, r.gravity.y, r.gravity.z) for r in motion], dtype=np.float64)
    user = np.array(
        [(r.user_acceleration.x, r.user_acceleration.y, r.user_acceleration.z) for r in motion],
        dtype=np.float64,
    )
    if gravity.size == 0:
        return np.empty(0)

    values = vertical_g_series(gravity, user)
    return values[np.isfinite(values)]


def calibrate(values: np.ndarray) -> dict[str, float] | None:
    """Fit thresholds to a standing signal.

    Args:
        values: Vertical g samples recorded at rest

    Returns:
        Threshold settings, or None if there were too few resting samples
    """
    settings = get_settings()
    baseline = AdaptiveBaseline(settings.adaptive)

    for value in values:
        baseline.update(float(value))

    if not baseline.is_warm:
        logger.error(
            "Only %d resting samples, need more than %d",
            baseline.stats.sample_count,
            settings.adaptive.warmup_samples,
        )
        return None

    thresholds = baseline.thresholds()
    logger.info(
        "Baseline %.3f g (sigma %.4f) from %d of %d samples",
        baseline.stats.running_mean,
        baseline.std,
        baseline.stats.sample_count,
        values.size,
    )
    return {
        "JUMP_FREEFALL_THRESHOLD_G": round(thresholds.freefall_threshold_g, 3),
        "JUMP_GROUND_THRESHOLD_G": round(thresholds.ground_threshold_g, 3),
    }


def main() -> int:
    """Run calibration script."""
    parser = argparse.ArgumentParser(description="Fit jump thresholds to a standing trace")
    parser.add_argument("trace", type=Path, help="Trace recorded while standing still")
    parser.add_argument(
        "--write",
        action="store_true",
        help=f"Append the thresholds to {DEFAULT_ENV_PATH}",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=DEFAULT_ENV_PATH,
        help="Env file to write (default: .env)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    setup_logging("DEBUG" if args.debug else get_settings().logging.level)

    try:
        values = standing_signal(args.trace)
    except SensorUnavailableError as e:
        logger.error("%s", e)
        return 1

    result = calibrate(values)
    if result is None:
        return 1

    lines = [f"{key}={value}" for key, value in result.items()]
    print("\n".join(lines))

    if args.write:
        with open(args.output, "a") as f:
            f.write("\n".join(lines) + "\n")
        logger.info("Thresholds written to %s", args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
