#!/usr/bin/env python3
"""Generate synthetic jump traces for demos and regression checks."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from vert_watch.analysis.calculator import kinematic_height
from vert_watch.core.logging import get_logger, setup_logging
from vert_watch.core.types import AltitudeReading, MotionReading
from vert_watch.sensing.source import write_trace
from vert_watch.sensing.synthetic import parabolic_jump_trace

logger = get_logger(__name__)


def main() -> int:
    """Write a trace of one or more clean jumps."""
    parser = argparse.ArgumentParser(description="Generate a synthetic jump trace")
    parser.add_argument("output", type=Path, help="CSV file to write")
    parser.add_argument(
        "--flight-time",
        type=float,
        action="append",
        help="Flight time of a jump in seconds (repeat for several jumps)",
    )
    parser.add_argument("--rate", type=float, default=100.0, help="Sample rate in Hz")
    parser.add_argument(
        "--barometer",
        action="store_true",
        help="Include altitude readings that follow the flight parabola",
    )

    args = parser.parse_args()
    setup_logging("INFO")

    period = 1.0 / args.rate
    readings: list[MotionReading | AltitudeReading] = []
    offset = 0.0
    for flight_time in args.flight_time or [0.45]:
        builder = parabolic_jump_trace(
            flight_time=flight_time,
            period=period,
            peak_altitude=kinematic_height(flight_time) if args.barometer else None,
        )
        builder.start_time = offset
        readings.extend(builder.readings())
        offset += len(builder) * period
        logger.info("Jump of %.3fs (~%.1f cm)", flight_time, kinematic_height(flight_time) * 100)

    rows = write_trace(args.output, readings)
    logger.info("Wrote %d rows to %s", rows, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
