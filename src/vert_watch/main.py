"""Main entry point for Vert Watch: replay a recorded motion trace."""

from __future__ import annotations

import argparse
import os
import sys

from vert_watch.core.config import get_settings
from vert_watch.core.exceptions import SensorUnavailableError, VertWatchError
from vert_watch.core.logging import get_logger, setup_logging
from vert_watch.core.types import JumpEvent
from vert_watch.pipeline.session import JumpSession
from vert_watch.sensing.source import TraceReplaySource

logger = get_logger(__name__)


def _print_jump(event: JumpEvent) -> None:
    print(
        f"  t={event.timestamp:8.3f}s  height={event.height_cm:5.1f} cm  "
        f"flight={event.flight_time:.3f}s  score={event.quality_score:.1f}"
    )


def run_replay(trace_path: str, adaptive: bool = True) -> int:
    """Replay a trace through a jump session.

    Args:
        trace_path: CSV trace file
        adaptive: Whether thresholds adapt to the resting baseline

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    settings = get_settings()
    if not adaptive:
        settings = settings.model_copy(
            update={
                "detection": settings.detection.model_copy(
                    update={"use_adaptive_thresholds": False}
                )
            }
        )
    setup_logging(settings.logging.level, settings.logging.file)

    logger.info("Replaying %s", trace_path)

    session = JumpSession(settings)
    session.subscribe(_print_jump)
    source = TraceReplaySource(trace_path)

    try:
        with session:
            session.run(source)
            session.flush(timeout=5.0)
            summary = session.get_summary()

        print(f"Session: {summary.total_jumps} jumps over {summary.total_duration_s:.1f}s")
        if summary.best_height_cm is not None and summary.avg_height_cm is not None:
            print(f"  best {summary.best_height_cm:.1f} cm, avg {summary.avg_height_cm:.1f} cm")
        if session.dropped_samples:
            print(f"  {session.dropped_samples} ticks dropped")

        return 0

    except SensorUnavailableError as e:
        logger.error("Sensor unavailable: %s", e)
        return 1

    except VertWatchError as e:
        logger.error("Detection error: %s", e)
        return 2

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Vert Watch - Vertical jump detection from wrist motion data"
    )
    parser.add_argument(
        "trace",
        help="Recorded motion trace (CSV: timestamp,gx,gy,gz,ax,ay,az[,altitude])",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-adaptive",
        action="store_true",
        help="Use the configured thresholds as-is",
    )

    args = parser.parse_args()

    if args.debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    exit_code = run_replay(args.trace, adaptive=not args.no_adaptive)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
