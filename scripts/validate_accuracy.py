#!/usr/bin/env python3
"""Validate jump height measurement accuracy.

Replay recorded motion traces and compare measured heights against
known reference values for accuracy assessment.
"""

from __future__ import annotations

import argparse
import csv
import sys
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from vert_watch.core.config import get_settings
from vert_watch.core.exceptions import VertWatchError
from vert_watch.core.logging import get_logger, setup_logging
from vert_watch.core.types import JumpEvent
from vert_watch.pipeline.session import JumpSession
from vert_watch.sensing.source import TraceReplaySource

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of validating a single jump."""

    jump_index: int
    timestamp: float
    measured_height_cm: float
    reference_height_cm: float | None
    error_cm: float | None
    error_percent: float | None


@dataclass
class ValidationSummary:
    """Summary statistics for validation run."""

    total_jumps_detected: int
    total_jumps_reference: int
    matched_jumps: int
    mean_absolute_error_cm: float | None
    std_error_cm: float | None
    max_error_cm: float | None
    mean_error_percent: float | None


def process_trace(trace_path: Path) -> list[JumpEvent]:
    """Replay a trace file and collect accepted jumps.

    Args:
        trace_path: Path to CSV trace

    Returns:
        Accepted jump events
    """
    logger.info("Processing trace: %s", trace_path)

    with JumpSession(get_settings()) as session:
        events = session.run(TraceReplaySource(trace_path))
        dropped = session.dropped_samples

    logger.info("Detected %d jumps (%d ticks dropped)", len(events), dropped)
    return events


def load_reference_data(csv_path: Path) -> list[tuple[float, float]]:
    """Load reference jump heights from CSV.

    Expected format: timestamp,height_cm

    Args:
        csv_path: Path to CSV file

    Returns:
        List of (timestamp, height_cm) tuples
    """
    references = []

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            timestamp = float(row.get("timestamp", row.get("time", 0)))
            height = float(row.get("height_cm", row.get("height", 0)))
            references.append((timestamp, height))

    logger.info("Loaded %d reference measurements", len(references))
    return references


def match_jumps_to_references(
    jumps: list[JumpEvent],
    references: list[tuple[float, float]],
    time_tolerance: float = 1.0,
) -> list[ValidationResult]:
    """Match detected jumps to reference measurements.

    Args:
        jumps: Detected jump events
        references: Reference (timestamp, height_cm) pairs
        time_tolerance: Seconds between landing confirmation and reference

    Returns:
        List of validation results
    """
    results = []

    for i, jump in enumerate(jumps):
        best_match = None
        best_distance = float("inf")

        for ref_time, ref_height in references:
            distance = abs(jump.timestamp - ref_time)
            if distance < best_distance and distance <= time_tolerance:
                best_distance = distance
                best_match = ref_height

        error = error_pct = None
        if best_match is not None:
            error = jump.height_cm - best_match
            error_pct = (error / best_match * 100) if best_match > 0 else None

        results.append(
            ValidationResult(
                jump_index=i,
                timestamp=jump.timestamp,
                measured_height_cm=jump.height_cm,
                reference_height_cm=best_match,
                error_cm=error,
                error_percent=error_pct,
            )
        )

    return results


def compute_summary(
    results: list[ValidationResult],
    total_references: int,
) -> ValidationSummary:
    """Compute summary statistics from validation results.

    Args:
        results: Individual validation results
        total_references: Total number of reference measurements

    Returns:
        ValidationSummary with statistics
    """
    errors = np.array([abs(r.error_cm) for r in results if r.error_cm is not None])
    error_pcts = np.array([abs(r.error_percent) for r in results if r.error_percent is not None])

    if errors.size == 0:
        return ValidationSummary(
            total_jumps_detected=len(results),
            total_jumps_reference=total_references,
            matched_jumps=0,
            mean_absolute_error_cm=None,
            std_error_cm=None,
            max_error_cm=None,
            mean_error_percent=None,
        )

    return ValidationSummary(
        total_jumps_detected=len(results),
        total_jumps_reference=total_references,
        matched_jumps=int(errors.size),
        mean_absolute_error_cm=float(errors.mean()),
        std_error_cm=float(errors.std()),
        max_error_cm=float(errors.max()),
        mean_error_percent=float(error_pcts.mean()) if error_pcts.size else None,
    )


def print_results(
    results: list[ValidationResult],
    summary: ValidationSummary,
    target_cm: float,
) -> None:
    """Print validation results to console."""
    print("\n" + "=" * 60)
    print("VALIDATION RESULTS")
    print("=" * 60)

    print(
        f"\n{'Jump':<6} {'Time':<10} {'Measured':<10} "
        f"{'Reference':<10} {'Error':<8} {'Error %':<8}"
    )
    print("-" * 60)

    for r in results:
        ref_str = f"{r.reference_height_cm:.1f}" if r.reference_height_cm is not None else "N/A"
        err_str = f"{r.error_cm:+.1f}" if r.error_cm is not None else "N/A"
        pct_str = f"{r.error_percent:+.1f}%" if r.error_percent is not None else "N/A"

        print(
            f"{r.jump_index:<6} "
            f"{r.timestamp:<10.2f} "
            f"{r.measured_height_cm:<10.1f} "
            f"{ref_str:<10} "
            f"{err_str:<8} "
            f"{pct_str:<8}"
        )

    print("\n" + "=" * 60)
    print(f"Jumps detected:      {summary.total_jumps_detected}")
    print(f"Reference jumps:     {summary.total_jumps_reference}")
    print(f"Matched jumps:       {summary.matched_jumps}")

    if summary.mean_absolute_error_cm is not None:
        print(f"\nMean Absolute Error: {summary.mean_absolute_error_cm:.2f} cm")
        print(f"Std Dev Error:       {summary.std_error_cm:.2f} cm")
        print(f"Max Error:           {summary.max_error_cm:.2f} cm")

        if summary.mean_error_percent is not None:
            print(f"Mean Error %:        {summary.mean_error_percent:.1f}%")

        verdict = "PASS" if summary.mean_absolute_error_cm <= target_cm else "FAIL"
        print(
            f"\n{verdict}: mean error {summary.mean_absolute_error_cm:.2f} cm, "
            f"target {target_cm} cm"
        )


def main() -> int:
    """Run validation script."""
    parser = argparse.ArgumentParser(description="Validate jump height measurement accuracy")
    parser.add_argument("trace", type=Path, help="Path to recorded motion trace (CSV)")
    parser.add_argument(
        "--reference",
        "-r",
        type=Path,
        help="Path to CSV with reference measurements (timestamp,height_cm)",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=1.0,
        help="Matching window in seconds (default: 1.0)",
    )
    parser.add_argument(
        "--target",
        type=float,
        default=3.0,
        help="Target mean absolute error in cm (default: 3.0)",
    )
    parser.add_argument("--output", "-o", type=Path, help="Output CSV for results")

    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.logging.level)

    try:
        jumps = process_trace(args.trace)
    except VertWatchError as e:
        logger.error("Replay failed: %s", e)
        return 2

    if not jumps:
        logger.warning("No jumps detected in trace")
        return 1

    references = []
    if args.reference and args.reference.exists():
        references = load_reference_data(args.reference)
    results = match_jumps_to_references(jumps, references, args.tolerance)
    summary = compute_summary(results, len(references))

    print_results(results, summary, args.target)

    if args.output:
        with open(args.output, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(
                [
                    "jump_index",
                    "timestamp",
                    "measured_cm",
                    "reference_cm",
                    "error_cm",
                    "error_percent",
                ]
            )
            for r in results:
                writer.writerow(
                    [
                        r.jump_index,
                        f"{r.timestamp:.3f}",
                        f"{r.measured_height_cm:.2f}",
                        "" if r.reference_height_cm is None else r.reference_height_cm,
                        "" if r.error_cm is None else f"{r.error_cm:.2f}",
                        "" if r.error_percent is None else f"{r.error_percent:.2f}",
                    ]
                )
        logger.info("Results saved to %s", args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
