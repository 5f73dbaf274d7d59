"""Motion sources: the boundary to whatever delivers sensor ticks.

A recorded trace is a CSV file with the header
``timestamp,gx,gy,gz,ax,ay,az[,altitude]``: gravity and user acceleration
in g, altitude in meters relative to the start of the recording.
"""

from __future__ import annotations

import csv
import math
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Protocol, runtime_checkable

from vert_watch.core.exceptions import SensorUnavailableError
from vert_watch.core.logging import get_logger
from vert_watch.core.types import AltitudeReading, MotionReading, Vector3

logger = get_logger(__name__)

Reading = MotionReading | AltitudeReading

MOTION_COLUMNS = ("timestamp", "gx", "gy", "gz", "ax", "ay", "az")
ALTITUDE_COLUMN = "altitude"


@runtime_checkable
class MotionSource(Protocol):
    """Anything that can deliver motion (and optionally altitude) ticks."""

    def is_available(self) -> bool: ...

    def open(self) -> None: ...

    def readings(self) -> Iterator[Reading]: ...

    def close(self) -> None: ...


def _to_float(cell: str | None) -> float:
    """Parse a CSV cell; blank or malformed cells become NaN."""
    if cell is None:
        return math.nan
    try:
        return float(cell)
    except ValueError:
        return math.nan


def load_trace(path: Path | str) -> list[Reading]:
    """Read a recorded trace.

    For rows carrying an altitude value, the AltitudeReading is placed
    before the MotionReading of the same tick.

    Args:
        path: CSV trace file

    Returns:
        Readings in file order

    Raises:
        SensorUnavailableError: If the file is missing or lacks motion columns
    """
    path = Path(path)
    if not path.exists():
        raise SensorUnavailableError(f"Trace file not found: {path}")

    readings: list[Reading] = []
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        columns = reader.fieldnames or []
        missing = [c for c in MOTION_COLUMNS if c not in columns]
        if missing:
            raise SensorUnavailableError(f"Trace {path} lacks columns: {', '.join(missing)}")
        has_altitude = ALTITUDE_COLUMN in columns

        for row in reader:
            timestamp = _to_float(row["timestamp"])
            if has_altitude and (row.get(ALTITUDE_COLUMN) or "").strip():
                readings.append(AltitudeReading(_to_float(row[ALTITUDE_COLUMN]), timestamp))
            readings.append(
                MotionReading(
                    gravity=Vector3(
                        _to_float(row["gx"]), _to_float(row["gy"]), _to_float(row["gz"])
                    ),
                    user_acceleration=Vector3(
                        _to_float(row["ax"]), _to_float(row["ay"]), _to_float(row["az"])
                    ),
                    timestamp=timestamp,
                )
            )

    logger.debug("Loaded %d readings from %s", len(readings), path)
    return readings


def write_trace(path: Path | str, readings: Iterable[Reading]) -> int:
    """Write readings in the trace format.

    Altitude readings are attached to the next motion tick.

    Returns:
        Number of rows written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    rows = 0
    pending_altitude: float | None = None
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([*MOTION_COLUMNS, ALTITUDE_COLUMN])
        for reading in readings:
            if isinstance(reading, AltitudeReading):
                pending_altitude = reading.relative_altitude
                continue
            g, a = reading.gravity, reading.user_acceleration
            writer.writerow(
                [
                    f"{reading.timestamp:.6f}",
                    f"{g.x:.6f}",
                    f"{g.y:.6f}",
                    f"{g.z:.6f}",
                    f"{a.x:.6f}",
                    f"{a.y:.6f}",
                    f"{a.z:.6f}",
                    f"{pending_altitude:.4f}" if pending_altitude is not None else "",
                ]
            )
            pending_altitude = None
            rows += 1

    return rows


class TraceReplaySource:
    """Replays a recorded trace file or an in-memory list of readings."""

    def __init__(
        self,
        path: Path | str | None = None,
        readings: Iterable[Reading] | None = None,
    ) -> None:
        """Initialize source.

        Args:
            path: CSV trace to replay
            readings: In-memory readings to replay instead of a file
        """
        if path is None and readings is None:
            raise ValueError("path or readings is required")
        self.path = Path(path) if path is not None else None
        self._readings: list[Reading] | None = list(readings) if readings is not None else None
        self._opened = False

    def is_available(self) -> bool:
        """Check that there is something to replay."""
        if self._readings is not None:
            return True
        return self.path is not None and self.path.is_file()

    def open(self) -> None:
        """Load the trace.

        Raises:
            SensorUnavailableError: If the trace cannot be read
        """
        if self._readings is None and self.path is not None:
            self._readings = load_trace(self.path)
        self._opened = True

    def readings(self) -> Iterator[Reading]:
        """Iterate over readings in order."""
        if not self._opened:
            self.open()
        yield from self._readings or []

    def close(self) -> None:
        self._opened = False

    def __enter__(self) -> TraceReplaySource:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
