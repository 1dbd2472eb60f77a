"""
Throttled CSV export of computed effective window values.

The sink is scoped to one analysis session. Any I/O failure disables it
for the rest of the session; packet processing carries on regardless.
"""
from __future__ import annotations

import csv
import logging
from typing import Optional, TextIO

from ..models.result import Annotation

logger = logging.getLogger(__name__)

CSV_HEADER = ("time", "flow", "effwin", "cwnd_est", "rwnd", "bytes_in_flight")


class CsvExportSink:
    """Writes one row every throttle_n recorded annotations."""

    def __init__(self, path: str, throttle_n: int = 1):
        self.path = path
        self.throttle_n = max(1, throttle_n or 1)
        self.write_count = 0
        self.rows_written = 0
        self._handle: Optional[TextIO] = None
        self._writer = None

    @property
    def enabled(self) -> bool:
        return self._handle is not None

    def open(self) -> bool:
        """Open the destination and write the header row."""
        self.close()
        self.rows_written = 0
        try:
            self._handle = open(self.path, "w", encoding="utf-8", newline="")
        except OSError as e:
            logger.warning("Could not open CSV file %s: %s", self.path, e)
            self._handle = None
            return False

        self._writer = csv.writer(self._handle, lineterminator="\n")
        try:
            self._writer.writerow(CSV_HEADER)
            self._handle.flush()
        except OSError as e:
            logger.warning("Could not write CSV header to %s: %s", self.path, e)
            self._discard()
            return False

        logger.debug("CSV export opened at %s (every %d)", self.path, self.throttle_n)
        return True

    def record(self, timestamp: float, annotation: Annotation) -> bool:
        """
        Count an annotation and write it if it falls on the throttle.

        Returns False only when the sink is disabled or the write failed.
        """
        if self._handle is None:
            return False

        self.write_count += 1
        if self.write_count % self.throttle_n != 0:
            return True

        row = (
            "%.6f" % (timestamp or 0.0),
            annotation.flow,
            "%d" % annotation.value,
            "%.0f" % annotation.cwnd_estimate,
            "%d" % annotation.rwnd,
            "%d" % annotation.bytes_in_flight,
        )
        try:
            self._writer.writerow(row)
            self._handle.flush()
        except (OSError, ValueError) as e:
            logger.error("TCP EffWin CSV write error: %s", e)
            self._discard()
            return False

        self.rows_written += 1
        return True

    def close(self) -> None:
        """Close the handle if open and clear the write counter."""
        self._discard()
        self.write_count = 0

    def _discard(self) -> None:
        handle, self._handle, self._writer = self._handle, None, None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as e:
            logger.debug("Error closing CSV file %s: %s", self.path, e)
