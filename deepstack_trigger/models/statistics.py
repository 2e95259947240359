"""Running statistics counters."""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Point-in-time copy of a statistics counter pair."""
    analyzed_files_count: int
    triggered_count: int
    name: Optional[str] = None

    @property
    def formatted(self) -> str:
        """Human readable summary used in payloads."""
        return f"Triggered: {self.triggered_count}, Analyzed: {self.analyzed_files_count}"

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "analyzedFilesCount": self.analyzed_files_count,
            "triggeredCount": self.triggered_count,
            "formattedStatistics": self.formatted,
        }
        if self.name is not None:
            data = {"name": self.name, **data}
        return data


class Statistics:
    """Thread-safe analyzed/triggered counters.

    One instance is owned by each trigger and one by the trigger manager for
    the process-wide totals.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._lock = threading.Lock()
        self._analyzed_files_count = 0
        self._triggered_count = 0

    @property
    def analyzed_files_count(self) -> int:
        with self._lock:
            return self._analyzed_files_count

    @property
    def triggered_count(self) -> int:
        with self._lock:
            return self._triggered_count

    def increment_analyzed(self) -> int:
        """Add one to the analyzed file count and return the new total."""
        with self._lock:
            self._analyzed_files_count += 1
            return self._analyzed_files_count

    def increment_triggered(self) -> int:
        """Add one to the triggered count and return the new total."""
        with self._lock:
            self._triggered_count += 1
            return self._triggered_count

    def restore(self, analyzed_files_count: int, triggered_count: int) -> None:
        """Overwrite both counters, used when carrying counts across a reload."""
        with self._lock:
            self._analyzed_files_count = analyzed_files_count
            self._triggered_count = triggered_count

    def reset(self) -> StatisticsSnapshot:
        """Zero both counters and return the new snapshot."""
        with self._lock:
            self._analyzed_files_count = 0
            self._triggered_count = 0
        return self.snapshot()

    def snapshot(self) -> StatisticsSnapshot:
        with self._lock:
            return StatisticsSnapshot(
                analyzed_files_count=self._analyzed_files_count,
                triggered_count=self._triggered_count,
                name=self.name,
            )
