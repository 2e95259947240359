"""Error accounting for the trigger pipeline and notification handlers."""

import threading
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List

from ..logging_config import get_logger


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorRecord:
    """Record of an error occurrence."""
    component_name: str
    error: Exception
    severity: ErrorSeverity
    timestamp: datetime = field(default_factory=datetime.now)
    traceback_str: str = ""


class ErrorHandler:
    """Logs and counts errors per component.

    Nothing here retries or disables a component: detection and notification
    failures are recorded and the caller carries on with the next file.
    """

    def __init__(self, max_records: int = 500):
        self.logger = get_logger("error_handler")
        self.max_records = max_records
        self._lock = threading.Lock()
        self.error_records: List[ErrorRecord] = []
        self.component_error_counts: Dict[str, int] = {}

    def handle_error(self, component_name: str, error: Exception,
                     severity: ErrorSeverity = ErrorSeverity.MEDIUM) -> ErrorRecord:
        """Record an error from a component and log it at a level matching its severity."""
        record = ErrorRecord(
            component_name=component_name,
            error=error,
            severity=severity,
            traceback_str=traceback.format_exc(),
        )

        with self._lock:
            self.error_records.append(record)
            if len(self.error_records) > self.max_records:
                del self.error_records[0]
            self.component_error_counts[component_name] = self.component_error_counts.get(component_name, 0) + 1

        message = f"Error in {component_name}: {error} (Severity: {severity.value})"
        if severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            self.logger.error(message)
        else:
            self.logger.warning(message)

        return record

    def get_error_count(self, component_name: str) -> int:
        with self._lock:
            return self.component_error_counts.get(component_name, 0)
