"""A trigger: one named rule set deciding whether a detection should fire notifications."""

import logging
import os
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import requests

from .config.defaults import SYSTEM_CONSTANTS
from .exceptions import DetectionServiceError
from .logging_config import get_logger, log_with_context
from .models.config import TriggerConfig
from .models.geometry import Rect
from .models.prediction import Prediction, TriggerEvent
from .models.statistics import Statistics, StatisticsSnapshot
from .services.error_handler import ErrorHandler, ErrorSeverity
from .services.interfaces import DetectionServiceInterface, FileEventCallback, FileWatcherInterface
from .services.local_storage import LocalStorage, Locations

logger = get_logger("trigger")

# Used as the initial last trigger time so the first image always passes the cooldown test
EPOCH = datetime.fromtimestamp(0)


class ProcessResult(Enum):
    """Outcome of processing one image through a trigger."""
    DISABLED = "disabled"
    FILE_ERROR = "file_error"
    TOO_OLD = "too_old"
    COOLDOWN = "cooldown"
    DETECTION_FAILED = "detection_failed"
    NO_OBJECTS = "no_objects"
    NOT_TRIGGERED = "not_triggered"
    TRIGGERED = "triggered"


class Trigger:
    """Holds one trigger's configuration and runtime state and evaluates images against it."""

    def __init__(self,
                 config: TriggerConfig,
                 detection_service: DetectionServiceInterface,
                 overall_statistics: Optional[Statistics] = None,
                 on_triggered: Optional[Callable[[TriggerEvent, "Trigger"], Any]] = None,
                 on_statistics: Optional[Callable[[], Any]] = None,
                 storage: Optional[LocalStorage] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 process_existing_images: bool = False,
                 clock: Callable[[], datetime] = datetime.now):
        self.config = config
        self.name = config.name
        self.enabled = config.enabled
        self.watch_pattern = config.watch_pattern
        self.watch_objects = config.watch_objects
        self.threshold = config.threshold
        self.cooldown_time = config.cooldown_time
        self.masks = config.masks
        self.activate_regions = config.activate_regions
        self.custom_endpoint = config.custom_endpoint
        self.snapshot_uri = config.snapshot_uri
        self.process_existing_images = process_existing_images

        self._detection_service = detection_service
        self._overall_statistics = overall_statistics or Statistics()
        self._on_triggered = on_triggered
        self._on_statistics = on_statistics
        self._storage = storage
        self._error_handler = error_handler or ErrorHandler()
        self._clock = clock

        self.statistics = Statistics(self.name)
        self.initialized_time = clock()
        self.last_trigger_time = EPOCH
        self.received_date: Optional[datetime] = None
        self.analysis_duration_ms = 0.0

        # Guards the cooldown check together with the last trigger time update
        self._cooldown_lock = threading.Lock()
        self._watch_subscription: Optional[int] = None
        self._file_watcher: Optional[FileWatcherInterface] = None

    def __repr__(self) -> str:
        return f"Trigger(name={self.name!r}, enabled={self.enabled})"

    @property
    def analyzed_files_count(self) -> int:
        return self.statistics.analyzed_files_count

    @property
    def triggered_count(self) -> int:
        return self.statistics.triggered_count

    def process_image(self, file_name: str, received_date: Optional[datetime] = None) -> ProcessResult:
        """Run one image through the date, cooldown, detection and prediction gates.

        Args:
            file_name: Path to the image
            received_date: Last access time of the file, read from disk when omitted

        Returns:
            The outcome. Failures are logged here and never raised.
        """
        if not self.enabled:
            logger.debug(f"Trigger {self.name}: {file_name}: Skipping as the trigger is disabled.")
            return ProcessResult.DISABLED

        self._overall_statistics.increment_analyzed()
        self.statistics.increment_analyzed()

        if received_date is None:
            # Last access time rather than modified time, since copying a file can keep the original mtime
            try:
                received_date = datetime.fromtimestamp(os.stat(file_name).st_atime)
            except OSError as e:
                logger.warning(f"Trigger {self.name}: {file_name}: Unable to read file information: {e}")
                self._error_handler.handle_error(f"trigger.{self.name}", e, ErrorSeverity.LOW)
                return ProcessResult.FILE_ERROR

        self.received_date = received_date

        if not self.passes_date_test(file_name, received_date):
            return ProcessResult.TOO_OLD

        with self._cooldown_lock:
            if not self.passes_cooldown_test(file_name, received_date):
                return ProcessResult.COOLDOWN
            self.last_trigger_time = self._clock()

        result, predictions = self.analyze_image(file_name)
        if result is not None:
            return result

        triggered_predictions = self.get_triggered_predictions(file_name, predictions)
        if not triggered_predictions:
            self._publish_statistics()
            return ProcessResult.NOT_TRIGGERED

        self._overall_statistics.increment_triggered()
        self.statistics.increment_triggered()
        log_with_context(logger, logging.INFO, f"Trigger {self.name}: {file_name}: Triggered", {
            "predictions": ", ".join(p.label for p in triggered_predictions),
            "analysis_ms": round(self.analysis_duration_ms),
        })

        if self._storage is not None:
            self._storage.copy_to_local_storage(Locations.ORIGINALS, file_name)

        event = TriggerEvent(
            file_name=file_name,
            trigger_name=self.name,
            received_date=received_date,
            predictions=list(triggered_predictions),
            analysis_duration_ms=self.analysis_duration_ms,
        )
        if self._on_triggered is not None:
            try:
                self._on_triggered(event, self)
            except Exception as e:
                logger.error(f"Trigger {self.name}: {file_name}: Unable to dispatch notifications: {e}")

        self._publish_statistics()
        return ProcessResult.TRIGGERED

    def passes_date_test(self, file_name: str, received_date: datetime) -> bool:
        """Reject files from before the trigger started unless existing files are processed."""
        if received_date < self.initialized_time and not self.process_existing_images:
            logger.debug(f"Trigger {self.name}: {file_name}: Skipping as it was created before the service started.")
            return False
        return True

    def passes_cooldown_test(self, file_name: str, received_date: datetime) -> bool:
        """Check the trigger cooldown. Files from before startup always pass."""
        if not self.cooldown_time:
            return True

        if received_date <= self.initialized_time:
            return True

        seconds_since_last_trigger = (received_date - self.last_trigger_time).total_seconds()
        if seconds_since_last_trigger < self.cooldown_time:
            logger.debug(
                f"Trigger {self.name}: {file_name}: Skipping as it was received before the "
                f"cooldown period of {self.cooldown_time} seconds expired."
            )
            return False

        return True

    def analyze_image(self, file_name: str):
        """Call the detection service.

        Returns:
            ``(None, predictions)`` when there is something to evaluate,
            otherwise ``(ProcessResult, [])`` with the rejection reason.
        """
        logger.debug(f"Trigger {self.name}: {file_name}: Analyzing")
        start_time = time.monotonic()

        try:
            response = self._detection_service.analyze(file_name, self.custom_endpoint)
        except DetectionServiceError as e:
            self.analysis_duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(f"Trigger {self.name}: {file_name}: Analysis failed: {e}")
            self._error_handler.handle_error(f"trigger.{self.name}", e, ErrorSeverity.MEDIUM)
            return ProcessResult.DETECTION_FAILED, []

        self.analysis_duration_ms = (time.monotonic() - start_time) * 1000

        if not response.success:
            logger.error(f"Trigger {self.name}: {file_name}: Analysis failed")
            return ProcessResult.DETECTION_FAILED, []

        if not response.predictions:
            logger.debug(
                f"Trigger {self.name}: {file_name}: No objects detected. ({self.analysis_duration_ms:.0f} ms)"
            )
            return ProcessResult.NO_OBJECTS, []

        logger.debug(
            f"Trigger {self.name}: {file_name}: Found at least one object in the photo. "
            f"({self.analysis_duration_ms:.0f} ms)"
        )
        return None, list(response.predictions)

    def get_triggered_predictions(self, file_name: str, predictions: Sequence[Prediction]) -> List[Prediction]:
        """Return the predictions that fire this trigger."""
        return [p for p in predictions if self.is_triggered(file_name, p)]

    def is_triggered(self, file_name: str, prediction: Prediction) -> bool:
        """Check label, confidence, masks and activate regions for one prediction."""
        confidence = prediction.percent_confidence
        triggered = (
            self.is_registered_for_object(file_name, prediction.label)
            and self.confidence_meets_threshold(file_name, confidence)
            and not self.is_masked(file_name, self.masks, True, prediction)
            and self.is_masked(file_name, self.activate_regions, False, prediction)
        )

        if triggered:
            logger.debug(f"Trigger {self.name}: {file_name}: Triggered by {prediction.label} ({confidence})")
        else:
            logger.debug(f"Trigger {self.name}: {file_name}: Not triggered by {prediction.label} ({confidence})")
        return triggered

    def is_registered_for_object(self, file_name: str, label: Optional[str]) -> bool:
        """Check the label against the watch objects, ignoring case.

        A custom endpoint serves its own model, so any label it returns counts.
        """
        if self.custom_endpoint:
            logger.debug(f"Trigger {self.name}: {file_name}: Custom endpoint matched triggering object {label}")
            return True

        if not label or not self.watch_objects:
            return False

        registered = any(watch_label.lower() == label.lower() for watch_label in self.watch_objects)
        if not registered:
            logger.debug(
                f"Trigger {self.name}: {file_name}: Detected object {label} is not in the watch objects "
                f"list [{', '.join(self.watch_objects)}]"
            )
        return registered

    def confidence_meets_threshold(self, file_name: str, confidence: float) -> bool:
        """Check a 0-100 confidence against the inclusive threshold range."""
        meets_threshold = self.threshold.minimum <= confidence <= self.threshold.maximum
        if not meets_threshold:
            logger.debug(
                f"Trigger {self.name}: {file_name}: Confidence {confidence} wasn't between threshold "
                f"{self.threshold.minimum} and {self.threshold.maximum}"
            )
        return meets_threshold

    def is_masked(self, file_name: str, masks: Optional[Sequence[Rect]], block: bool,
                  prediction: Prediction) -> bool:
        """Check whether a prediction overlaps any of the given rectangles.

        With no rectangles, blocking masks never match and activate regions
        always match.
        """
        if not masks:
            return not block

        prediction_rect = prediction.rect
        for mask in masks:
            if mask.overlaps(prediction_rect):
                logger.debug(
                    f"Trigger {self.name}: {file_name}: Prediction region {prediction_rect} "
                    f"{'blocked' if block else 'activated'} by mask {mask}."
                )
                return True

        return False

    def start_watching(self, file_watcher: FileWatcherInterface, callback: FileEventCallback) -> bool:
        """Subscribe the watch pattern. Returns False when disabled or there is no pattern."""
        if not self.enabled or not self.watch_pattern:
            return False

        self._file_watcher = file_watcher
        self._watch_subscription = file_watcher.watch(self.watch_pattern, callback)
        logger.debug(f"Trigger {self.name}: Listening for new images in {self.watch_pattern}")
        return True

    def stop_watching(self) -> None:
        if self._file_watcher is None or self._watch_subscription is None:
            return

        self._file_watcher.unwatch(self._watch_subscription)
        self._watch_subscription = None
        logger.debug(f"Trigger {self.name}: Stopped listening for new images in {self.watch_pattern}")

    def download_snapshot(self, session: Optional[requests.Session] = None) -> Optional[str]:
        """Download the snapshot URI into local storage and return the saved path."""
        if not self.snapshot_uri:
            logger.warning(f"Trigger {self.name}: Unable to download snapshot: snapshotUri not specified.")
            return None

        if not self.enabled:
            logger.warning(f"Trigger {self.name}: Snapshot download requested however this trigger isn't enabled.")
            return None

        if self._storage is None:
            logger.warning(f"Trigger {self.name}: Unable to download snapshot: local storage isn't available.")
            return None

        logger.debug(f"Trigger {self.name}: Downloading snapshot from {self.snapshot_uri}.")
        local_path = self._storage.map_to_local_storage(
            Locations.SNAPSHOTS, f"{self.name}_{int(time.time() * 1000)}.jpg"
        )

        try:
            response = (session or requests).get(
                self.snapshot_uri, timeout=SYSTEM_CONSTANTS["NOTIFICATION_TIMEOUT_SECONDS"]
            )
            response.raise_for_status()
            with open(local_path, "wb") as f:
                f.write(response.content)
        except (requests.RequestException, OSError) as e:
            logger.warning(f"Trigger {self.name}: Unable to download snapshot from {self.snapshot_uri}: {e}")
            return None

        logger.debug(f"Trigger {self.name}: Download from {self.snapshot_uri} complete.")
        return local_path

    def get_statistics(self) -> StatisticsSnapshot:
        return self.statistics.snapshot()

    def reset_statistics(self) -> StatisticsSnapshot:
        """Zero this trigger's counters."""
        return self.statistics.reset()

    def _publish_statistics(self) -> None:
        if self._on_statistics is None:
            return
        try:
            self._on_statistics()
        except Exception as e:
            logger.warning(f"Trigger {self.name}: Unable to publish statistics: {e}")
