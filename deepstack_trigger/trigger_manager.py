"""Registry of configured triggers and the process-wide statistics."""

import os
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config.defaults import SYSTEM_CONSTANTS
from .exceptions import ConfigurationError
from .logging_config import get_logger
from .models.config import Settings, TriggerConfig
from .models.statistics import Statistics, StatisticsSnapshot
from .services.error_decorators import safe_operation
from .services.error_handler import ErrorHandler
from .services.interfaces import DetectionServiceInterface, FileWatcherInterface
from .services.local_storage import LocalStorage
from .settings_manager import read_config_file
from .trigger import ProcessResult, Trigger

logger = get_logger("trigger_manager")

_GLOB_CHARS = re.compile(r"[*?\[]")


def watch_directory(pattern: str) -> str:
    """The deepest directory of a watch pattern that contains no glob characters."""
    directory = os.path.dirname(pattern)
    while _GLOB_CHARS.search(directory):
        directory = os.path.dirname(directory)
    return directory or "."


class TriggerManager:
    """Owns the trigger list, routes file events to triggers and keeps the overall counters.

    Loading a configuration replaces the trigger list wholesale. Whether
    per-trigger counters survive that is controlled by
    ``Settings.persist_statistics_on_reload``.
    """

    def __init__(self,
                 settings: Settings,
                 detection_service: DetectionServiceInterface,
                 dispatcher: Optional[Any] = None,
                 storage: Optional[LocalStorage] = None,
                 file_watcher: Optional[FileWatcherInterface] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 max_workers: int = SYSTEM_CONSTANTS["MAX_WORKERS"]):
        self.settings = settings
        self.detection_service = detection_service
        self.dispatcher = dispatcher
        self.storage = storage
        self.file_watcher = file_watcher
        self.error_handler = error_handler or ErrorHandler()
        self.clock = clock

        self.statistics = Statistics()
        self._triggers: List[Trigger] = []
        self._lock = threading.Lock()
        self._watching = False
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="trigger")

    @property
    def triggers(self) -> List[Trigger]:
        with self._lock:
            return list(self._triggers)

    @property
    def watching(self) -> bool:
        return self._watching

    # Configuration

    def build_trigger(self, config: TriggerConfig) -> Trigger:
        return Trigger(
            config,
            self.detection_service,
            overall_statistics=self.statistics,
            on_triggered=self._on_triggered,
            on_statistics=self.publish_statistics,
            storage=self.storage,
            error_handler=self.error_handler,
            process_existing_images=self.settings.process_existing_images,
            clock=self.clock,
        )

    def build_triggers(self, config: Dict[str, Any]) -> List[Trigger]:
        """Validate a triggers document and build its triggers without installing them.

        Raises:
            ConfigurationError: On any invalid definition or duplicate name
        """
        definitions = config.get("triggers") if isinstance(config, dict) else None
        if not isinstance(definitions, list):
            raise ConfigurationError("Trigger configuration must contain a 'triggers' list")

        configs = [TriggerConfig.from_json(definition) for definition in definitions]

        seen = set()
        for trigger_config in configs:
            key = trigger_config.name.lower()
            if key in seen:
                raise ConfigurationError(f"Duplicate trigger name: {trigger_config.name}")
            seen.add(key)

        return [self.build_trigger(trigger_config) for trigger_config in configs]

    def load_configuration(self, config: Dict[str, Any]) -> List[Trigger]:
        """Replace the trigger list with the triggers from a parsed triggers document."""
        triggers = self.build_triggers(config)
        self._install(triggers)
        return triggers

    def load_configuration_file(self, paths: Sequence[str]) -> Optional[str]:
        """Load triggers from the first readable file. Returns the path used, or None."""
        path, document = read_config_file(paths)
        if path is None:
            logger.warning(
                "Unable to find a trigger configuration file. Verify the trigger secret points to a file "
                "called triggers.json or that the /config mount point contains a file called triggers.json."
            )
            return None

        self.load_configuration(document)
        logger.info(f"Loaded configuration from {path}")
        return path

    def reload_configuration(self, config: Dict[str, Any]) -> List[Trigger]:
        """Swap in a new triggers document, moving file watches to the new triggers.

        An invalid document raises before anything changes.
        """
        triggers = self.build_triggers(config)
        was_watching = self._watching
        if was_watching:
            self.stop_watching()

        self._install(triggers)

        if was_watching:
            self.start_watching()
        return triggers

    def _install(self, triggers: List[Trigger]) -> None:
        with self._lock:
            previous = self._triggers
            if self.settings.persist_statistics_on_reload:
                self._carry_over_statistics(previous, triggers)
            self._triggers = triggers

        for trigger in triggers:
            logger.info(f"Loaded configuration for {trigger.name}")

    @staticmethod
    def _carry_over_statistics(previous: List[Trigger], triggers: List[Trigger]) -> None:
        by_name = {trigger.name.lower(): trigger for trigger in previous}
        for trigger in triggers:
            old = by_name.get(trigger.name.lower())
            if old is not None:
                trigger.statistics.restore(old.analyzed_files_count, old.triggered_count)

    def find_by_name(self, name: str, case_insensitive: bool = True) -> Optional[Trigger]:
        if not name:
            return None

        for trigger in self.triggers:
            if trigger.name == name or (case_insensitive and trigger.name.lower() == name.lower()):
                return trigger
        return None

    # Processing

    def activate(self, name: str) -> Optional[ProcessResult]:
        """Activate a trigger by name using a freshly downloaded snapshot.

        Returns:
            The processing result, or None when the trigger is unknown,
            disabled or has no snapshot URI
        """
        trigger = self.find_by_name(name)
        if trigger is None:
            logger.warning(f"Activation requested for unknown trigger {name}")
            return None

        if not trigger.enabled:
            logger.warning(f"Activation requested for {trigger.name} however this trigger isn't enabled.")
            return None

        if not trigger.snapshot_uri:
            logger.warning(f"Activation requested for {trigger.name} however it has no snapshotUri.")
            return None

        file_name = trigger.download_snapshot()
        if file_name is None:
            return ProcessResult.FILE_ERROR

        return trigger.process_image(file_name, self.clock())

    def handle_file_event(self, trigger: Trigger, file_name: str,
                          last_access_time: Optional[datetime] = None) -> Future:
        """Queue a new file for a trigger without blocking the caller."""
        return self._executor.submit(self._process, trigger, file_name, last_access_time)

    @safe_operation(default_return=None)
    def _process(self, trigger: Trigger, file_name: str,
                 last_access_time: Optional[datetime]) -> Optional[ProcessResult]:
        return trigger.process_image(file_name, last_access_time)

    def _on_triggered(self, event, trigger: Trigger) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(event, trigger)

    # Watching

    def start_watching(self) -> int:
        """Subscribe every enabled trigger's watch pattern. Returns the number watching."""
        if self.file_watcher is None:
            raise ConfigurationError("No file watcher configured")

        count = 0
        for trigger in self.triggers:
            callback = (lambda path, atime, t=trigger: self.handle_file_event(t, path, atime))
            if trigger.start_watching(self.file_watcher, callback):
                count += 1
        self._watching = True
        logger.info(f"Watching for new images on {count} trigger(s)")
        return count

    def stop_watching(self) -> None:
        for trigger in self.triggers:
            trigger.stop_watching()
        self._watching = False

    def verify_watch_locations(self) -> List[str]:
        """Warn about watch folders that can't be read. Returns the unreadable folders."""
        unreadable = []
        for trigger in self.triggers:
            if not trigger.watch_pattern:
                continue

            directory = watch_directory(trigger.watch_pattern)
            if not os.access(directory, os.R_OK):
                logger.warning(
                    f"Trigger {trigger.name}: Unable to access {directory}. Verify the folder exists "
                    f"and is mounted in the container."
                )
                unreadable.append(directory)
        return unreadable

    # Statistics

    def publish_statistics(self) -> None:
        if self.dispatcher is not None:
            self.dispatcher.publish_statistics(self.statistics.snapshot())

    def get_overall_statistics(self) -> StatisticsSnapshot:
        return self.statistics.snapshot()

    def reset_overall_statistics(self) -> StatisticsSnapshot:
        """Zero the overall counters and publish them. Trigger counters are left alone."""
        snapshot = self.statistics.reset()
        logger.info("Overall statistics reset")
        self.publish_statistics()
        return snapshot

    def get_all_statistics(self) -> List[StatisticsSnapshot]:
        return [trigger.get_statistics() for trigger in self.triggers]

    def get_trigger_statistics(self, name: str) -> Optional[StatisticsSnapshot]:
        trigger = self.find_by_name(name)
        if trigger is None:
            return None
        return trigger.get_statistics()

    def reset_trigger_statistics(self, name: str) -> Optional[StatisticsSnapshot]:
        """Zero one trigger's counters and publish them. Overall counters are left alone."""
        trigger = self.find_by_name(name)
        if trigger is None:
            logger.warning(f"Statistics reset requested for unknown trigger {name}")
            return None

        snapshot = trigger.reset_statistics()
        logger.info(f"Trigger {trigger.name}: Statistics reset")
        if self.dispatcher is not None:
            self.dispatcher.publish_trigger_statistics(snapshot)
        return snapshot

    def shutdown(self, wait: bool = False) -> None:
        """Stop watching and release the processing pool."""
        self.stop_watching()
        self._executor.shutdown(wait=wait)
