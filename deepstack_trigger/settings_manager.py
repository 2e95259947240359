"""Settings and triggers file loading with hot-reload."""

import json
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config.defaults import DEFAULT_PATHS, SYSTEM_CONSTANTS
from .exceptions import ConfigurationError
from .logging_config import get_logger
from .models.config import Settings
from .utils import strip_json_comments

logger = get_logger("settings_manager")

TriggersChangeCallback = Callable[[Dict[str, Any]], None]


def read_config_file(paths: Sequence[str]) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
    """Load the first readable JSON file from a list of candidate paths.

    Whole-line ``//`` comments are allowed.

    Returns:
        ``(path, document)``, or ``(None, None)`` when no file could be read

    Raises:
        ConfigurationError: If the file that was found is empty or isn't valid JSON
    """
    for path in paths:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw_config = f.read()
        except OSError as e:
            logger.debug(f"Unable to read the configuration file {path}: {e}")
            continue

        if not raw_config.strip():
            raise ConfigurationError(f"Unable to load configuration file {path}: the file is empty")

        try:
            document = json.loads(strip_json_comments(raw_config))
        except ValueError as e:
            raise ConfigurationError(f"Unable to load configuration file {path}: {e}") from e

        if not isinstance(document, dict):
            raise ConfigurationError(f"Unable to load configuration file {path}: expected a JSON object")

        return path, document

    return None, None


class SettingsManager:
    """Loads settings and triggers files and watches the triggers file for changes.

    Settings changes are only picked up on restart. A changed triggers file is
    re-read and handed to the registered callbacks; a file that no longer
    parses is logged and the previous triggers stay active.
    """

    def __init__(self, settings_paths: Optional[Sequence[str]] = None,
                 triggers_paths: Optional[Sequence[str]] = None):
        self.settings_paths = list(settings_paths or DEFAULT_PATHS["settings_files"])
        self.triggers_paths = list(triggers_paths or DEFAULT_PATHS["triggers_files"])
        self.settings_path: Optional[str] = None
        self.triggers_path: Optional[str] = None
        self._settings: Optional[Settings] = None

        # Hot-reload functionality
        self._file_watcher_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_modified: Dict[str, float] = {}
        self._change_callbacks: List[TriggersChangeCallback] = []

    def load_settings(self) -> Settings:
        """Load and validate the settings file.

        Raises:
            ConfigurationError: If no settings file exists or it is invalid
        """
        path, document = read_config_file(self.settings_paths)
        if path is None:
            raise ConfigurationError(
                "Unable to find a settings file. Verify the settings secret points to a file called "
                "settings.json or that the /config mount point contains a file called settings.json."
            )

        self._settings = Settings.from_json(document)
        self.settings_path = path
        self._record_mtime(path)
        logger.info(f"Loaded settings from {path}")
        return self._settings

    def get_settings(self) -> Settings:
        if self._settings is None:
            return self.load_settings()
        return self._settings

    def load_triggers(self) -> Dict[str, Any]:
        """Load the triggers file and return the parsed document.

        Raises:
            ConfigurationError: If no triggers file exists or it isn't valid JSON
        """
        path, document = read_config_file(self.triggers_paths)
        if path is None:
            raise ConfigurationError(
                "Unable to find a trigger configuration file. Verify the trigger secret points to a file "
                "called triggers.json or that the /config mount point contains a file called triggers.json."
            )

        self.triggers_path = path
        self._record_mtime(path)
        logger.info(f"Loaded trigger configuration from {path}")
        return document

    # Hot-reload functionality

    def register_change_callback(self, callback: TriggersChangeCallback) -> None:
        """Register a callback to be called with the new triggers document."""
        if callback not in self._change_callbacks:
            self._change_callbacks.append(callback)

    def unregister_change_callback(self, callback: TriggersChangeCallback) -> None:
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    def start_file_watcher(self, check_interval: float = SYSTEM_CONSTANTS["CONFIG_WATCH_INTERVAL_SECONDS"]) -> None:
        """Start watching the loaded configuration files for changes."""
        if self._file_watcher_thread and self._file_watcher_thread.is_alive():
            return

        self._stop_event.clear()
        self._file_watcher_thread = threading.Thread(
            target=self._file_watcher_loop,
            args=(check_interval,),
            name="config-watcher",
            daemon=True
        )
        self._file_watcher_thread.start()
        logger.info(f"Started watching configuration files every {check_interval} seconds")

    def stop_file_watcher(self) -> None:
        """Stop watching configuration files."""
        self._stop_event.set()
        if self._file_watcher_thread and self._file_watcher_thread.is_alive():
            self._file_watcher_thread.join(timeout=1.0)
        self._file_watcher_thread = None
        logger.info("Stopped watching configuration files")

    def check_for_changes(self) -> bool:
        """Reload the triggers file if it changed. Returns True when callbacks ran."""
        if self.settings_path and self._has_changed(self.settings_path):
            logger.warning(f"Settings file {self.settings_path} changed. Restart the service to apply it.")

        if not self.triggers_path or not self._has_changed(self.triggers_path):
            return False

        logger.info(f"Trigger configuration file changed, reloading: {self.triggers_path}")
        try:
            document = self.load_triggers()
        except ConfigurationError as e:
            logger.error(f"Unable to reload trigger configuration, keeping the current triggers: {e}")
            return False

        for callback in list(self._change_callbacks):
            try:
                callback(document)
            except ConfigurationError as e:
                logger.error(f"Invalid trigger configuration, keeping the current triggers: {e}")
            except Exception as e:
                logger.error(f"Error in configuration change callback: {e}")

        return True

    def _file_watcher_loop(self, check_interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                self.check_for_changes()
            except Exception as e:
                logger.error(f"Error watching configuration files: {e}")
            self._stop_event.wait(check_interval)

    def _record_mtime(self, path: str) -> None:
        try:
            self._last_modified[path] = os.path.getmtime(path)
        except OSError:
            self._last_modified.pop(path, None)

    def _has_changed(self, path: str) -> bool:
        try:
            current_mtime = os.path.getmtime(path)
        except OSError:
            return False

        last_mtime = self._last_modified.get(path)
        if last_mtime is not None and current_mtime > last_mtime:
            self._last_modified[path] = current_mtime
            return True

        self._last_modified[path] = current_mtime
        return False
