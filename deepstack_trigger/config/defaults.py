"""Default configuration values and constants."""

from typing import Dict, Any

# Default settings.json values. Keys match the settings file.
DEFAULT_SETTINGS: Dict[str, Any] = {
    "awaitWriteFinish": False,
    "enableAnnotations": False,
    "enableWebServer": False,
    "port": 4242,
    "processExistingImages": False,
    "purgeAge": 30,  # minutes
    "purgeInterval": 60,  # minutes, 0 disables the purge
    "verbose": False,
    "persistStatisticsOnReload": False,
}

# Default per-trigger values
DEFAULT_TRIGGER: Dict[str, Any] = {
    "enabled": True,
    "cooldownTime": 0,
    "threshold": {"minimum": 0, "maximum": 100},
}

# System constants
SYSTEM_CONSTANTS = {
    "DETECTION_RETRY_ATTEMPTS": 3,  # first call plus two retries
    "DETECTION_RETRY_DELAY_SECONDS": 1.0,
    "DETECTION_TIMEOUT_SECONDS": 30,
    "DETECTION_PATH": "/v1/vision/detection",
    "NOTIFICATION_TIMEOUT_SECONDS": 10,
    "FILE_WATCHER_POLL_SECONDS": 1.0,
    "CONFIG_WATCH_INTERVAL_SECONDS": 5.0,
    "MAX_WORKERS": 8,
    "MQTT_OFF_DELAY_SECONDS": 30,
    "MQTT_CLIENT_ID": "deepstack-trigger",
    "MQTT_STATUS_TOPIC": "deepstack-trigger/status",
    "MQTT_STATISTICS_RESET_TOPIC": "deepstack-trigger/statistics/reset",
    "MQTT_TRIGGER_STATISTICS_RESET_TOPIC": "deepstack-trigger/statistics/trigger/reset",
}

# File paths and directories. Secrets are tried before the config mount.
DEFAULT_PATHS = {
    "settings_files": ["/run/secrets/settings", "/config/settings.json"],
    "triggers_files": ["/run/secrets/triggers", "/config/triggers.json"],
    "local_storage_dir": "/deepstack-trigger",
    "logs_dir": None,
}
