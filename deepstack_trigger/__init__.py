"""
DeepStack Trigger

Watches folders for new images, sends each one to a DeepStack compatible
object detection server and fires notifications over MQTT, Telegram,
Pushover, Pushbullet and web requests when a configured trigger matches.
"""

__version__ = "1.0.0"
__author__ = "DeepStack Trigger"

# Import core components
from .exceptions import (
    TriggerError,
    ConfigurationError,
    DetectionServiceError,
    NotificationError
)
from .models import (
    Rect,
    Prediction,
    DetectionResponse,
    TriggerEvent,
    Statistics,
    StatisticsSnapshot,
    Settings,
    TriggerConfig
)
from .services import (
    DetectionServiceInterface,
    FileWatcherInterface,
    NotificationClientInterface
)
from .trigger import ProcessResult, Trigger
from .trigger_manager import TriggerManager
from . import utils

__all__ = [
    # Errors
    'TriggerError',
    'ConfigurationError',
    'DetectionServiceError',
    'NotificationError',

    # Data models
    'Rect',
    'Prediction',
    'DetectionResponse',
    'TriggerEvent',
    'Statistics',
    'StatisticsSnapshot',
    'Settings',
    'TriggerConfig',

    # Service interfaces
    'DetectionServiceInterface',
    'FileWatcherInterface',
    'NotificationClientInterface',

    # Trigger processing
    'ProcessResult',
    'Trigger',
    'TriggerManager',

    # Utilities
    'utils'
]
