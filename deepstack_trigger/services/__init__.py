"""Services for the detection trigger system."""

from .interfaces import (
    DetectionServiceInterface,
    FileWatcherInterface,
    NotificationClientInterface
)
from .deepstack_client import DeepStackClient
from .error_handler import ErrorHandler, ErrorSeverity
from .file_watcher import FileWatcher
from .local_storage import LocalStorage, Locations

__all__ = [
    'DetectionServiceInterface',
    'FileWatcherInterface',
    'NotificationClientInterface',
    'DeepStackClient',
    'ErrorHandler',
    'ErrorSeverity',
    'FileWatcher',
    'LocalStorage',
    'Locations'
]
