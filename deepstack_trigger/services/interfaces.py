"""Service interfaces and abstract base classes."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from ..models.prediction import DetectionResponse

FileEventCallback = Callable[[str, datetime], None]


class DetectionServiceInterface(ABC):
    """Interface for the object detection service client."""

    @abstractmethod
    def analyze(self, file_name: str, custom_endpoint: Optional[str] = None) -> DetectionResponse:
        """Submit an image and return the detection response.

        Failures raise DetectionServiceError rather than returning a
        malformed success.
        """
        pass


class FileWatcherInterface(ABC):
    """Interface for file system watching."""

    @abstractmethod
    def watch(self, pattern: str, callback: FileEventCallback) -> int:
        """Subscribe to new files matching a glob pattern and return a subscription id."""
        pass

    @abstractmethod
    def unwatch(self, subscription_id: int) -> None:
        """Remove a subscription."""
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


class NotificationClientInterface(ABC):
    """Interface for notification provider clients."""

    @abstractmethod
    def send(self, target: str, message: str, attachment_path: Optional[str] = None) -> bool:
        """Send one message to one target. Returns True on success."""
        pass
