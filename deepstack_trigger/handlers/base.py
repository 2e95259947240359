"""Common behaviour for notification handlers."""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, List, Optional

from ..config.defaults import SYSTEM_CONSTANTS
from ..exceptions import NotificationError
from ..logging_config import get_logger
from ..models.config import Settings
from ..models.prediction import TriggerEvent
from ..services.error_handler import ErrorHandler, ErrorSeverity
from ..services.local_storage import LocalStorage, Locations
from .cooldown import CooldownTracker

logger = get_logger("handlers")


class NotificationHandler(ABC):
    """One notification channel.

    Subclasses say where their per-trigger configuration lives, which
    targets it names and how to send to one target. The rules shared by
    every channel live in ``process_trigger``.
    """

    name = "handler"

    def __init__(self, settings: Settings,
                 storage: Optional[LocalStorage] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 max_workers: int = SYSTEM_CONSTANTS["MAX_WORKERS"],
                 clock: Callable[[], datetime] = datetime.now):
        self.settings = settings
        self.storage = storage
        self.error_handler = error_handler or ErrorHandler()
        self.cooldowns = CooldownTracker()
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{self.name}-send")

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether the channel is configured and switched on globally."""

    @abstractmethod
    def get_config(self, trigger: Any) -> Optional[Any]:
        """Return the trigger's configuration for this channel, if any."""

    @abstractmethod
    def get_targets(self, config: Any) -> List[Any]:
        """Return the sub-targets (chat ids, topics, URIs...) to send to."""

    @abstractmethod
    def send_to_target(self, target: Any, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        """Send one notification. Returns True on success."""

    def get_cooldown_time(self, config: Any) -> float:
        return getattr(config, "cooldown_time", 0) or 0

    def process_trigger(self, event: TriggerEvent, trigger: Any) -> int:
        """Send the event to every target of this channel.

        Returns:
            Number of targets that were sent to successfully
        """
        if not self.enabled:
            return 0

        config = self.get_config(trigger)
        if config is None or not config.enabled:
            return 0

        targets = self.get_targets(config)
        if not targets:
            return 0

        # Cooldowns run on the wall clock at send time, not on file timestamps
        cooldown_time = self.get_cooldown_time(config)
        sent_at = self._clock()
        if cooldown_time and not self.cooldowns.try_acquire(trigger.name, cooldown_time, sent_at):
            logger.info(
                f"{self.name}: {event.file_name}: Skipping as the cooldown period of "
                f"{cooldown_time} seconds hasn't expired."
            )
            return 0

        futures = [
            self._executor.submit(self._send_one, target, event, trigger, config)
            for target in targets
        ]
        successes = sum(1 for future in futures if future.result())

        if cooldown_time and successes == 0:
            self.cooldowns.release(trigger.name, sent_at)

        return successes

    def image_path(self, event: TriggerEvent, config: Any) -> str:
        """The image to attach, the annotated copy when annotations are on."""
        if not getattr(config, "annotate_image", False):
            return event.file_name

        if not self.settings.enable_annotations or self.storage is None:
            logger.warning(
                f"{self.name}: {event.file_name}: annotateImage is set but annotations are disabled, "
                f"sending the original image."
            )
            return event.file_name

        return self.storage.map_to_local_storage(Locations.ANNOTATIONS, event.file_name)

    def stop(self) -> None:
        """Release the send pool and forget cooldown windows."""
        self._executor.shutdown(wait=False)
        self.cooldowns.clear()

    def _send_one(self, target: Any, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        try:
            sent = bool(self.send_to_target(target, event, trigger, config))
            error = None if sent else NotificationError(self.name, str(target))
        except Exception as e:
            sent = False
            error = NotificationError(self.name, str(target), str(e))

        if error is not None:
            logger.debug(f"{self.name}: {event.file_name}: Send to {target} failed")
            self.error_handler.handle_error(f"handlers.{self.name}", error, ErrorSeverity.LOW)

        return sent
