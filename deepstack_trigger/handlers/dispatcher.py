"""Fan-out of fired triggers to the notification handlers."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, List, Optional, Sequence

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from ..models.prediction import TriggerEvent
from ..models.statistics import StatisticsSnapshot
from .base import NotificationHandler

logger = get_logger("handlers.dispatcher")


class NotificationDispatcher:
    """Runs every handler for an event in parallel without waiting for them.

    A failing handler never affects the others or the caller. Statistics
    and server state go to the handlers that implement them (the status bus).
    """

    def __init__(self, handlers: Optional[Sequence[NotificationHandler]] = None,
                 max_workers: int = SYSTEM_CONSTANTS["MAX_WORKERS"]):
        self.handlers: List[NotificationHandler] = list(handlers or [])
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dispatch")

    def dispatch(self, event: TriggerEvent, trigger: Any) -> List[Future]:
        """Submit the event to every handler and return the futures."""
        return [self._executor.submit(self._run_handler, handler, event, trigger) for handler in self.handlers]

    def publish_statistics(self, statistics: StatisticsSnapshot) -> None:
        self._broadcast("publish_statistics", statistics)

    def publish_trigger_statistics(self, statistics: StatisticsSnapshot) -> None:
        self._broadcast("publish_trigger_statistics", statistics)

    def publish_server_state(self, state: str, details: Optional[str] = None) -> None:
        self._broadcast("publish_server_state", state, details)

    def shutdown(self, wait: bool = False) -> None:
        """Stop every handler and the dispatch pool."""
        for handler in self.handlers:
            try:
                handler.stop()
            except Exception as e:
                logger.warning(f"Error stopping {handler.name} handler: {e}")
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _run_handler(handler: NotificationHandler, event: TriggerEvent, trigger: Any) -> int:
        try:
            return handler.process_trigger(event, trigger)
        except Exception as e:
            logger.error(f"{handler.name}: {event.file_name}: Handler failed: {e}")
            return 0

    def _broadcast(self, method: str, *args) -> None:
        for handler in self.handlers:
            publish = getattr(handler, method, None)
            if publish is None:
                continue
            try:
                publish(*args)
            except Exception as e:
                logger.warning(f"{handler.name}: {method} failed: {e}")
