"""Cancellable delayed callbacks keyed by topic."""

import threading
from typing import Callable, Dict, Tuple

from ..logging_config import get_logger

logger = get_logger("handlers.timers")

TopicCallback = Callable[[str], None]


class TopicTimers:
    """Holds at most one pending timer per topic.

    Arming a topic that already has a pending timer cancels it and starts a
    new one. All access to the topic map goes through one lock. Once
    ``cancel_all`` has run, further arming is ignored.
    """

    def __init__(self, timer_factory: Callable[..., threading.Timer] = threading.Timer):
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timers: Dict[str, Tuple[object, threading.Timer]] = {}
        self._stopped = False

    def arm(self, topic: str, delay: float, callback: TopicCallback) -> None:
        """Fire ``callback(topic)`` after ``delay`` seconds, replacing any pending timer."""
        with self._lock:
            if self._stopped:
                logger.debug(f"Not arming timer for {topic} after shutdown")
                return

            token = object()
            timer = self._timer_factory(delay, self._fire, args=(topic, token, callback))
            timer.daemon = True

            existing = self._timers.get(topic)
            if existing:
                existing[1].cancel()
                logger.debug(f"Cancelled pending timer for {topic}")
            self._timers[topic] = (token, timer)
            timer.start()

    def cancel(self, topic: str) -> bool:
        """Cancel the pending timer for a topic. Returns True if one was pending."""
        with self._lock:
            existing = self._timers.pop(topic, None)
        if existing is None:
            return False
        existing[1].cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer and stop accepting new ones.

        Returns the number of timers that were pending.
        """
        with self._lock:
            self._stopped = True
            timers = list(self._timers.values())
            self._timers.clear()
        for _, timer in timers:
            timer.cancel()
        return len(timers)

    def is_pending(self, topic: str) -> bool:
        with self._lock:
            return topic in self._timers

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)

    def _fire(self, topic: str, token: object, callback: TopicCallback) -> None:
        with self._lock:
            current = self._timers.get(topic)
            # A timer replaced after it started running must not fire
            if current is None or current[0] is not token:
                return
            del self._timers[topic]

        try:
            callback(topic)
        except Exception as e:
            logger.warning(f"Timer callback for {topic} failed: {e}")
