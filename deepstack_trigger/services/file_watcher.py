"""Polling file watcher that reports new images matching glob patterns."""

import glob
import itertools
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from .interfaces import FileEventCallback, FileWatcherInterface

logger = get_logger("file_watcher")


@dataclass
class _Subscription:
    pattern: str
    callback: FileEventCallback
    known_files: Set[str] = field(default_factory=set)
    pending_sizes: Dict[str, int] = field(default_factory=dict)


class FileWatcher(FileWatcherInterface):
    """Polls glob patterns and reports files that weren't there on the previous scan.

    Files already present when a pattern is first scanned are reported too;
    callers decide whether pre-existing files should be processed. With
    ``await_write_finish`` a file is only reported once its size is unchanged
    between two polls.
    """

    def __init__(self, poll_interval: float = SYSTEM_CONSTANTS["FILE_WATCHER_POLL_SECONDS"],
                 await_write_finish: bool = False):
        self.poll_interval = poll_interval
        self.await_write_finish = await_write_finish
        self._subscriptions: Dict[int, _Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def watch(self, pattern: str, callback: FileEventCallback) -> int:
        """Subscribe to new files matching a glob pattern."""
        subscription_id = next(self._ids)
        with self._lock:
            self._subscriptions[subscription_id] = _Subscription(pattern=pattern, callback=callback)
        logger.debug(f"Watching {pattern} (subscription {subscription_id})")
        return subscription_id

    def unwatch(self, subscription_id: int) -> None:
        with self._lock:
            subscription = self._subscriptions.pop(subscription_id, None)
        if subscription:
            logger.debug(f"Stopped watching {subscription.pattern}")

    def start(self) -> None:
        """Start the background polling thread."""
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._watch_loop, name="file-watcher", daemon=True)
        self._thread.start()
        logger.info(f"File watcher started, polling every {self.poll_interval} seconds")

    def stop(self) -> None:
        """Stop the polling thread and drop all subscriptions."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._thread = None
        with self._lock:
            self._subscriptions.clear()
        logger.info("File watcher stopped")

    def _watch_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Error polling watch patterns: {e}")
            self._stop_event.wait(self.poll_interval)

    def poll_once(self) -> int:
        """Scan every pattern once and report new files. Returns the number reported."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        reported = 0
        for subscription in subscriptions:
            current_files = set(glob.glob(subscription.pattern, recursive=True))

            # Forget files that went away so a replacement with the same name is reported again
            subscription.known_files &= current_files
            for vanished in set(subscription.pending_sizes) - current_files:
                del subscription.pending_sizes[vanished]

            for path in sorted(current_files - subscription.known_files):
                if os.path.isdir(path):
                    subscription.known_files.add(path)
                    continue

                try:
                    stats = os.stat(path)
                except OSError as e:
                    logger.warning(f"{path}: Unable to read file information: {e}")
                    continue

                if self.await_write_finish and subscription.pending_sizes.get(path) != stats.st_size:
                    subscription.pending_sizes[path] = stats.st_size
                    continue

                subscription.pending_sizes.pop(path, None)
                subscription.known_files.add(path)
                reported += 1
                self._emit(subscription, path, datetime.fromtimestamp(stats.st_atime))

        return reported

    @staticmethod
    def _emit(subscription: _Subscription, path: str, last_access_time: datetime) -> None:
        try:
            subscription.callback(path, last_access_time)
        except Exception as e:
            logger.error(f"{path}: Watch callback for {subscription.pattern} failed: {e}")
