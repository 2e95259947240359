"""Per-trigger cooldown windows for notification channels."""

import threading
from datetime import datetime
from typing import Dict, Optional


class CooldownTracker:
    """Tracks the last send time per trigger name for one notification channel.

    Keys are trigger names compared case-insensitively, so the window
    survives a configuration reload that replaces the Trigger objects.
    A slot is reserved before sending and can be released again when the
    send failed, leaving the window to track successful sends only.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_sent: Dict[str, datetime] = {}
        self._previous: Dict[str, Optional[datetime]] = {}

    def try_acquire(self, name: str, cooldown_seconds: float, at: datetime) -> bool:
        """Reserve a send at ``at`` unless the previous send is inside the window."""
        key = name.lower()
        with self._lock:
            last_sent = self._last_sent.get(key)
            if cooldown_seconds and last_sent is not None:
                if (at - last_sent).total_seconds() < cooldown_seconds:
                    return False

            self._previous[key] = last_sent
            self._last_sent[key] = at
            return True

    def release(self, name: str, at: datetime) -> None:
        """Undo a reservation made at ``at`` if nothing newer replaced it."""
        key = name.lower()
        with self._lock:
            if self._last_sent.get(key) != at:
                return

            previous = self._previous.pop(key, None)
            if previous is None:
                del self._last_sent[key]
            else:
                self._last_sent[key] = previous

    def clear(self) -> None:
        """Forget every window."""
        with self._lock:
            self._last_sent.clear()
            self._previous.clear()
