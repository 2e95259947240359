"""Pushover REST API client."""

import os
from typing import Optional

import requests

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from ..services.interfaces import NotificationClientInterface

logger = get_logger("clients.pushover")


class PushoverClient(NotificationClientInterface):
    """Sends messages with an optional image attachment to Pushover users."""

    MESSAGES_URL = "https://api.pushover.net/1/messages.json"

    def __init__(self, api_key: str, session: Optional[requests.Session] = None,
                 timeout: float = SYSTEM_CONSTANTS["NOTIFICATION_TIMEOUT_SECONDS"]):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, target: str, message: str, attachment_path: Optional[str] = None,
             title: Optional[str] = None, sound: Optional[str] = None) -> bool:
        """Send a message to one user key."""
        data = {"token": self.api_key, "user": target, "message": message}
        if title:
            data["title"] = title
        if sound:
            data["sound"] = sound

        try:
            if attachment_path:
                with open(attachment_path, "rb") as image:
                    response = self.session.post(
                        self.MESSAGES_URL,
                        data=data,
                        files={"attachment": (os.path.basename(attachment_path), image, "image/jpeg")},
                        timeout=self.timeout,
                    )
            else:
                response = self.session.post(self.MESSAGES_URL, data=data, timeout=self.timeout)
            response.raise_for_status()
        except (requests.RequestException, OSError) as e:
            logger.warning(f"Failed to call Pushover: {e}")
            return False

        return True
