"""Telegram Bot API client."""

from typing import Optional

import requests

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from ..services.interfaces import NotificationClientInterface

logger = get_logger("clients.telegram")


class TelegramClient(NotificationClientInterface):
    """Sends photos with a caption to Telegram chats."""

    BASE_URL = "https://api.telegram.org"

    def __init__(self, bot_token: str, session: Optional[requests.Session] = None,
                 timeout: float = SYSTEM_CONSTANTS["NOTIFICATION_TIMEOUT_SECONDS"]):
        self.bot_token = bot_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, target: str, message: str, attachment_path: Optional[str] = None) -> bool:
        """Send a photo to a chat id, or a plain text message when there's no attachment."""
        logger.info(f"Sending message to {target}")

        try:
            if attachment_path:
                with open(attachment_path, "rb") as photo:
                    response = self.session.post(
                        f"{self.BASE_URL}/bot{self.bot_token}/sendPhoto",
                        data={"chat_id": target, "caption": message},
                        files={"photo": photo},
                        timeout=self.timeout,
                    )
            else:
                response = self.session.post(
                    f"{self.BASE_URL}/bot{self.bot_token}/sendMessage",
                    data={"chat_id": target, "text": message},
                    timeout=self.timeout,
                )
            response.raise_for_status()
        except (requests.RequestException, OSError) as e:
            logger.warning(f"Unable to send message to {target}: {e}")
            return False

        return True
