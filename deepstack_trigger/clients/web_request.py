"""Plain HTTP callback client."""

from typing import Optional

import requests

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from ..services.interfaces import NotificationClientInterface

logger = get_logger("clients.web_request")


class WebRequestClient(NotificationClientInterface):
    """Calls a URI with GET. The message and attachment are ignored."""

    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: float = SYSTEM_CONSTANTS["NOTIFICATION_TIMEOUT_SECONDS"]):
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, target: str, message: str = "", attachment_path: Optional[str] = None) -> bool:
        try:
            response = self.session.get(target, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Failed to call trigger uri {target}: {e}")
            return False

        return True
