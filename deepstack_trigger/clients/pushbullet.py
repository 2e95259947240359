"""Pushbullet REST API client."""

import os
from typing import Any, Dict, Optional

import requests

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from ..services.interfaces import NotificationClientInterface

logger = get_logger("clients.pushbullet")

ALL_DEVICES = "all"


class PushbulletClient(NotificationClientInterface):
    """Pushes notes and images to Pushbullet.

    Sending an image takes three calls: an upload request that returns an
    upload URL, the multipart upload itself, then a file push referring to
    the uploaded file.
    """

    BASE_URL = "https://api.pushbullet.com/v2"

    def __init__(self, access_token: str, session: Optional[requests.Session] = None,
                 timeout: float = SYSTEM_CONSTANTS["NOTIFICATION_TIMEOUT_SECONDS"]):
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {"Access-Token": self.access_token}

    def send(self, target: str, message: str, attachment_path: Optional[str] = None,
             title: Optional[str] = None) -> bool:
        """Push to all devices, or to one device when ``target`` is a device iden."""
        body: Dict[str, Any] = {"type": "note", "title": title, "body": message}
        if target and target != ALL_DEVICES:
            body["device_iden"] = target

        try:
            if attachment_path:
                body.update(self._upload_file(attachment_path))
                body["type"] = "file"

            response = self.session.post(
                f"{self.BASE_URL}/pushes",
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except (requests.RequestException, OSError, KeyError, ValueError) as e:
            logger.warning(f"Failed to call Pushbullet: {e}")
            return False

        return True

    def _upload_file(self, file_name: str) -> Dict[str, str]:
        """Upload an image and return the file fields for the push."""
        response = self.session.post(
            f"{self.BASE_URL}/upload-request",
            json={"file_name": os.path.basename(file_name), "file_type": "image/jpeg"},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        upload = response.json()

        with open(file_name, "rb") as image:
            upload_response = self.session.post(
                upload["upload_url"],
                files={"file": image},
                timeout=self.timeout,
            )
        upload_response.raise_for_status()

        return {
            "file_name": upload["file_name"],
            "file_type": upload["file_type"],
            "file_url": upload["file_url"],
        }
