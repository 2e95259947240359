"""Client for the DeepStack object detection HTTP API."""

from typing import Optional
from urllib.parse import urljoin

import requests

from ..config.defaults import SYSTEM_CONSTANTS
from ..exceptions import DetectionServiceError
from ..logging_config import get_logger
from ..models.prediction import DetectionResponse
from .error_decorators import retry_on_error
from .interfaces import DetectionServiceInterface

logger = get_logger("deepstack_client")


class DeepStackClient(DetectionServiceInterface):
    """Posts images to a DeepStack compatible detection server."""

    def __init__(self, uri: str, timeout: float = SYSTEM_CONSTANTS["DETECTION_TIMEOUT_SECONDS"],
                 session: Optional[requests.Session] = None):
        self.uri = uri
        self.timeout = timeout
        self.session = session or requests.Session()

    def endpoint_url(self, custom_endpoint: Optional[str] = None) -> str:
        """Build the detection URL. A custom endpoint replaces the default detection path."""
        return urljoin(self.uri, custom_endpoint or SYSTEM_CONSTANTS["DETECTION_PATH"])

    def analyze(self, file_name: str, custom_endpoint: Optional[str] = None) -> DetectionResponse:
        """Submit an image for detection."""
        url = self.endpoint_url(custom_endpoint)

        try:
            body = self._post_image(url, file_name)
            return DetectionResponse.from_json(body)
        except (requests.RequestException, OSError, ValueError) as e:
            raise DetectionServiceError(self.uri, str(e)) from e
        except (KeyError, TypeError, AttributeError) as e:
            raise DetectionServiceError(self.uri, f"Malformed detection response: {e}") from e

    @retry_on_error(
        max_attempts=SYSTEM_CONSTANTS["DETECTION_RETRY_ATTEMPTS"],
        delay=SYSTEM_CONSTANTS["DETECTION_RETRY_DELAY_SECONDS"],
        exceptions=(requests.RequestException,)
    )
    def _post_image(self, url: str, file_name: str) -> dict:
        """POST the image as multipart form data and return the decoded body."""
        with open(file_name, "rb") as image:
            response = self.session.post(
                url,
                files={"image": image},
                timeout=self.timeout
            )
        response.raise_for_status()
        return response.json()
