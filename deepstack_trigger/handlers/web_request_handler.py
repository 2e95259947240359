"""Web request handler."""

from typing import Any, List, Optional

from ..formatter import format_template
from ..logging_config import get_logger
from ..models.config import Settings
from ..models.prediction import TriggerEvent
from .base import NotificationHandler

logger = get_logger("handlers.web_request")


class WebRequestHandler(NotificationHandler):
    """Calls each trigger URI with GET after substituting URL-encoded variables."""

    name = "Web request"

    def __init__(self, settings: Settings, client: Optional[Any], **kwargs):
        super().__init__(settings, **kwargs)
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get_config(self, trigger: Any):
        return trigger.config.web_request

    def get_targets(self, config: Any) -> List[str]:
        return list(config.trigger_uris)

    def send_to_target(self, target: str, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        uri = format_template(
            target, event.file_name, trigger, event.predictions,
            url_encode=True, analysis_duration_ms=event.analysis_duration_ms,
        )
        logger.info(f"{event.file_name}: Calling trigger uri {uri}")
        return self.client.send(uri)
