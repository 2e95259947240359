"""Pushover handler."""

from typing import Any, List, Optional

from ..formatter import format_template
from ..models.config import Settings
from ..models.prediction import TriggerEvent
from .base import NotificationHandler


class PushoverHandler(NotificationHandler):
    """Sends the image to each configured Pushover user key."""

    name = "Pushover"

    def __init__(self, settings: Settings, client: Optional[Any], **kwargs):
        super().__init__(settings, **kwargs)
        self.client = client

    @property
    def enabled(self) -> bool:
        return (self.client is not None and self.settings.pushover is not None
                and self.settings.pushover.enabled)

    def get_config(self, trigger: Any):
        return trigger.config.pushover

    def get_targets(self, config: Any) -> List[str]:
        # Fall back to the account's own user key when the trigger names none
        return list(config.user_keys) or [self.settings.pushover.user_key]

    def send_to_target(self, target: str, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        message = trigger.name
        if config.caption:
            message = format_template(
                config.caption, event.file_name, trigger, event.predictions,
                analysis_duration_ms=event.analysis_duration_ms,
            )

        return self.client.send(target, message, self.image_path(event, config), sound=config.sound)
