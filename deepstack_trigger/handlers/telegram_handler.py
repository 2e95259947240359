"""Telegram handler."""

from typing import Any, List, Optional

from ..formatter import format_template
from ..models.config import Settings
from ..models.prediction import TriggerEvent
from .base import NotificationHandler


class TelegramHandler(NotificationHandler):
    """Sends the image to every configured chat, captioned with the trigger name or a template."""

    name = "Telegram"

    def __init__(self, settings: Settings, client: Optional[Any], **kwargs):
        super().__init__(settings, **kwargs)
        self.client = client

    @property
    def enabled(self) -> bool:
        return (self.client is not None and self.settings.telegram is not None
                and self.settings.telegram.enabled)

    def get_config(self, trigger: Any):
        return trigger.config.telegram

    def get_targets(self, config: Any) -> List[Any]:
        return list(config.chat_ids)

    def send_to_target(self, target: Any, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        caption = trigger.name
        if config.caption:
            caption = format_template(
                config.caption, event.file_name, trigger, event.predictions,
                analysis_duration_ms=event.analysis_duration_ms,
            )

        return self.client.send(str(target), caption, self.image_path(event, config))
