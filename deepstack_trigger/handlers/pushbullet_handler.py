"""Pushbullet handler."""

from typing import Any, List, Optional

from ..clients.pushbullet import ALL_DEVICES
from ..formatter import format_template
from ..models.config import Settings
from ..models.prediction import TriggerEvent
from .base import NotificationHandler


class PushbulletHandler(NotificationHandler):
    """Pushes the image to all devices on the Pushbullet account."""

    name = "Pushbullet"

    def __init__(self, settings: Settings, client: Optional[Any], **kwargs):
        super().__init__(settings, **kwargs)
        self.client = client

    @property
    def enabled(self) -> bool:
        return (self.client is not None and self.settings.pushbullet is not None
                and self.settings.pushbullet.enabled)

    def get_config(self, trigger: Any):
        return trigger.config.pushbullet

    def get_targets(self, config: Any) -> List[str]:
        return [ALL_DEVICES]

    def _render(self, template: Optional[str], event: TriggerEvent, trigger: Any) -> str:
        if not template:
            return trigger.name
        return format_template(
            template, event.file_name, trigger, event.predictions,
            analysis_duration_ms=event.analysis_duration_ms,
        )

    def send_to_target(self, target: str, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        return self.client.send(
            target,
            self._render(config.caption, event, trigger),
            self.image_path(event, config),
            title=self._render(config.title, event, trigger),
        )
