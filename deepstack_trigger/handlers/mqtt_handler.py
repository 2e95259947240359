"""MQTT status bus handler."""

import json
from typing import Any, List, Optional

from ..formatter import default_payload, format_template
from ..logging_config import get_logger
from ..models.config import MqttMessageConfig, Settings
from ..models.prediction import TriggerEvent
from ..models.statistics import StatisticsSnapshot
from .base import NotificationHandler
from .timers import TopicTimers

logger = get_logger("handlers.mqtt")


class MqttHandler(NotificationHandler):
    """Publishes detections, delayed "off" messages, statistics and server state.

    Each message topic has at most one pending "off" timer. A new detection
    on the same topic re-arms it.
    """

    name = "MQTT"

    def __init__(self, settings: Settings, client: Optional[Any], timers: Optional[TopicTimers] = None, **kwargs):
        super().__init__(settings, **kwargs)
        self.client = client
        self.timers = timers or TopicTimers()

    @property
    def enabled(self) -> bool:
        return self.client is not None and self.settings.mqtt is not None and self.settings.mqtt.enabled

    @property
    def status_topic(self) -> str:
        return self.settings.mqtt.status_topic

    def get_config(self, trigger: Any):
        return trigger.config.mqtt

    def get_targets(self, config: Any) -> List[MqttMessageConfig]:
        return list(config.messages)

    def send_to_target(self, target: MqttMessageConfig, event: TriggerEvent, trigger: Any, config: Any) -> bool:
        if target.payload:
            payload = format_template(
                target.payload, event.file_name, trigger, event.predictions,
                analysis_duration_ms=event.analysis_duration_ms,
            )
        else:
            payload = default_payload(
                event.file_name, trigger, event.predictions, analysis_duration_ms=event.analysis_duration_ms
            )

        logger.info(f"{event.file_name}: Publishing event to {target.topic}")
        if not self.client.publish(target.topic, payload):
            return False

        if target.off_delay:
            self.timers.arm(target.topic, target.off_delay, self.publish_off_event)
        return True

    def publish_off_event(self, topic: str) -> bool:
        """Tell subscribers the motion on a topic has stopped."""
        logger.debug(f"Publishing off event to {topic}")
        return self.client.publish(topic, json.dumps({"state": "off"}))

    def publish_statistics(self, statistics: StatisticsSnapshot) -> bool:
        """Publish the overall counters on the status topic."""
        if not self.enabled:
            return False

        return self.client.publish(self.status_topic, json.dumps({
            # Keeps binary sensors that watch the status topic showing the service as up
            "state": "online",
            "triggerCount": statistics.triggered_count,
            "analyzedFilesCount": statistics.analyzed_files_count,
            "formattedStatistics": statistics.formatted,
        }))

    def publish_trigger_statistics(self, statistics: StatisticsSnapshot) -> bool:
        """Publish one trigger's counters under the status topic."""
        if not self.enabled:
            return False

        return self.client.publish(f"{self.status_topic}/statistics/trigger", json.dumps({
            "name": statistics.name,
            "triggerCount": statistics.triggered_count,
            "analyzedFilesCount": statistics.analyzed_files_count,
            "formattedStatistics": statistics.formatted,
        }))

    def publish_server_state(self, state: str, details: Optional[str] = None) -> bool:
        if not self.enabled:
            return False

        return self.client.publish(self.status_topic, json.dumps({"state": state, "details": details}))

    def stop(self) -> None:
        """Cancel pending off timers and release the send pool."""
        cancelled = self.timers.cancel_all()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending off timer(s)")
        super().stop()
