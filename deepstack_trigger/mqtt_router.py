"""Routes incoming MQTT commands to the trigger manager."""

import json
from typing import Any

from .config.defaults import SYSTEM_CONSTANTS
from .logging_config import get_logger
from .trigger_manager import TriggerManager

logger = get_logger("mqtt_router")


class MqttRouter:
    """Subscribes to the statistics reset topics.

    ``deepstack-trigger/statistics/reset`` resets the overall counters and
    ``deepstack-trigger/statistics/trigger/reset`` resets the trigger named
    in a ``{"name": ...}`` payload.
    """

    def __init__(self, client: Any, manager: TriggerManager,
                 statistics_reset_topic: str = SYSTEM_CONSTANTS["MQTT_STATISTICS_RESET_TOPIC"],
                 trigger_reset_topic: str = SYSTEM_CONSTANTS["MQTT_TRIGGER_STATISTICS_RESET_TOPIC"]):
        self.client = client
        self.manager = manager
        self.statistics_reset_topic = statistics_reset_topic
        self.trigger_reset_topic = trigger_reset_topic

    def initialize(self) -> None:
        logger.info(f"Subscribing to {self.statistics_reset_topic}.")
        self.client.subscribe(self.statistics_reset_topic, self.process_received_message)

        logger.info(f"Subscribing to {self.trigger_reset_topic}.")
        self.client.subscribe(self.trigger_reset_topic, self.process_received_message)

    def process_received_message(self, topic: str, payload: str) -> None:
        logger.debug(f"Received message on {topic}")

        if topic == self.statistics_reset_topic:
            logger.debug("Received overall statistics reset request.")
            self.manager.reset_overall_statistics()
            return

        if topic == self.trigger_reset_topic:
            try:
                trigger_name = (json.loads(payload) or {}).get("name")
            except (ValueError, AttributeError) as e:
                logger.warning(f"Unable to process incoming message: {e}")
                return

            if not trigger_name:
                logger.warning("Received a statistics reset request but no trigger name was provided")
                return

            logger.debug(f"Received statistics reset request for {trigger_name}.")
            self.manager.reset_trigger_statistics(trigger_name)
