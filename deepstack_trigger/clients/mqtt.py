"""MQTT client wrapper around paho-mqtt."""

import json
import threading
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from ..config.defaults import SYSTEM_CONSTANTS
from ..exceptions import NotificationError
from ..logging_config import get_logger
from ..models.config import MqttSettings
from ..services.interfaces import NotificationClientInterface

logger = get_logger("clients.mqtt")

MessageCallback = Callable[[str, str], None]

_CONNACK_RC_REASON: Dict[int, str] = {
    0: "Connection accepted",
    1: "Unacceptable protocol version",
    2: "Identifier rejected",
    3: "Server unavailable",
    4: "Bad username or password",
    5: "Not authorized",
}

_DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883}


def _reason_code(rc) -> int:
    try:
        return int(getattr(rc, "value", rc))
    except (TypeError, ValueError):
        return 1


class MqttClient(NotificationClientInterface):
    """A long-lived broker connection with a last will on the status topic.

    Subscriptions are remembered and re-applied after every reconnect.
    """

    def __init__(self, settings: MqttSettings,
                 client_id: str = SYSTEM_CONSTANTS["MQTT_CLIENT_ID"],
                 client_factory: Optional[Callable[..., mqtt.Client]] = None):
        self.settings = settings
        self.client_id = client_id
        self._client_factory = client_factory or self._build_client
        self._client: Optional[mqtt.Client] = None
        self._lock = threading.Lock()
        self._connected = threading.Event()
        self._last_error: Optional[str] = None
        self._subscriptions: Dict[str, List[MessageCallback]] = {}

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def connect(self, timeout: float = SYSTEM_CONSTANTS["NOTIFICATION_TIMEOUT_SECONDS"]) -> None:
        """Connect to the broker and wait for the CONNACK.

        Raises:
            NotificationError: If the broker can't be reached or refuses the connection
        """
        parsed = urlparse(self.settings.uri)
        host = parsed.hostname or self.settings.uri
        port = parsed.port or _DEFAULT_PORTS.get(parsed.scheme, 1883)

        client = self._client_factory(self.client_id)
        if self.settings.username or self.settings.password:
            client.username_pw_set(self.settings.username or "", self.settings.password or "")

        if parsed.scheme in ("mqtts", "ssl"):
            client.tls_set()
            if not self.settings.reject_unauthorized:
                client.tls_insecure_set(True)

        client.will_set(self.settings.status_topic, json.dumps({"state": "offline"}), qos=2, retain=False)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        with self._lock:
            self._client = client

        try:
            client.connect_async(host, port, 60)
            client.loop_start()
        except (OSError, ValueError) as e:
            raise NotificationError("MQTT", self.settings.uri, f"Unable to connect: {e}") from e

        if not self._connected.wait(timeout=timeout):
            self.disconnect()
            raise NotificationError("MQTT", self.settings.uri, self._last_error or "Timed out connecting")

        logger.info(f"Connected to MQTT server {self.settings.uri}")

    def disconnect(self) -> None:
        """Disconnect and stop the network loop. Safe to call more than once."""
        with self._lock:
            client = self._client
            self._client = None
        self._connected.clear()

        if client is None:
            return
        try:
            client.disconnect()
            client.loop_stop()
        except Exception:
            logger.debug("Cleanup failed during disconnect", exc_info=True)

    def publish(self, topic: str, payload: str, retain: Optional[bool] = None) -> bool:
        """Publish a string payload. Returns False when not connected or the publish is refused."""
        with self._lock:
            client = self._client
        if client is None or not self.connected:
            logger.warning(f"Unable to publish to {topic}: MQTT is not connected.")
            return False

        retain = self.settings.retain if retain is None else retain
        info = client.publish(topic, payload=payload, qos=0, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Unable to publish to {topic}: {mqtt.error_string(info.rc)}")
            return False
        return True

    def send(self, target: str, message: str, attachment_path: Optional[str] = None) -> bool:
        return self.publish(target, message)

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        """Call ``callback(topic, payload)`` for messages on a topic."""
        with self._lock:
            first = topic not in self._subscriptions
            self._subscriptions.setdefault(topic, []).append(callback)
            client = self._client

        if first and client is not None and self.connected:
            client.subscribe(topic)

    @staticmethod
    def _build_client(client_id: str) -> mqtt.Client:
        return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)

    def _on_connect(self, client, _userdata, _flags, rc, _properties=None):
        rc_int = _reason_code(rc)
        if rc_int != 0:
            self._last_error = f"MQTT connect failed: {_CONNACK_RC_REASON.get(rc_int, 'Unknown error')} (rc={rc_int})"
            logger.error(self._last_error)
            return

        self._last_error = None
        self._connected.set()
        with self._lock:
            topics = list(self._subscriptions)
        for topic in topics:
            client.subscribe(topic)

    def _on_disconnect(self, _client, _userdata, _flags, rc, _properties=None):
        self._connected.clear()
        rc_int = _reason_code(rc)
        if rc_int != 0:
            self._last_error = f"MQTT disconnected (rc={rc_int})"
            logger.warning(self._last_error)

    def _on_message(self, _client, _userdata, message):
        with self._lock:
            callbacks = list(self._subscriptions.get(message.topic, []))

        payload = message.payload.decode("utf-8", errors="replace")
        for callback in callbacks:
            try:
                callback(message.topic, payload)
            except Exception as e:
                logger.error(f"Handler for {message.topic} failed: {e}")
