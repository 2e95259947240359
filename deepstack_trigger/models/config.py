"""Configuration data models.

Each model has an explicit ``from_json`` builder that applies its defaults
field by field from the parsed settings or triggers file.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config.defaults import DEFAULT_SETTINGS, DEFAULT_TRIGGER, SYSTEM_CONSTANTS
from ..exceptions import ConfigurationError
from .geometry import Rect


def _require_list(data: Dict[str, Any], key: str, owner: str) -> List[Any]:
    value = data.get(key)
    if not isinstance(value, list):
        raise ConfigurationError(f"{owner}: '{key}' must be a list")
    return value


# Handler configurations (per trigger)

@dataclass
class MqttMessageConfig:
    """One MQTT message published when a trigger fires."""
    topic: str
    payload: Optional[str] = None
    off_delay: float = SYSTEM_CONSTANTS["MQTT_OFF_DELAY_SECONDS"]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "MqttMessageConfig":
        if not data.get("topic"):
            raise ConfigurationError("MQTT message: 'topic' is required")
        off_delay = data.get("offDelay")
        return cls(
            topic=data["topic"],
            payload=data.get("payload"),
            off_delay=SYSTEM_CONSTANTS["MQTT_OFF_DELAY_SECONDS"] if off_delay is None else off_delay,
        )


@dataclass
class MqttHandlerConfig:
    """MQTT handler configuration for a trigger."""
    messages: List[MqttMessageConfig] = field(default_factory=list)
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "MqttHandlerConfig":
        messages = data.get("messages") or []
        # Older files used a single topic instead of a message list
        if not messages and data.get("topic"):
            messages = [{"topic": data["topic"]}]
        return cls(
            messages=[MqttMessageConfig.from_json(m) for m in messages],
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class TelegramConfig:
    """Telegram handler configuration for a trigger."""
    chat_ids: List[int] = field(default_factory=list)
    caption: Optional[str] = None
    cooldown_time: float = 0
    annotate_image: bool = False
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TelegramConfig":
        return cls(
            chat_ids=list(_require_list(data, "chatIds", "Telegram handler")),
            caption=data.get("caption"),
            cooldown_time=data.get("cooldownTime") or 0,
            annotate_image=bool(data.get("annotateImage", False)),
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class PushoverConfig:
    """Pushover handler configuration for a trigger."""
    user_keys: List[str] = field(default_factory=list)
    caption: Optional[str] = None
    sound: Optional[str] = None
    cooldown_time: float = 0
    annotate_image: bool = False
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PushoverConfig":
        return cls(
            user_keys=list(_require_list(data, "userKeys", "Pushover handler")),
            caption=data.get("caption"),
            sound=data.get("sound"),
            cooldown_time=data.get("cooldownTime") or 0,
            annotate_image=bool(data.get("annotateImage", False)),
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class PushbulletConfig:
    """Pushbullet handler configuration for a trigger."""
    caption: Optional[str] = None
    title: Optional[str] = None
    cooldown_time: float = 0
    annotate_image: bool = False
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PushbulletConfig":
        return cls(
            caption=data.get("caption"),
            title=data.get("title"),
            cooldown_time=data.get("cooldownTime") or 0,
            annotate_image=bool(data.get("annotateImage", False)),
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class WebRequestConfig:
    """Web request handler configuration for a trigger."""
    trigger_uris: List[str] = field(default_factory=list)
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "WebRequestConfig":
        return cls(
            trigger_uris=list(_require_list(data, "triggerUris", "Web request handler")),
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class ThresholdConfig:
    """Inclusive confidence percentage range."""
    minimum: float = 0
    maximum: float = 100

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "ThresholdConfig":
        data = data or {}
        defaults = DEFAULT_TRIGGER["threshold"]
        minimum = data.get("minimum")
        maximum = data.get("maximum")
        threshold = cls(
            minimum=defaults["minimum"] if minimum is None else minimum,
            maximum=defaults["maximum"] if maximum is None else maximum,
        )
        if threshold.minimum > threshold.maximum:
            raise ConfigurationError(
                f"Threshold minimum {threshold.minimum} is greater than maximum {threshold.maximum}"
            )
        return threshold


@dataclass
class TriggerConfig:
    """A single trigger definition from the triggers file."""
    name: str
    watch_pattern: Optional[str] = None
    watch_objects: List[str] = field(default_factory=list)
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    cooldown_time: float = 0
    enabled: bool = True
    masks: List[Rect] = field(default_factory=list)
    activate_regions: List[Rect] = field(default_factory=list)
    custom_endpoint: Optional[str] = None
    snapshot_uri: Optional[str] = None

    # Handler configurations, None when the trigger doesn't use the channel
    mqtt: Optional[MqttHandlerConfig] = None
    telegram: Optional[TelegramConfig] = None
    pushover: Optional[PushoverConfig] = None
    pushbullet: Optional[PushbulletConfig] = None
    web_request: Optional[WebRequestConfig] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TriggerConfig":
        name = data.get("name")
        if not name or not isinstance(name, str):
            raise ConfigurationError("Trigger definition is missing a name")

        try:
            masks = [Rect.from_json(m) for m in data.get("masks") or []]
            activate_regions = [Rect.from_json(r) for r in data.get("activateRegions") or []]
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Trigger {name}: invalid rectangle ({e})") from e

        handlers = data.get("handlers") or {}
        try:
            config = cls(
                name=name,
                watch_pattern=data.get("watchPattern"),
                watch_objects=list(data.get("watchObjects") or []),
                threshold=ThresholdConfig.from_json(data.get("threshold")),
                cooldown_time=data.get("cooldownTime") or DEFAULT_TRIGGER["cooldownTime"],
                enabled=data.get("enabled", DEFAULT_TRIGGER["enabled"]) is not False,
                masks=masks,
                activate_regions=activate_regions,
                custom_endpoint=data.get("customEndpoint"),
                snapshot_uri=data.get("snapshotUri"),
                mqtt=MqttHandlerConfig.from_json(handlers["mqtt"]) if handlers.get("mqtt") else None,
                telegram=TelegramConfig.from_json(handlers["telegram"]) if handlers.get("telegram") else None,
                pushover=PushoverConfig.from_json(handlers["pushover"]) if handlers.get("pushover") else None,
                pushbullet=PushbulletConfig.from_json(handlers["pushbullet"]) if handlers.get("pushbullet") else None,
                web_request=(
                    WebRequestConfig.from_json(handlers["webRequest"]) if handlers.get("webRequest") else None
                ),
            )
        except ConfigurationError as e:
            raise ConfigurationError(f"Trigger {name}: {e}") from e

        return config


# Global settings

@dataclass
class MqttSettings:
    """MQTT broker connection settings."""
    uri: str
    username: Optional[str] = None
    password: Optional[str] = None
    reject_unauthorized: bool = True
    retain: bool = False
    status_topic: str = SYSTEM_CONSTANTS["MQTT_STATUS_TOPIC"]
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "MqttSettings":
        if not data.get("uri"):
            raise ConfigurationError("MQTT settings: 'uri' is required")
        return cls(
            uri=data["uri"],
            username=data.get("username"),
            password=data.get("password"),
            reject_unauthorized=data.get("rejectUnauthorized", True) is not False,
            retain=bool(data.get("retain", False)),
            status_topic=data.get("statusTopic") or SYSTEM_CONSTANTS["MQTT_STATUS_TOPIC"],
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class TelegramSettings:
    bot_token: str
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TelegramSettings":
        if not data.get("botToken"):
            raise ConfigurationError("Telegram settings: 'botToken' is required")
        return cls(bot_token=data["botToken"], enabled=data.get("enabled", True) is not False)


@dataclass
class PushoverSettings:
    api_key: str
    user_key: str
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PushoverSettings":
        if not data.get("apiKey") or not data.get("userKey"):
            raise ConfigurationError("Pushover settings: 'apiKey' and 'userKey' are required")
        return cls(
            api_key=data["apiKey"],
            user_key=data["userKey"],
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class PushbulletSettings:
    access_token: str
    enabled: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PushbulletSettings":
        if not data.get("accessToken"):
            raise ConfigurationError("Pushbullet settings: 'accessToken' is required")
        return cls(access_token=data["accessToken"], enabled=data.get("enabled", True) is not False)


@dataclass
class Settings:
    """Service-wide settings loaded from settings.json."""
    deepstack_uri: str
    await_write_finish: bool = DEFAULT_SETTINGS["awaitWriteFinish"]
    enable_annotations: bool = DEFAULT_SETTINGS["enableAnnotations"]
    enable_web_server: bool = DEFAULT_SETTINGS["enableWebServer"]
    port: int = DEFAULT_SETTINGS["port"]
    process_existing_images: bool = DEFAULT_SETTINGS["processExistingImages"]
    purge_age: float = DEFAULT_SETTINGS["purgeAge"]
    purge_interval: float = DEFAULT_SETTINGS["purgeInterval"]
    verbose: bool = DEFAULT_SETTINGS["verbose"]
    persist_statistics_on_reload: bool = DEFAULT_SETTINGS["persistStatisticsOnReload"]
    mqtt: Optional[MqttSettings] = None
    telegram: Optional[TelegramSettings] = None
    pushover: Optional[PushoverSettings] = None
    pushbullet: Optional[PushbulletSettings] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Settings":
        if not data.get("deepstackUri"):
            raise ConfigurationError("Settings: 'deepstackUri' is required")

        def value(key: str) -> Any:
            return data[key] if data.get(key) is not None else DEFAULT_SETTINGS[key]

        enable_annotations = bool(value("enableAnnotations"))

        return cls(
            deepstack_uri=data["deepstackUri"],
            await_write_finish=bool(value("awaitWriteFinish")),
            enable_annotations=enable_annotations,
            # Annotations are served by the web server so they switch it on too
            enable_web_server=enable_annotations or bool(value("enableWebServer")),
            port=int(value("port")),
            process_existing_images=bool(value("processExistingImages")),
            purge_age=value("purgeAge"),
            purge_interval=value("purgeInterval"),
            verbose=bool(value("verbose")),
            persist_statistics_on_reload=bool(value("persistStatisticsOnReload")),
            mqtt=MqttSettings.from_json(data["mqtt"]) if data.get("mqtt") else None,
            telegram=TelegramSettings.from_json(data["telegram"]) if data.get("telegram") else None,
            pushover=PushoverSettings.from_json(data["pushover"]) if data.get("pushover") else None,
            pushbullet=PushbulletSettings.from_json(data["pushbullet"]) if data.get("pushbullet") else None,
        )
