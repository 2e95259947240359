"""Notification provider clients."""

from .mqtt import MqttClient
from .pushbullet import PushbulletClient
from .pushover import PushoverClient
from .telegram import TelegramClient
from .web_request import WebRequestClient

__all__ = [
    'MqttClient',
    'PushbulletClient',
    'PushoverClient',
    'TelegramClient',
    'WebRequestClient',
]
