"""Notification handlers and their dispatcher."""

from .base import NotificationHandler
from .cooldown import CooldownTracker
from .dispatcher import NotificationDispatcher
from .mqtt_handler import MqttHandler
from .pushbullet_handler import PushbulletHandler
from .pushover_handler import PushoverHandler
from .telegram_handler import TelegramHandler
from .timers import TopicTimers
from .web_request_handler import WebRequestHandler

__all__ = [
    'NotificationHandler',
    'CooldownTracker',
    'NotificationDispatcher',
    'MqttHandler',
    'PushbulletHandler',
    'PushoverHandler',
    'TelegramHandler',
    'TopicTimers',
    'WebRequestHandler',
]
