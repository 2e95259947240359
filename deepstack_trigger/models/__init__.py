"""Data models for the detection trigger service."""

from .geometry import Rect, overlaps
from .prediction import Prediction, DetectionResponse, TriggerEvent
from .statistics import Statistics, StatisticsSnapshot
from .config import (
    Settings,
    TriggerConfig,
    ThresholdConfig,
    MqttHandlerConfig,
    MqttMessageConfig,
    TelegramConfig,
    PushoverConfig,
    PushbulletConfig,
    WebRequestConfig,
)

__all__ = [
    'Rect', 'overlaps',
    'Prediction', 'DetectionResponse', 'TriggerEvent',
    'Statistics', 'StatisticsSnapshot',
    'Settings', 'TriggerConfig', 'ThresholdConfig',
    'MqttHandlerConfig', 'MqttMessageConfig', 'TelegramConfig',
    'PushoverConfig', 'PushbulletConfig', 'WebRequestConfig',
]
