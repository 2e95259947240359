"""Detection data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Tuple

from .geometry import Rect


@dataclass(frozen=True)
class Prediction:
    """One labelled, confidence-scored detection from the vision service."""
    label: str
    confidence: float
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Prediction":
        """Build a prediction from the detection service's JSON shape."""
        return cls(
            label=data.get("label", ""),
            confidence=float(data.get("confidence", 0.0)),
            x_min=data.get("x_min", 0),
            y_min=data.get("y_min", 0),
            x_max=data.get("x_max", 0),
            y_max=data.get("y_max", 0),
        )

    def to_json(self) -> Dict[str, Any]:
        """Serialize back to the detection service's JSON shape."""
        return {
            "label": self.label,
            "confidence": self.confidence,
            "x_min": self.x_min,
            "y_min": self.y_min,
            "x_max": self.x_max,
            "y_max": self.y_max,
        }

    @property
    def rect(self) -> Rect:
        """The bounding box as a Rect."""
        return Rect(self.x_min, self.y_min, self.x_max, self.y_max)

    @property
    def percent_confidence(self) -> float:
        """Confidence scaled to 0-100."""
        return self.confidence * 100


@dataclass(frozen=True)
class DetectionResponse:
    """Parsed response from the detection service."""
    success: bool
    predictions: Tuple[Prediction, ...] = ()

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DetectionResponse":
        raw_predictions = data.get("predictions") or []
        return cls(
            success=bool(data.get("success", False)),
            predictions=tuple(Prediction.from_json(p) for p in raw_predictions),
        )


@dataclass(frozen=True)
class TriggerEvent:
    """A fired trigger, as handed to the notification handlers.

    Carries its own copy of the per-event values so that overlapping events
    for the same trigger don't read each other's state.
    """
    file_name: str
    trigger_name: str
    received_date: datetime
    predictions: List[Prediction] = field(default_factory=list)
    analysis_duration_ms: float = 0.0
