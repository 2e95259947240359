"""Rectangle geometry used for masks and activate regions."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle in image pixel space.

    Bounds are stored as given. Inverted rectangles are allowed and are
    compared using the same rule as well-formed ones.
    """
    x_minimum: float
    y_minimum: float
    x_maximum: float
    y_maximum: float

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Rect":
        """Build a rectangle from a ``{xMinimum, yMinimum, xMaximum, yMaximum}`` dict."""
        return cls(
            x_minimum=data["xMinimum"],
            y_minimum=data["yMinimum"],
            x_maximum=data["xMaximum"],
            y_maximum=data["yMaximum"],
        )

    def overlaps(self, other: "Rect") -> bool:
        """Return True if any portion of the two rectangles overlap."""
        return overlaps(self, other)

    def __str__(self) -> str:
        return f"({self.x_minimum}, {self.y_minimum}, {self.x_maximum}, {self.y_maximum})"


def overlaps(a: Rect, b: Rect) -> bool:
    """Two rectangles overlap unless one lies strictly beside, above or below the other."""
    a_left_of_b = a.x_maximum < b.x_minimum
    a_right_of_b = a.x_minimum > b.x_maximum
    a_above_b = a.y_minimum > b.y_maximum
    a_below_b = a.y_maximum < b.y_minimum

    return not (a_left_of_b or a_right_of_b or a_above_b or a_below_b)
