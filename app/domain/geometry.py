# app/domain/geometry.py
import math
from dataclasses import dataclass


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; the editor rounds .5 up
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def area(self) -> float:
        return 0.0 if self.is_empty else self.width * self.height

    def scaled(self, sx: float, sy: float) -> "Rect":
        return Rect(self.x * sx, self.y * sy, self.width * sx, self.height * sy)

    def rounded(self) -> "Rect":
        return Rect(
            round_half_up(self.x),
            round_half_up(self.y),
            round_half_up(self.width),
            round_half_up(self.height),
        )

    def intersect(self, other: "Rect") -> "Rect":
        """Axis-aligned overlap. Width or height <= 0 means no overlap."""
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        x2 = min(self.right, other.right)
        y2 = min(self.bottom, other.bottom)
        return Rect(x, y, x2 - x, y2 - y)

    def as_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class PixelRect:
    left: int
    top: int
    width: int
    height: int

    @property
    def box(self):
        """(left, upper, right, lower) as Pillow's crop() expects."""
        return (self.left, self.top, self.left + self.width, self.top + self.height)


def rotated_extent(width: float, height: float, degrees: float):
    """Width/height of the axis-aligned box around a w x h rectangle rotated by `degrees`."""
    rad = math.radians(degrees)
    c, s = abs(math.cos(rad)), abs(math.sin(rad))
    return (width * c + height * s, width * s + height * c)
