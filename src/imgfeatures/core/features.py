"""Feature records returned by the detectors."""

from dataclasses import asdict, dataclass
from enum import Enum


class DetectionMode(str, Enum):
    CORNER = "corner"
    COLOR = "color"
    LINES = "lines"


@dataclass
class Corner:
    x: int
    y: int
    type: str = DetectionMode.CORNER.value

    def to_dict(self):
        return asdict(self)


@dataclass
class ColorRegion:
    x: int
    y: int
    intensity: float
    region_size: int
    type: str = DetectionMode.COLOR.value

    def to_dict(self):
        return asdict(self)


@dataclass
class Line:
    """A line in (theta, rho) form plus one sample point (x, y) on it."""

    x: int
    y: int
    theta: float
    rho: float
    votes: int
    type: str = DetectionMode.LINES.value

    def to_dict(self):
        return asdict(self)
