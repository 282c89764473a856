"""Grayscale image container and frame-border predicate."""

import math
from dataclasses import dataclass

import numpy as np


class InvalidInputError(ValueError):
    """Raised when an image, frame border or option set cannot be used."""


def round_half_up(value):
    """Round to the nearest integer pixel index, halves upward."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Image:
    """Row-major grayscale samples, one value in [0, 255] per pixel.

    ``scale`` is carried for the caller and never used by the detectors.
    """

    data: object
    width: int
    height: int
    scale: float = 1.0

    @classmethod
    def from_array(cls, array, scale=1.0):
        """Build an image from a 2D ``(height, width)`` array."""
        try:
            array = np.asarray(array)
        except ValueError as e:
            raise InvalidInputError(f"Image data is not a rectangular array: {e}") from e
        if array.ndim != 2:
            raise InvalidInputError("Image requires a 2D array, got shape %s" % (array.shape,))
        height, width = array.shape
        return cls(array.ravel(), width, height, scale)

    def pixels(self):
        """Return the samples as a validated ``(height, width)`` int64 array."""
        if self.data is None:
            raise InvalidInputError("Image data is missing")
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidInputError(f"Image {name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidInputError(f"Image {name} must be positive, got {value}")
        if isinstance(self.data, (bytes, bytearray, memoryview)):
            values = np.frombuffer(bytes(self.data), dtype=np.uint8)
        else:
            values = np.asarray(self.data).ravel()
        if values.size == 0:
            raise InvalidInputError("Image data is empty")
        if values.size != self.width * self.height:
            raise InvalidInputError(
                f"Image data has {values.size} samples, expected {self.width}x{self.height}"
            )
        if not (np.issubdtype(values.dtype, np.integer) or np.issubdtype(values.dtype, np.floating)):
            raise InvalidInputError(f"Image data must be numeric, got dtype {values.dtype}")
        if values.min() < 0 or values.max() > 255:
            raise InvalidInputError("Image samples must lie in [0, 255]")
        if not np.issubdtype(values.dtype, np.integer) and np.any(values != np.floor(values)):
            raise InvalidInputError("Image samples must be whole numbers")
        return values.astype(np.int64).reshape(self.height, self.width)


@dataclass(frozen=True)
class FrameBorder:
    """Per-side insets, as fractions of height (top/bottom) or width (left/right)."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    def __post_init__(self):
        for side in ("top", "right", "bottom", "left"):
            value = getattr(self, side)
            if not 0 <= value <= 1:
                raise InvalidInputError(f"Frame border {side} must lie in [0, 1], got {value}")

    @property
    def unrestricted(self):
        return self.top == 0 and self.right == 0 and self.bottom == 0 and self.left == 0

    def band_limits(self, width, height):
        """Return ``(left, right, top, bottom)`` pixel limits of the central rectangle."""
        top_pixels = math.floor(height * self.top)
        bottom_pixels = height - math.floor(height * self.bottom)
        left_pixels = math.floor(width * self.left)
        right_pixels = width - math.floor(width * self.right)
        return left_pixels, right_pixels, top_pixels, bottom_pixels


def as_frame_border(border):
    """Coerce ``None``, a mapping or a 4-sequence (top, right, bottom, left)."""
    if border is None:
        return FrameBorder()
    if isinstance(border, FrameBorder):
        return border
    if isinstance(border, dict):
        return FrameBorder(**border)
    return FrameBorder(*border)


def in_frame(x, y, width, height, border):
    """True if (x, y) lies in the border band; always True for a zero border.

    The band is everything strictly outside the central rectangle, so the
    corners of the image belong to two overlapping bands.
    """
    if border.unrestricted:
        return True
    left, right, top, bottom = border.band_limits(width, height)
    return x < left or x > right or y < top or y > bottom


def frame_mask(width, height, border):
    """Boolean ``(height, width)`` array, True exactly where ``in_frame`` is."""
    if border.unrestricted:
        return np.ones((height, width), dtype=bool)
    left, right, top, bottom = border.band_limits(width, height)
    xs = np.arange(width)
    ys = np.arange(height)
    column_band = (xs < left) | (xs > right)
    row_band = (ys < top) | (ys > bottom)
    return column_band[np.newaxis, :] | row_band[:, np.newaxis]
