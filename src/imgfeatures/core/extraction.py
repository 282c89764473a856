"""Run the requested detectors and concatenate their features."""

import logging

from .clustering import find_color_regions
from .corner_detection import find_corners
from .features import DetectionMode
from .image import Image, InvalidInputError, as_frame_border
from .line_detection import find_lines
from .options import merge_options

logger = logging.getLogger(__name__)


def _run_detector(mode, pixels, frame_border, options):
    if mode is DetectionMode.CORNER:
        return find_corners(pixels, frame_border)
    if mode is DetectionMode.COLOR:
        return find_color_regions(pixels, frame_border, options.color_options)
    return find_lines(pixels, frame_border, options.lines_options)


def extract(image, frame_border=None, options=None):
    """Extract features from a grayscale image.

    Args:
        image: an ``Image`` or a 2D array-like of samples in [0, 255].
        frame_border: ``FrameBorder``, mapping or (top, right, bottom, left);
            None disables the border restriction.
        options: ``DetectionOptions`` or a partial mapping; None runs corner
            detection with defaults.

    Returns:
        Features of every requested mode, in the order the modes were given.
        Unknown modes are logged and skipped.
    """
    if image is None:
        raise InvalidInputError("Image is missing")
    if not isinstance(image, Image):
        image = Image.from_array(image)
    pixels = image.pixels()
    frame_border = as_frame_border(frame_border)
    options = merge_options(options)

    features = []
    for name in options.modes:
        try:
            mode = DetectionMode(name)
        except ValueError:
            logger.warning("Unknown detection mode: %s", name)
            continue
        found = _run_detector(mode, pixels, frame_border, options)
        logger.debug("%s: %d features", mode.value, len(found))
        features.extend(found)
    return features
