"""Core package for feature extraction."""

from .image import Image, FrameBorder, InvalidInputError, in_frame, frame_mask
from .features import DetectionMode, Corner, ColorRegion, Line
from .cumsum import PrefixSumTable, TemplateMatcher
from .corner_detection import detect_corners, find_corners
from .clustering import detect_color_regions, find_color_regions
from .line_detection import detect_lines, find_lines
from .options import (
    CornerOptions,
    ColorOptions,
    LinesOptions,
    DetectionOptions,
    DEFAULT_DETECTION_OPTIONS,
    merge_options,
    save_options,
    load_options,
)
from .extraction import extract
from .image_loading import load_grayscale_image
