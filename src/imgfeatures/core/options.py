"""Detection options, their defaults, and YAML persistence."""

from dataclasses import asdict, dataclass, field, fields

import numpy as np
import yaml

from .features import DetectionMode
from .image import InvalidInputError, as_frame_border


@dataclass(frozen=True)
class CornerOptions:
    """Corner detection has no tunable parameters; see ``corner_detection``."""


@dataclass(frozen=True)
class ColorOptions:
    num_clusters: int = 5
    min_region_size: int = 50
    color_threshold: float = 30

    def __post_init__(self):
        for name in ("num_clusters", "min_region_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidInputError(f"{name} must be an integer, got {value!r}")
        if self.num_clusters < 1:
            raise InvalidInputError(f"num_clusters must be at least 1, got {self.num_clusters}")
        if self.min_region_size < 0:
            raise InvalidInputError(f"min_region_size must not be negative, got {self.min_region_size}")


@dataclass(frozen=True)
class LinesOptions:
    edge_threshold: float = 50
    hough_threshold: int = 50
    # kept for compatibility, not used by the detector
    min_line_length: int = 30
    max_line_gap: int = 10


@dataclass(frozen=True)
class DetectionOptions:
    modes: tuple = (DetectionMode.CORNER.value,)
    corner_options: CornerOptions = field(default_factory=CornerOptions)
    color_options: ColorOptions = field(default_factory=ColorOptions)
    lines_options: LinesOptions = field(default_factory=LinesOptions)

    def __post_init__(self):
        object.__setattr__(self, "modes", _normalize_modes(self.modes))


def _normalize_modes(modes):
    if isinstance(modes, str):
        modes = [modes]
    modes = tuple(m.value if isinstance(m, DetectionMode) else m for m in modes)
    if not modes:
        raise InvalidInputError("At least one detection mode is required")
    return modes


def _build_section(cls, values):
    if isinstance(values, cls):
        return values
    if values is None:
        return cls()
    names = {f.name for f in fields(cls)}
    unknown = set(values) - names
    if unknown:
        raise InvalidInputError(f"Unknown {cls.__name__} fields: {sorted(unknown)}")
    return cls(**values)


DEFAULT_DETECTION_OPTIONS = DetectionOptions()

_SECTIONS = {
    "corner_options": CornerOptions,
    "color_options": ColorOptions,
    "lines_options": LinesOptions,
}


def merge_options(options=None):
    """Fill in defaults for anything ``options`` leaves out.

    ``options`` may be None, a DetectionOptions, or a mapping whose per-mode
    sections may themselves be partial mappings.
    """
    if options is None:
        return DEFAULT_DETECTION_OPTIONS
    if isinstance(options, DetectionOptions):
        return options
    unknown = set(options) - {"modes", *_SECTIONS}
    if unknown:
        raise InvalidInputError(f"Unknown detection option keys: {sorted(unknown)}")
    merged = {name: _build_section(cls, options.get(name)) for name, cls in _SECTIONS.items()}
    return DetectionOptions(modes=options.get("modes", DEFAULT_DETECTION_OPTIONS.modes), **merged)


def save_options(options, frame_border=None, filename="options.yaml"):
    """Save detection options, and optionally a frame border, to YAML."""
    options = merge_options(options)
    data = {"modes": list(options.modes)}
    for name in _SECTIONS:
        data[name] = asdict(getattr(options, name))
    if frame_border is not None:
        data["frame_border"] = asdict(as_frame_border(frame_border))
    with open(filename, "w") as f:
        yaml.dump(data, f, sort_keys=False)


def load_options(filename="options.yaml"):
    """Load detection options from YAML; returns ``(options, frame_border)``."""
    with open(filename, "r") as f:
        data = yaml.safe_load(f) or {}
    frame_border = as_frame_border(data.pop("frame_border", None))
    return merge_options(data), frame_border

