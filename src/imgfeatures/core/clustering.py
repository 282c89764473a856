"""Group in-frame pixels around fixed intensity centers."""

import logging

import numpy as np

from .features import ColorRegion
from .image import frame_mask, round_half_up

logger = logging.getLogger(__name__)


def cluster_centers(num_clusters):
    """Evenly spaced intensity centers, ``(i + 0.5) * 255 / num_clusters``."""
    return (np.arange(num_clusters) + 0.5) * (255 / num_clusters)


def find_color_regions(pixels, frame_border, color_options):
    """Return one ColorRegion per intensity cluster holding enough pixels.

    Each in-frame pixel joins its nearest center (lowest index on ties) if
    closer than ``color_threshold``. Centers stay fixed, and the reported
    intensity is the center, not the observed mean.
    """
    height, width = pixels.shape
    frame = frame_mask(width, height, frame_border)
    centers = cluster_centers(color_options.num_clusters)

    ys, xs = np.nonzero(frame)
    values = pixels[ys, xs].astype(np.float64)
    distances = np.abs(values[:, np.newaxis] - centers[np.newaxis, :])
    nearest = np.argmin(distances, axis=1)
    nearest_distance = distances[np.arange(len(values)), nearest]
    assigned = nearest_distance < color_options.color_threshold

    labels = nearest[assigned]
    counts = np.bincount(labels, minlength=len(centers))
    sum_x = np.bincount(labels, weights=xs[assigned], minlength=len(centers))
    sum_y = np.bincount(labels, weights=ys[assigned], minlength=len(centers))

    regions = []
    for index, center in enumerate(centers):
        count = int(counts[index])
        # an empty cluster has no centroid even when min_region_size is 0
        if count == 0 or count < color_options.min_region_size:
            continue
        regions.append(
            ColorRegion(
                x=round_half_up(sum_x[index] / count),
                y=round_half_up(sum_y[index] / count),
                intensity=float(center),
                region_size=count,
            )
        )
    logger.debug(
        "color clusters: %d of %d kept, %d pixels assigned",
        len(regions), len(centers), int(assigned.sum()),
    )
    return regions


def detect_color_regions(image, frame_border, color_options):
    return find_color_regions(image.pixels(), frame_border, color_options)
