"""Detect trackable corners by gradient strength and local self-dissimilarity."""

import logging
import math

import numpy as np

from .cumsum import TemplateMatcher
from .features import Corner
from .image import frame_mask

logger = logging.getLogger(__name__)

TEMPLATE_SIZE = 6
TEMPLATE_SD_THRESH = 5.0
SEARCH_SIZE1 = 10
SEARCH_SIZE2 = 2
MAX_SIM_THRESH = 0.95
MAX_THRESH = 0.9
MIN_THRESH = 0.2
SD_THRESH = 8.0
HIST_BINS = 1000
TOP_FRACTION = 0.02


def _search_offsets(radius, min_dist_sq, max_dist_sq):
    """(dx, dy) offsets in scan order (dy outer, dx inner) with min < |d|^2 <= max."""
    offsets = [
        (dx, dy)
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
        if min_dist_sq < dx * dx + dy * dy <= max_dist_sq
    ]
    return np.array(offsets, dtype=np.int64).reshape(-1, 2)


# the annulus search covers the whole square, not just the disk
ANNULUS_OFFSETS = _search_offsets(SEARCH_SIZE1, SEARCH_SIZE2**2, 2 * SEARCH_SIZE1**2)
NEIGHBOUR_OFFSETS = _search_offsets(SEARCH_SIZE2, 0, SEARCH_SIZE2**2)


def gradient_scores(pixels, frame):
    """Per-pixel gradient strength as a float32 map.

    Image border pixels score -1. Interior pixels outside the frame band
    score 0.
    """
    height, width = pixels.shape
    scores = np.full((height, width), -1.0, dtype=np.float32)
    if width < 3 or height < 3:
        return scores
    p = pixels
    dx = (p[:-2, 2:] - p[:-2, :-2]) + (p[1:-1, 2:] - p[1:-1, :-2]) + (p[2:, 2:] - p[2:, :-2])
    dy = (p[2:, :-2] - p[:-2, :-2]) + (p[2:, 1:-1] - p[:-2, 1:-1]) + (p[2:, 2:] - p[:-2, 2:])
    dx = dx / (3 * 256)
    dy = dy / (3 * 256)
    value = np.sqrt((dx * dx + dy * dy) / 2)
    scores[1:-1, 1:-1] = np.where(frame[1:-1, 1:-1], value, 0.0)
    return scores


def select_candidates(scores, frame):
    """Keep strict 4-neighbour maxima whose score is in the top fraction of the image."""
    height, width = scores.shape
    candidates = np.zeros((height, width), dtype=bool)
    if width < 3 or height < 3:
        return candidates
    centre = scores[1:-1, 1:-1]
    is_max = (
        frame[1:-1, 1:-1]
        & (centre > scores[1:-1, :-2])
        & (centre > scores[1:-1, 2:])
        & (centre > scores[:-2, 1:-1])
        & (centre > scores[2:, 1:-1])
    )
    value = centre.astype(np.float64)
    bins = np.clip(np.floor(value * HIST_BINS), 0, HIST_BINS - 1).astype(np.int64)
    hist = np.bincount(bins[is_max], minlength=HIST_BINS)

    max_points = TOP_FRACTION * width * height
    k = HIST_BINS - 1
    filtered_count = 0
    while k >= 0:
        filtered_count += hist[k]
        if filtered_count > max_points:
            break
        k -= 1
    logger.debug(
        "corner candidates: %d local maxima, cut-off bin %d", int(is_max.sum()), k
    )
    candidates[1:-1, 1:-1] = is_max & ~(value * HIST_BINS < k)
    return candidates


def similarity_map(matcher, candidates):
    """Highest similarity of each candidate to its surroundings, as float32.

    Non-candidates and candidates with a flat or clipped window get 1.0.
    The search stops at the first neighbour above ``MAX_SIM_THRESH``.
    """
    feature_map = np.ones(candidates.shape, dtype=np.float32)
    for cy, cx in zip(*np.nonzero(candidates)):
        vlen = matcher.window_variance(cx, cy, TEMPLATE_SD_THRESH)
        if vlen is None:
            continue
        xs = cx + ANNULUS_OFFSETS[:, 0]
        ys = cy + ANNULUS_OFFSETS[:, 1]
        sims = matcher.similarities(cx, cy, vlen, xs, ys)
        over = np.nonzero(sims > MAX_SIM_THRESH)[0]
        if over.size:
            feature_map[cy, cx] = sims[over[0]]
        elif np.all(np.isnan(sims)):
            feature_map[cy, cx] = -1.0
        else:
            feature_map[cy, cx] = np.nanmax(sims)
    return feature_map


def _is_ambiguous(matcher, cx, cy, vlen, min_sim):
    """True if a close neighbour is too similar, or dissimilar enough to beat (cx, cy)."""
    low = 1.0
    high = -1.0
    for dx, dy in NEIGHBOUR_OFFSETS:
        sim = matcher.similarity(cx, cy, vlen, cx + dx, cy + dy)
        if sim is None:
            continue
        low = min(low, sim)
        high = max(high, sim)
        if (low < MIN_THRESH and low < min_sim) or high > 0.99:
            return True
    return False


def occupancy_size(width, height):
    return math.floor(min(width, height) / 10)


def max_feature_count(width, height):
    """Density cap on selected corners; unbounded for images under 10 pixels."""
    occupancy = occupancy_size(width, height)
    if occupancy == 0:
        return math.inf
    div_size = (TEMPLATE_SIZE * 2 + 1) * 3
    return (width // occupancy) * (height // occupancy) + (width // div_size) * (height // div_size)


def select_features(matcher, feature_map, frame):
    """Greedily pick the least self-similar pixels, suppressing a square around each pick.

    Each round takes the in-frame pixel with the smallest map value below
    ``MAX_THRESH``; ties go to the first pixel in raster order.
    """
    height, width = feature_map.shape
    occupancy = occupancy_size(width, height)
    max_features = max_feature_count(width, height)

    work = feature_map.astype(np.float64)
    work[~frame] = np.inf
    corners = []
    while len(corners) < max_features:
        index = int(np.argmin(work))
        min_sim = work.flat[index]
        if not min_sim < MAX_THRESH:
            break
        cy, cx = divmod(index, width)

        vlen = matcher.window_variance(cx, cy, 0)
        if vlen is None or vlen / (TEMPLATE_SIZE * 2 + 1) < SD_THRESH:
            work[cy, cx] = 1.0
            continue
        if _is_ambiguous(matcher, cx, cy, vlen, min_sim):
            work[cy, cx] = 1.0
            continue

        corners.append(Corner(cx, cy))
        work[max(0, cy - occupancy):cy + occupancy + 1, max(0, cx - occupancy):cx + occupancy + 1] = 1.0
    logger.debug("selected %d corners (cap %s, occupancy %d)", len(corners), max_features, occupancy)
    return corners


def find_corners(pixels, frame_border):
    """Return Corner features of a validated ``(height, width)`` pixel array."""
    height, width = pixels.shape
    frame = frame_mask(width, height, frame_border)
    scores = gradient_scores(pixels, frame)
    candidates = select_candidates(scores, frame)
    matcher = TemplateMatcher(pixels, TEMPLATE_SIZE)
    feature_map = similarity_map(matcher, candidates)
    return select_features(matcher, feature_map, frame)


def detect_corners(image, frame_border, corner_options=None):
    """Return Corner features of ``image`` inside ``frame_border``.

    ``corner_options`` is accepted for a uniform detector signature; the
    corner parameters are fixed module constants.
    """
    return find_corners(image.pixels(), frame_border)
