"""Detect lines with a Sobel edge map and a Hough transform."""

import logging
import math

import numpy as np
from scipy import ndimage

from .features import Line
from .image import frame_mask, round_half_up

logger = logging.getLogger(__name__)

THETA_STEPS = 180


def edge_map(pixels, frame, edge_threshold):
    """Boolean map of in-frame interior pixels whose Sobel magnitude exceeds the threshold."""
    height, width = pixels.shape
    edges = np.zeros((height, width), dtype=bool)
    if width < 3 or height < 3:
        return edges
    img = pixels.astype(float)
    gx = ndimage.sobel(img, axis=1)
    gy = ndimage.sobel(img, axis=0)
    magnitude = np.sqrt(gx * gx + gy * gy)
    edges[1:-1, 1:-1] = frame[1:-1, 1:-1] & (magnitude[1:-1, 1:-1] > edge_threshold)
    return edges


def hough_accumulator(edges):
    """Vote every edge pixel into a ``(THETA_STEPS, ceil(max_rho))`` grid.

    Returns the accumulator and ``max_rho``, the image diagonal. Bin
    ``rho_idx`` holds lines with ``rho`` nearest ``rho_idx - max_rho / 2``.
    """
    height, width = edges.shape
    max_rho = math.sqrt(width * width + height * height)
    rho_steps = math.ceil(max_rho)
    accumulator = np.zeros((THETA_STEPS, rho_steps), dtype=np.int64)
    ys, xs = np.nonzero(edges)
    for theta_idx in range(THETA_STEPS):
        theta = (theta_idx * math.pi) / THETA_STEPS
        rho = xs * math.cos(theta) + ys * math.sin(theta)
        rho_idx = np.floor(rho + max_rho / 2 + 0.5).astype(np.int64)
        rho_idx = rho_idx[(rho_idx >= 0) & (rho_idx < rho_steps)]
        accumulator[theta_idx] = np.bincount(rho_idx, minlength=rho_steps)
    return accumulator, max_rho


def line_sample_point(theta, rho, width, height):
    """A point on the line at the image's middle column (steep lines) or middle row."""
    cos_theta = math.cos(theta)
    sin_theta = math.sin(theta)
    if abs(sin_theta) > 0.5:
        x0 = round_half_up(width / 2)
        y0 = round_half_up((rho - x0 * cos_theta) / sin_theta)
    else:
        y0 = round_half_up(height / 2)
        x0 = round_half_up((rho - y0 * sin_theta) / cos_theta)
    return x0, y0


def find_lines(pixels, frame_border, lines_options):
    """Return a Line feature for every accumulator cell above ``hough_threshold``.

    Adjacent cells are not merged, so one physical line may be reported
    several times. ``min_line_length`` and ``max_line_gap`` are accepted but
    currently have no effect.
    """
    height, width = pixels.shape
    frame = frame_mask(width, height, frame_border)
    edges = edge_map(pixels, frame, lines_options.edge_threshold)
    accumulator, max_rho = hough_accumulator(edges)

    lines = []
    peaks = np.nonzero(accumulator > lines_options.hough_threshold)
    for theta_idx, rho_idx in zip(*peaks):
        theta = (int(theta_idx) * math.pi) / THETA_STEPS
        rho = int(rho_idx) - max_rho / 2
        x0, y0 = line_sample_point(theta, rho, width, height)
        if 0 <= x0 < width and 0 <= y0 < height:
            lines.append(Line(x0, y0, theta, rho, int(accumulator[theta_idx, rho_idx])))
    logger.debug(
        "lines: %d edge pixels, %d cells above threshold, %d sampled in image",
        int(edges.sum()), len(peaks[0]), len(lines),
    )
    return lines


def detect_lines(image, frame_border, lines_options):
    return find_lines(image.pixels(), frame_border, lines_options)
