"""Tests for Sobel + Hough line detection."""

import math

import numpy as np

from imgfeatures.core import FrameBorder, Image, LinesOptions, detect_lines
from imgfeatures.core.line_detection import edge_map, hough_accumulator, line_sample_point


def step_image(size=64):
    """Dark left half, bright right half: one vertical edge near x = 31.5."""
    pixels = np.zeros((size, size), dtype=np.uint8)
    pixels[:, size // 2:] = 255
    return Image.from_array(pixels)


def diagonal_image(size=64):
    """Bright where x + y >= size: one edge along x + y = size - 0.5."""
    yy, xx = np.mgrid[:size, :size]
    return Image.from_array(np.where(xx + yy >= size, 255, 0).astype(np.uint8))


def test_edge_map_on_step():
    pixels = step_image().pixels()
    edges = edge_map(pixels, np.ones(pixels.shape, dtype=bool), 50)
    assert set(np.nonzero(edges)[1]) == {31, 32}
    assert not edges[0].any() and not edges[-1].any()


def test_edge_map_respects_frame():
    pixels = step_image().pixels()
    frame = np.zeros(pixels.shape, dtype=bool)
    frame[:10] = True
    edges = edge_map(pixels, frame, 50)
    assert set(np.nonzero(edges)[0]) == set(range(1, 10))


def test_accumulator_shape_and_votes():
    """Every edge pixel casts at most one vote per angle."""
    edges = np.zeros((30, 40), dtype=bool)
    edges[10, 5:25] = True
    accumulator, max_rho = hough_accumulator(edges)
    assert max_rho == 50.0
    assert accumulator.shape == (180, 50)
    assert np.all(accumulator.sum(axis=1) <= 20)
    # theta = 90 degrees: all 20 pixels share rho = 10
    assert accumulator[90].max() == 20
    assert accumulator[90, 35] == 20


def test_sample_point_branches():
    assert line_sample_point(0.0, 12.0, 40, 30) == (12, 15)
    x0, y0 = line_sample_point(math.pi / 2, 10.0, 40, 30)
    assert (x0, y0) == (20, 10)


def test_vertical_edge_is_recovered():
    lines = detect_lines(step_image(), FrameBorder(), LinesOptions())
    assert lines
    assert any(abs(l.theta) <= math.pi / 180 and abs(l.rho - 31.5) <= 1 for l in lines)
    assert all(l.type == "lines" and l.votes > 50 for l in lines)


def test_diagonal_edge_is_recovered():
    """A 45 degree edge shows up within one angle step and one pixel."""
    lines = detect_lines(diagonal_image(), FrameBorder(), LinesOptions())
    theta0 = math.pi / 4
    rho0 = 63.5 / math.sqrt(2)
    assert any(
        abs(l.theta - theta0) <= math.pi / 180 and abs(l.rho - rho0) <= 1 for l in lines
    )
    for line in lines:
        assert 0 <= line.x < 64 and 0 <= line.y < 64


def test_lines_ordered_by_angle_then_distance():
    lines = detect_lines(diagonal_image(), FrameBorder(), LinesOptions())
    keys = [(l.theta, l.rho) for l in lines]
    assert keys == sorted(keys)


def test_flat_image_has_no_lines():
    image = Image.from_array(np.full((50, 50), 200, dtype=np.uint8))
    assert detect_lines(image, FrameBorder(), LinesOptions()) == []


def test_high_vote_threshold_suppresses_lines():
    lines = detect_lines(step_image(), FrameBorder(), LinesOptions(hough_threshold=1000))
    assert lines == []


def test_segment_options_are_inert():
    """min_line_length and max_line_gap do not change the result."""
    base = detect_lines(diagonal_image(), FrameBorder(), LinesOptions())
    tuned = detect_lines(
        diagonal_image(), FrameBorder(), LinesOptions(min_line_length=500, max_line_gap=0)
    )
    assert base == tuned
