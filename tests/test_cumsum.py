"""Tests for summed-area tables and template matching."""

import numpy as np
import pytest

from imgfeatures.core import PrefixSumTable, TemplateMatcher


@pytest.fixture
def pixels():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(17, 23))


def test_query_matches_brute_force(pixels):
    """Every sampled rectangle sums exactly, for raw and squared values."""
    rng = np.random.default_rng(3)
    for values in (pixels, pixels * pixels):
        table = PrefixSumTable(values)
        for _ in range(200):
            x1, x2 = sorted(rng.integers(0, values.shape[1], size=2))
            y1, y2 = sorted(rng.integers(0, values.shape[0], size=2))
            expected = sum(
                int(values[y, x]) for y in range(y1, y2 + 1) for x in range(x1, x2 + 1)
            )
            assert table.query(x1, y1, x2, y2) == expected


def test_query_full_image_and_single_pixel(pixels):
    """The whole image and single pixels are valid rectangles."""
    table = PrefixSumTable(pixels)
    height, width = pixels.shape
    assert table.query(0, 0, width - 1, height - 1) == pixels.sum()
    assert table.query(4, 9, 4, 9) == pixels[9, 4]


def test_window_sums_match_queries(pixels):
    """Window sums indexed by top-left corner agree with queries."""
    table = PrefixSumTable(pixels)
    sums = table.window_sums(2)
    assert sums.shape == (13, 19)
    assert sums[3, 5] == table.query(5, 3, 9, 7)


def test_window_variance_out_of_bounds(pixels):
    """Windows that leave the image are rejected."""
    matcher = TemplateMatcher(pixels, half_size=3)
    assert matcher.window_variance(2, 8, 0) is None
    assert matcher.window_variance(10, 14, 0) is None
    assert matcher.window_variance(3, 3, 0) is not None


def test_window_variance_value(pixels):
    """vlen is the root of the summed squared deviation."""
    matcher = TemplateMatcher(pixels, half_size=3)
    window = pixels[5:12, 6:13].astype(float)
    expected = np.sqrt(((window - window.mean()) ** 2).sum())
    assert matcher.window_variance(9, 8, 0) == pytest.approx(expected)


def test_window_variance_flat_window():
    """A flat window fails any positive deviation threshold."""
    matcher = TemplateMatcher(np.full((20, 20), 77), half_size=3)
    assert matcher.window_variance(10, 10, 5.0) is None
    assert matcher.window_variance(10, 10, 0) == 0


def test_similarity_with_itself_is_one(pixels):
    """A window correlates perfectly with itself."""
    matcher = TemplateMatcher(pixels, half_size=3)
    vlen = matcher.window_variance(10, 8, 0)
    assert matcher.similarity(10, 8, vlen, 10, 8) == pytest.approx(1.0)


def test_similarity_of_inverted_patch():
    """An intensity-inverted copy correlates at -1."""
    rng = np.random.default_rng(1)
    patch = rng.integers(0, 256, size=(7, 7))
    pixels = np.zeros((7, 20), dtype=np.int64)
    pixels[:, :7] = patch
    pixels[:, 10:17] = 255 - patch
    matcher = TemplateMatcher(pixels, half_size=3)
    vlen = matcher.window_variance(3, 3, 0)
    assert matcher.similarity(3, 3, vlen, 13, 3) == pytest.approx(-1.0)


def test_similarity_rejects_flat_and_clipped_windows():
    """Flat candidate windows and windows off the image give None."""
    pixels = np.zeros((9, 20), dtype=np.int64)
    pixels[:, :9] = np.arange(81).reshape(9, 9)
    matcher = TemplateMatcher(pixels, half_size=3)
    vlen = matcher.window_variance(4, 4, 0)
    assert matcher.similarity(4, 4, vlen, 15, 4) is None
    assert matcher.similarity(4, 4, vlen, 4, 6) is None


def test_batch_similarities_match_scalar(pixels):
    """The vectorized form gives the same values, NaN where scalar gives None."""
    matcher = TemplateMatcher(pixels, half_size=3)
    vlen = matcher.window_variance(11, 8, 0)
    xs = np.array([0, 3, 5, 11, 14, 19, 20, 8])
    ys = np.array([8, 3, 12, 8, 9, 13, 8, 2])
    batch = matcher.similarities(11, 8, vlen, xs, ys)
    for x, y, value in zip(xs, ys, batch):
        expected = matcher.similarity(11, 8, vlen, x, y)
        if expected is None:
            assert np.isnan(value)
        else:
            assert value == expected
