"""Summed-area tables and the normalized template matcher built on them."""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


class PrefixSumTable:
    """O(1) sums over inclusive rectangles of a 2D array.

    The table is padded with a leading row and column of zeros, so it has
    shape ``(height + 1, width + 1)``. Queries are not bounds-checked; callers
    keep ``0 <= x1 <= x2 < width`` and ``0 <= y1 <= y2 < height``.
    """

    def __init__(self, values):
        values = np.asarray(values)
        if values.ndim != 2:
            raise ValueError("PrefixSumTable requires a 2D array")
        self.height, self.width = values.shape
        self.table = np.zeros((self.height + 1, self.width + 1), dtype=np.int64)
        self.table[1:, 1:] = np.cumsum(np.cumsum(values.astype(np.int64), axis=0), axis=1)

    def query(self, x1, y1, x2, y2):
        """Sum over ``[x1, x2] x [y1, y2]``, both ends inclusive."""
        t = self.table
        return t[y2 + 1, x2 + 1] - t[y1, x2 + 1] - t[y2 + 1, x1] + t[y1, x1]

    def window_sums(self, half_size):
        """Sums of every full ``(2*half_size+1)``-square window, indexed by its top-left."""
        size = 2 * half_size + 1
        t = self.table
        return t[size:, size:] - t[:-size, size:] - t[size:, :-size] + t[:-size, :-size]


class TemplateMatcher:
    """Window variance and normalized cross-correlation over a fixed window."""

    def __init__(self, pixels, half_size=6):
        self.pixels = np.asarray(pixels, dtype=np.int64)
        self.height, self.width = self.pixels.shape
        self.half_size = half_size
        self.window_width = 2 * half_size + 1
        self.n_pixels = self.window_width * self.window_width
        self.sums = PrefixSumTable(self.pixels)
        self.sq_sums = PrefixSumTable(self.pixels * self.pixels)
        self._windows = None

    def fits(self, cx, cy):
        h = self.half_size
        return 0 <= cx - h and cx + h < self.width and 0 <= cy - h and cy + h < self.height

    def _window_sum(self, table, cx, cy):
        h = self.half_size
        return table.query(cx - h, cy - h, cx + h, cy + h)

    def window_variance(self, cx, cy, sd_thresh):
        """Return the window's deviation length ``sqrt(sum((p - mean)^2))``.

        ``None`` if the window leaves the image or its per-pixel variance is
        below ``sd_thresh**2``.
        """
        if not self.fits(cx, cy):
            return None
        total = float(self._window_sum(self.sums, cx, cy))
        average = total / self.n_pixels
        vlen = float(self._window_sum(self.sq_sums, cx, cy))
        vlen -= 2 * average * total
        vlen += self.n_pixels * average * average
        if vlen / self.n_pixels < sd_thresh * sd_thresh:
            return None
        return np.sqrt(vlen)

    def _patch(self, cx, cy):
        h = self.half_size
        return self.pixels[cy - h:cy + h + 1, cx - h:cx + h + 1]

    def similarity(self, ref_x, ref_y, ref_vlen, cx, cy):
        """Normalized cross-correlation of the window at (cx, cy) against the reference.

        ``ref_vlen`` is ``window_variance`` of the reference window. Returns
        ``None`` if either window leaves the image or the candidate window
        is flat.
        """
        if not self.fits(cx, cy) or not self.fits(ref_x, ref_y):
            return None
        sx = float(self._window_sum(self.sums, cx, cy))
        sxx = float(self._window_sum(self.sq_sums, cx, cy))
        sxy = float(np.sum(self._patch(cx, cy) * self._patch(ref_x, ref_y)))
        ref_average = float(self._window_sum(self.sums, ref_x, ref_y)) / self.n_pixels
        sxy -= ref_average * sx
        vlen2 = sxx - sx * sx / self.n_pixels
        if vlen2 == 0:
            return None
        return sxy / (ref_vlen * np.sqrt(vlen2))

    def similarities(self, ref_x, ref_y, ref_vlen, xs, ys):
        """Vectorized ``similarity`` for many candidate centers.

        Entries whose window leaves the image or is flat are NaN.
        """
        xs = np.asarray(xs, dtype=np.int64)
        ys = np.asarray(ys, dtype=np.int64)
        result = np.full(xs.shape, np.nan)
        if not self.fits(ref_x, ref_y):
            return result
        h = self.half_size
        valid = (xs - h >= 0) & (xs + h < self.width) & (ys - h >= 0) & (ys + h < self.height)
        if not np.any(valid):
            return result
        vx = xs[valid]
        vy = ys[valid]
        if self._windows is None:
            self._windows = (
                self.sums.window_sums(h),
                self.sq_sums.window_sums(h),
                sliding_window_view(self.pixels, (self.window_width, self.window_width)),
            )
        window_sums, window_sq_sums, windows = self._windows
        # windows are indexed by their top-left corner
        sx = window_sums[vy - h, vx - h].astype(np.float64)
        sxx = window_sq_sums[vy - h, vx - h].astype(np.float64)
        reference = self._patch(ref_x, ref_y)
        sxy = np.einsum("kij,ij->k", windows[vy - h, vx - h], reference).astype(np.float64)
        ref_average = float(self._window_sum(self.sums, ref_x, ref_y)) / self.n_pixels
        sxy -= ref_average * sx
        vlen2 = sxx - sx * sx / self.n_pixels
        flat = vlen2 == 0
        with np.errstate(divide="ignore", invalid="ignore"):
            sims = sxy / (ref_vlen * np.sqrt(vlen2))
        sims[flat] = np.nan
        result[valid] = sims
        return result
