"""
Path registration: connect consecutive orbit points with rasterized lines.

With ``path_level == 1`` every pair of neighbouring points is joined by a
Bresenham line. Higher levels group ``path_level + 1`` consecutive points
as the control points of a Bezier curve and sample ``path_points`` pixels
along it.
"""

from __future__ import annotations

from math import comb

import numpy as np
from numba import njit


@njit(cache=False)
def _bresenham_into(x0, y0, x1, y1, out, pos, cap):
    cx, cy = x0, y0
    dx = abs(x1 - cx)
    dy = abs(y1 - cy)
    sx = 1 if cx < x1 else -1
    sy = 1 if cy < y1 else -1
    err = dx - dy
    n = 0
    while n < cap:
        out[pos + n, 0] = cx
        out[pos + n, 1] = cy
        n += 1
        if cx == x1 and cy == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            cx += sx
        if e2 < dx:
            err += dx
            cy += sy
    return n


@njit(cache=False)
def rasterize(x0s, y0s, x1s, y1s, cap):
    """Bresenham lines for every segment, at most ``cap`` pixels each.

    Returns an ``(n, 2)`` int64 array of ``(x, y)`` pixels.
    """
    total = 0
    for k in range(len(x0s)):
        total += min(max(abs(x1s[k] - x0s[k]), abs(y1s[k] - y0s[k])) + 1, cap)
    out = np.empty((total, 2), dtype=np.int64)
    pos = 0
    for k in range(len(x0s)):
        pos += _bresenham_into(x0s[k], y0s[k], x1s[k], y1s[k], out, pos, cap)
    return out[:pos]


def bresenham(start, end, cap: int = 1 << 30) -> np.ndarray:
    """Discrete pixels on the line from ``start`` to ``end`` inclusive."""
    return rasterize(
        np.array([start[0]], dtype=np.int64), np.array([start[1]], dtype=np.int64),
        np.array([end[0]], dtype=np.int64), np.array([end[1]], dtype=np.int64),
        cap,
    )


def bernstein_matrix(level: int, samples: int) -> np.ndarray:
    """Bernstein basis, shape ``(samples, level + 1)``, for t = p / samples."""
    t = np.arange(samples, dtype=np.float64) / samples
    return np.stack(
        [comb(level, i) * t ** i * (1.0 - t) ** (level - i) for i in range(level + 1)],
        axis=-1,
    )


def _pixel_path(length, orbit, frac):
    """Per-point pixel coordinates; points outside the image are -1."""
    xs, ys, keep = frac.projection.pixels(orbit.points[:length], orbit.c)
    px = np.full(length, -1, dtype=np.int64)
    py = np.full(length, -1, dtype=np.int64)
    px[keep] = xs
    py[keep] = ys
    return px, py, keep


def register_linear(length: int, orbit, frac) -> int:
    if length < 2:
        return 0
    px, py, keep = _pixel_path(length, orbit, frac)
    both = keep[:-1] & keep[1:]
    if not both.any():
        return 0
    line = rasterize(px[:-1][both], py[:-1][both], px[1:][both], py[1:][both], frac.path_points)
    red, green, blue = frac.coloring.get(length, frac.iterations)
    frac.histogram.accumulate(line[:, 0], line[:, 1], red, green, blue)
    return len(line)


def register_bezier(length: int, orbit, frac) -> int:
    level = frac.path_level
    if length < level + 1:
        return 0
    px, py, keep = _pixel_path(length, orbit, frac)

    # Curves share their end points: chunk k uses points [k*level, k*level + level].
    starts = np.arange(0, length - level, level)
    window = starts[:, None] + np.arange(level + 1)[None, :]
    valid = keep[window].all(axis=1)
    if not valid.any():
        return 0
    window = window[valid]
    ctrl = np.stack([px[window], py[window]], axis=-1).astype(np.float64)

    basis = bernstein_matrix(level, frac.path_points)
    curve = np.einsum("pk,ckd->cpd", basis, ctrl).reshape(-1, 2)
    xs = curve[:, 0].astype(np.intp)
    ys = curve[:, 1].astype(np.intp)
    inside = (xs >= 0) & (xs < frac.width) & (ys >= 0) & (ys < frac.height)
    xs, ys = xs[inside], ys[inside]

    red, green, blue = frac.coloring.get(length, frac.iterations)
    frac.histogram.accumulate(xs, ys, red, green, blue)
    return len(xs)


def register_paths(length: int, orbit, frac) -> int:
    if frac.path_level == 1:
        return register_linear(length, orbit, frac)
    return register_bezier(length, orbit, frac)
