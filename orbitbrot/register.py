"""
Registration of accepted orbits into the histogram.

Each registration mode projects the orbit's points to pixels and adds a
color weight there. All of them return the number of pixels written.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from orbitbrot.coloring import ColoringMode
from orbitbrot.orbit import Orbit, iterate
from orbitbrot.paths import register_paths
from orbitbrot.util.logging_setup import get_logger

logger = get_logger("register")


def register_orbit(length: int, orbit: Orbit, frac) -> int:
    """Every point gets the single color of the orbit's length."""
    xs, ys, _ = frac.projection.pixels(orbit.points[:length], orbit.c)
    red, green, blue = frac.coloring.get(length, frac.iterations)
    frac.histogram.accumulate(xs, ys, red, green, blue)
    return len(xs)


def register_colored_orbit(length: int, orbit: Orbit, frac) -> int:
    """Each point is colored by how far along the orbit it lies."""
    xs, ys, keep = frac.projection.pixels(orbit.points[:length], orbit.c)
    if len(xs) == 0:
        return 0
    colors = frac.coloring.get_many(np.flatnonzero(keep), frac.iterations)
    frac.histogram.accumulate(xs, ys, colors[:, 0], colors[:, 1], colors[:, 2])
    return len(xs)


def cos_angles(points: np.ndarray) -> np.ndarray:
    """Cosine of the angle between each point and its successor, as vectors from origo.

    Coinciding or zero points give NaN.
    """
    u, v = points[:-1], points[1:]
    with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
        dot = u.real * v.real + u.imag * v.imag
        return dot / (np.abs(u) * np.abs(v))


def register_field(length: int, orbit: Orbit, frac) -> int:
    """Color points by the direction the orbit takes next."""
    if length < 2:
        return 0
    points = orbit.points[:length]
    cos_alpha = cos_angles(points)
    xs, ys, keep = frac.projection.pixels(points[:-1], orbit.c)
    finite = np.isfinite(cos_alpha)[keep]
    xs, ys = xs[finite], ys[finite]
    colors = frac.coloring.angle(cos_alpha[keep][finite])
    frac.histogram.accumulate(xs, ys, colors[:, 0], colors[:, 1], colors[:, 2])
    return len(xs)


def register_image(length: int, orbit: Orbit, frac) -> int:
    """Color points from the reference image at the pixel they land on."""
    xs, ys, _ = frac.projection.pixels(orbit.points[:length], orbit.c)
    if len(xs) == 0:
        return 0
    colors = frac.reference_color(xs, ys)
    frac.histogram.accumulate(xs, ys, colors[:, 0], colors[:, 1], colors[:, 2])
    return len(xs)


_REGISTER = {
    ColoringMode.MODULO: register_orbit,
    ColoringMode.ITERATION: register_orbit,
    ColoringMode.ORBIT: register_colored_orbit,
    ColoringMode.VECTOR: register_field,
    ColoringMode.PATH: register_paths,
    ColoringMode.IMAGE: register_image,
}


def attempt(z: complex, c: complex, orbit: Orbit, frac) -> Tuple[int, int]:
    """Iterate from (z, c) and register the orbit if it is accepted.

    Returns ``(length, pixels)``. ``length`` is -1 for rejected or culled
    orbits, in which case nothing was registered.
    """
    try:
        length = iterate(z, c, orbit, frac)
    except ArithmeticError:
        logger.debug("Numeric failure iterating z=%s c=%s, sample skipped", z, c, exc_info=True)
        return -1, 0
    if length == -1 or length < frac.threshold:
        return -1, 0
    return length, _REGISTER[frac.coloring.mode](length, orbit, frac)
