"""
Coloring policies.

A :class:`Coloring` turns an orbit index and a length into the RGB weight
added to the histograms. Gradients are tabulated once so that lookups in
the sampling loop are a single array index.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import ImageColor

from orbitbrot.errors import ConfigError

RGB = Tuple[float, float, float]
ColorSpec = Union[str, Sequence[float]]


class ColoringMode(str, Enum):
    MODULO = "modulo"
    ITERATION = "iteration"
    ORBIT = "orbit"
    VECTOR = "vector"
    PATH = "path"
    IMAGE = "image"


def resolve_mode(name: str) -> ColoringMode:
    try:
        return ColoringMode(name.strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in ColoringMode)
        raise ConfigError(f"Invalid coloring function: {name!r} (choose from {choices})") from None


def parse_color(value: ColorSpec) -> RGB:
    """Accept ``[r, g, b]`` floats in [0, 1] or any color string Pillow knows."""
    if isinstance(value, str):
        try:
            rgb = ImageColor.getrgb(value)
        except ValueError as e:
            raise ConfigError(f"Invalid color: {value!r}") from e
        return rgb[0] / 255, rgb[1] / 255, rgb[2] / 255
    if len(value) < 3:
        raise ConfigError(f"Invalid color: {value!r}")
    return float(value[0]), float(value[1]), float(value[2])


class Gradient:
    """Piecewise linear gradient between colors placed at ascending stops.

    Stops are normalised to [0, 1]. Values outside that range map to the
    base color.
    """

    def __init__(self, colors: Sequence[RGB], stops: Optional[Sequence[float]] = None,
                 base: RGB = (0.0, 0.0, 0.0), granularity: int = 4096):
        if not colors:
            raise ConfigError("Gradient needs at least one color.")
        if len(colors) == 1:
            colors = [colors[0], colors[0]]
            stops = None
        if stops is None:
            stops = np.linspace(0.0, 1.0, len(colors))
        if len(stops) != len(colors):
            raise ConfigError("Invalid gradient: the stops and colors are of different lengths.")
        stops = np.asarray(stops, dtype=np.float64)
        if np.any(np.diff(stops) <= 0):
            raise ConfigError("Invalid gradient: stops must be in ascending order.")
        stops = stops - stops[0]
        stops = stops / stops[-1]

        self.colors = np.asarray(colors, dtype=np.float64)
        self.stops = stops
        self.base = np.asarray(base, dtype=np.float64)
        ts = np.arange(granularity) / granularity
        self.table = np.stack([np.interp(ts, stops, self.colors[:, k]) for k in range(3)], axis=-1)

    def __len__(self) -> int:
        return len(self.stops)

    def lookup(self, t: float) -> RGB:
        n = len(self.table)
        if not 0.0 <= t <= 1.0:
            return tuple(self.base)
        r, g, b = self.table[min(int(t * n), n - 1)]
        return r, g, b

    def lookup_many(self, ts: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`lookup`; NaN and out-of-range values get the base color."""
        n = len(self.table)
        ts = np.asarray(ts, dtype=np.float64)
        with np.errstate(invalid="ignore"):
            valid = (ts >= 0.0) & (ts <= 1.0)
        idx = np.zeros(ts.shape, dtype=np.intp)
        idx[valid] = np.minimum((ts[valid] * n).astype(np.intp), n - 1)
        out = self.table[idx]
        out[~valid] = self.base
        return out


class Coloring:
    """Color lookup for a registration mode.

    ``get(i, it)`` is called with an orbit index or length ``i`` and the
    length it is relative to (usually the iteration cap).
    """

    def __init__(self, mode: ColoringMode, gradient: Gradient, base: RGB = (0.0, 0.0, 0.0),
                 ranges: Optional[Sequence[float]] = None):
        self.mode = mode
        self.gradient = gradient
        self.base = tuple(base)
        self.palette: List[RGB] = [tuple(c) for c in gradient.colors]
        if ranges is None:
            ranges = [k / len(self.palette) for k in range(len(self.palette))]
        if mode is ColoringMode.ITERATION and len(ranges) != len(self.palette):
            raise ConfigError("Number of colors and ranges mismatch.")
        self.ranges = list(ranges)

    def get(self, i: int, it: int) -> RGB:
        if self.mode is ColoringMode.MODULO:
            return self.modulo(i)
        if self.mode is ColoringMode.ITERATION:
            return self.iteration(i, it)
        return self.gradient.lookup(i / it if it else 0.0)

    def get_many(self, indices: np.ndarray, it: int) -> np.ndarray:
        if it <= 0:
            return np.tile(np.asarray(self.base), (len(indices), 1))
        return self.gradient.lookup_many(np.asarray(indices, dtype=np.float64) / it)

    def modulo(self, i: int) -> RGB:
        if i < 10:
            return self.base
        return self.palette[i % len(self.palette)]

    def iteration(self, i: int, it: int) -> RGB:
        ratio = i / it if it else 0.0
        for key in range(len(self.ranges) - 1, -1, -1):
            if ratio >= self.ranges[key]:
                return self.palette[key]
        return self.base

    def angle(self, cos_alpha: np.ndarray) -> np.ndarray:
        """Colors for the cosine of the angle between consecutive points."""
        return self.gradient.lookup_many((1.0 + cos_alpha) / 2.0)

    def __repr__(self) -> str:
        return f"Coloring(mode={self.mode.value}, colors={len(self.palette)}, ranges={self.ranges})"
