"""
Projection of orbit points onto the image plane.

A sampled point lives in four real dimensions, (Re z, Im z, Re c, Im c).
A :class:`Plane` picks two of them as the image axes, and a
:class:`Projection` scales, offsets and rotates the result into integer
pixel coordinates.

All functions here accept numpy arrays of orbit points so that a whole
orbit is projected in a single call.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from orbitbrot.errors import ConfigError

PlaneFunc = Callable[[np.ndarray, complex], np.ndarray]


def _pair(x, y) -> np.ndarray:
    out = np.empty(np.broadcast(x, y).shape, dtype=np.complex128)
    out.real = x
    out.imag = y
    return out


def zrzi(z, c):
    return _pair(np.real(z), np.imag(z))


def zrcr(z, c):
    return _pair(np.real(z), np.real(c))


def zrci(z, c):
    return _pair(np.real(z), np.imag(c))


def zicr(z, c):
    return _pair(np.imag(z), np.real(c))


def zici(z, c):
    return _pair(np.imag(z), np.imag(c))


def crci(z, c):
    return _pair(np.real(c) + np.zeros(np.shape(z)), np.imag(c) + np.zeros(np.shape(z)))


class Plane(str, Enum):
    ZRZI = "zrzi"
    ZRCR = "zrcr"
    ZRCI = "zrci"
    ZICR = "zicr"
    ZICI = "zici"
    CRCI = "crci"

    @property
    def func(self) -> PlaneFunc:
        return _PLANES[self]


_PLANES: Dict[Plane, PlaneFunc] = {
    Plane.ZRZI: zrzi,
    Plane.ZRCR: zrcr,
    Plane.ZRCI: zrci,
    Plane.ZICR: zicr,
    Plane.ZICI: zici,
    Plane.CRCI: crci,
}


def resolve_plane(name: str) -> Plane:
    try:
        return Plane(name.strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in Plane)
        raise ConfigError(f"Unknown plane: {name!r} (choose from {choices})") from None


class Projection:
    """Maps (z, c) pairs to pixel coordinates of a ``width`` x ``height`` image.

    ``X = zoom * (width / 4) / aspect * (re + offset.real) + width / 2``
    ``Y = zoom * (height / 4) * (im + offset.imag) + height / 2``

    ``theta`` rotates the projected point around the origin of the image
    plane. ``theta2`` rotates the z axes into the c axes before the plane
    is applied, which sweeps between e.g. the buddhabrot and the
    Mandelbrot perimeter.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        zoom: float = 1.0,
        offset: complex = 0j,
        plane: Plane = Plane.ZRZI,
        theta: float = 0.0,
        theta2: float = 0.0,
    ):
        self.width = int(width)
        self.height = int(height)
        self.zoom = float(zoom)
        self.offset = complex(offset)
        self.plane = plane
        self.theta = float(theta)
        self.theta2 = float(theta2)

        self.ratio = self.width / self.height
        self.x_zoom = self.zoom * (self.width / 4) * (1 / self.ratio)
        self.y_zoom = self.zoom * (self.height / 4)
        self._plane_func = plane.func

    def project(self, z, c) -> np.ndarray:
        """Return the image-plane coordinate of each point as a complex array."""
        z = np.asarray(z, dtype=np.complex128)
        if self.theta2:
            cos, sin = math.cos(self.theta2), math.sin(self.theta2)
            zr, zi = z.real, z.imag
            cr, ci = np.real(c), np.imag(c)
            z = _pair(zr * cos - cr * sin, zi * cos - ci * sin)
            c = _pair(zr * sin + cr * cos, zi * sin + ci * cos)
        p = self._plane_func(z, c)
        if self.theta:
            cos, sin = math.cos(self.theta), math.sin(self.theta)
            p = _pair(p.real * cos - p.imag * sin, p.real * sin + p.imag * cos)
        return p

    def pixels(self, z, c) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Project points and drop those outside the image.

        Returns ``(xs, ys, keep)``: integer pixel coordinates of the kept
        points and the boolean mask over the input telling which were kept.
        Non-finite points never survive the mask.
        """
        p = self.project(z, c)
        with np.errstate(invalid="ignore", over="ignore"):
            x = np.floor(self.x_zoom * (p.real + self.offset.real) + self.width / 2.0)
            y = np.floor(self.y_zoom * (p.imag + self.offset.imag) + self.height / 2.0)
            keep = (
                np.isfinite(x) & np.isfinite(y)
                & (x >= 0) & (x < self.width)
                & (y >= 0) & (y < self.height)
            )
        return x[keep].astype(np.intp), y[keep].astype(np.intp), keep

    def point(self, z: complex, c: complex) -> Optional[Tuple[int, int]]:
        xs, ys, _ = self.pixels(np.array([z]), c)
        if len(xs) == 0:
            return None
        return int(xs[0]), int(ys[0])
