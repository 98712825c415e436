from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image

from orbitbrot.coloring import Coloring, Gradient
from orbitbrot.config import FractalConfig
from orbitbrot.errors import ConfigError
from orbitbrot.geometry import Plane, Projection
from orbitbrot.histogram import Histogram
from orbitbrot.maps import MapFunc


def load_reference(path: str) -> np.ndarray:
    """Reference image as float RGB in [0, 1], shape ``(height, width, 3)``."""
    try:
        with Image.open(path) as img:
            return np.asarray(img.convert("RGB"), dtype=np.float64) / 255.0
    except OSError as e:
        raise ConfigError(f"Cannot read reference image {path!r}: {e}") from e


class Fractal:
    """A sampling job resolved from a :class:`FractalConfig`.

    Holds the callables, projections, coloring and the histogram a worker
    writes into. Every worker process builds its own instance, so nothing
    here is shared between workers.

    ``func`` overrides the configured map with an arbitrary callable. The
    bulb pre-filter is then only used when the config enables it
    explicitly.
    """

    def __init__(self, config: FractalConfig, *, histogram: Optional[Histogram] = None,
                 func: Optional[MapFunc] = None, reference: Optional[np.ndarray] = None):
        self.config = config
        self.width = config.width
        self.height = config.height
        self.iterations = config.iterations
        self.bailout = config.bailout
        self.coef = config.coefficient
        self.policy = config.register
        self.threshold = config.threshold
        self.path_points = config.path_points
        self.path_level = config.path_level

        if func is None:
            self.func = config.map.func
            self.bulb_filter = config.uses_bulb_filter
        else:
            self.func = func
            self.bulb_filter = bool(config.bulb_filter)

        self.projection = Projection(
            config.width, config.height,
            zoom=config.zoom, offset=config.offset, plane=config.plane,
            theta=config.theta, theta2=config.theta2,
        )
        # The sampling map always shows where c was drawn from.
        self.importance_projection = Projection(
            config.width, config.height, zoom=config.zoom, offset=config.offset, plane=Plane.CRCI,
        )

        gradient = Gradient(config.gradient, config.stops, config.base_color)
        self.coloring = Coloring(config.coloring, gradient, config.base_color, config.ranges)

        self.histogram = histogram if histogram is not None else Histogram(
            config.width, config.height, importance=config.importance)

        if reference is None and config.reference:
            reference = load_reference(config.reference)
        self.reference = reference

    def clear(self) -> None:
        """Reset the histogram, e.g. before an interactive re-render."""
        self.histogram.clear()

    def reference_color(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        ref = self.reference
        h, w = ref.shape[:2]
        return ref[ys % h, xs % w]

    def __str__(self) -> str:
        rows = [
            ("Dimensions", f"{self.width} x {self.height}"),
            ("Coloring", repr(self.coloring)),
            ("Iterations", self.iterations),
            ("Map", self.config.map.value),
            ("Plane", self.config.plane.value),
            ("Register", self.policy.value),
            ("Coef", self.coef),
            ("Bailout", self.bailout),
            ("Zoom", self.config.zoom),
            ("Offset", self.config.offset),
            ("Seed", self.config.seed),
            ("Points", self.path_points),
            ("Tries", self.config.tries),
        ]
        pad = max(len(k) for k, _ in rows) + 1
        return "\n".join(f"{k + ':':<{pad}} {v}" for k, v in rows)
