"""
Turn histograms into an image.

Each channel is equalised with a scaling function so that rarely visited
pixels stay visible next to the brightest ones:

    value = min(f(v, factor) * 255 * exposure / f(max, factor), 255)
"""

from __future__ import annotations

import os
from typing import Callable, Dict

import numpy as np
from PIL import Image

from orbitbrot.errors import ConfigError
from orbitbrot.histogram import Histogram
from orbitbrot.util.logging_setup import get_logger

ScaleFunc = Callable[[np.ndarray, float], np.ndarray]


def exp_scale(x, factor):
    return 1.0 - np.exp(-factor * x)


def log_scale(x, factor):
    return np.log1p(factor * x)


def sqrt_scale(x, factor):
    return np.sqrt(x * factor)


def lin_scale(x, factor):
    return np.asarray(x, dtype=np.float64)


SCALES: Dict[str, ScaleFunc] = {
    "exp": exp_scale,
    "log": log_scale,
    "sqrt": sqrt_scale,
    "lin": lin_scale,
}


def resolve_scale(name: str) -> ScaleFunc:
    try:
        return SCALES[name.lower()]
    except KeyError:
        raise ConfigError(f"Invalid color scaling function: {name!r}") from None


def auto_factor(orbit_ratio: float, tries: float) -> float:
    """Factor derived from how many samples registered anything.

    The orbit ratio counts samples that wrote at least one pixel, so it
    stays in [0, 1]. A ratio of summed pixel weight over tries would be
    larger by roughly the mean number of pixels per registered orbit,
    giving a proportionally larger factor.
    """
    if tries <= 0:
        return 1.0
    return orbit_ratio / (10000 * tries)


def scale_channel(channel: np.ndarray, f: ScaleFunc, factor: float, exposure: float) -> np.ndarray:
    top = float(channel.max())
    if top <= 0:
        return np.zeros(channel.shape, dtype=np.uint8)
    denom = float(f(np.float64(top), factor))
    if not np.isfinite(denom) or denom <= 0:
        return np.zeros(channel.shape, dtype=np.uint8)
    with np.errstate(invalid="ignore", over="ignore"):
        v = f(channel, factor) * (255.0 * exposure / denom)
    return np.nan_to_num(np.clip(v, 0, 255)).astype(np.uint8)


def plot(histogram: Histogram, *, function: str = "exp", factor: float = 1.0, exposure: float = 1.0) -> np.ndarray:
    """RGB uint8 raster of shape ``(height, width, 3)``."""
    f = resolve_scale(function)
    return np.stack([scale_channel(ch, f, factor, exposure) for ch in histogram.channels], axis=-1)


def plot_importance(histogram: Histogram) -> np.ndarray:
    if histogram.importance is None:
        raise ValueError("Histogram carries no importance map.")
    gray = scale_channel(histogram.importance, exp_scale, 1.0, 1.0)
    return np.stack([gray, gray, gray], axis=-1)


def save_image(buf: np.ndarray, output: str, fmt: str = "png") -> str:
    """Encode the raster with Pillow; the extension is added from the format."""
    logger = get_logger()
    img = Image.fromarray(np.ascontiguousarray(buf, dtype=np.uint8))
    parent = os.path.dirname(output)
    if parent:
        os.makedirs(parent, exist_ok=True)
    if fmt == "jpg":
        path = output + ".jpg"
        img.save(path, format="JPEG", quality=100)
    else:
        path = output + ".png"
        img.save(path, format="PNG", optimize=True)
    logger.info("Image written: %s", path)
    return path
