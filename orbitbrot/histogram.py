"""Per-channel accumulation buffers with persistent save and load."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from orbitbrot.errors import HistogramSizeError


class Histogram:
    """Red, green and blue float64 buffers of shape ``(height, width)``.

    Cells only grow during sampling; :meth:`clear` is the only way back to
    zero. An optional importance buffer records where in the sampling
    domain long orbits were found.
    """

    def __init__(self, width: int, height: int, *, importance: bool = False):
        self.width = int(width)
        self.height = int(height)
        shape = (self.height, self.width)
        self.r = np.zeros(shape, dtype=np.float64)
        self.g = np.zeros(shape, dtype=np.float64)
        self.b = np.zeros(shape, dtype=np.float64)
        self.importance: Optional[np.ndarray] = np.zeros(shape, dtype=np.float64) if importance else None

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def channels(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.r, self.g, self.b

    def clear(self) -> None:
        for ch in self.channels:
            ch.fill(0.0)
        if self.importance is not None:
            self.importance.fill(0.0)

    def accumulate(self, xs: np.ndarray, ys: np.ndarray, red, green, blue) -> None:
        """Add color weight at pixels ``(xs[k], ys[k])``.

        Each color component is either a scalar or an array aligned with the
        coordinates. Repeated coordinates accumulate, zero components are
        skipped.
        """
        if len(xs) == 0:
            return
        for ch, value in zip(self.channels, (red, green, blue)):
            if np.ndim(value) == 0:
                if value == 0:
                    continue
            elif not np.any(value):
                continue
            np.add.at(ch, (ys, xs), value)

    def add_importance(self, x: int, y: int, value: float) -> None:
        if self.importance is not None:
            self.importance[y, x] += value

    def max(self) -> Tuple[float, float, float]:
        return float(self.r.max()), float(self.g.max()), float(self.b.max())

    def total(self) -> float:
        return float(self.r.sum() + self.g.sum() + self.b.sum())

    def is_black(self) -> bool:
        return not (self.r.any() or self.g.any() or self.b.any())

    def merge(self, other: "Histogram") -> "Histogram":
        """Element-wise sum into a new histogram. Inputs are left untouched."""
        if self.size != other.size:
            raise HistogramSizeError(self.size, other.size)
        keep_importance = self.importance is not None or other.importance is not None
        out = Histogram(self.width, self.height, importance=keep_importance)
        np.add(self.r, other.r, out=out.r)
        np.add(self.g, other.g, out=out.g)
        np.add(self.b, other.b, out=out.b)
        if keep_importance:
            for imp in (self.importance, other.importance):
                if imp is not None:
                    out.importance += imp
        return out

    def save(self, path: Union[str, Path]) -> None:
        arrays = {"r": self.r, "g": self.g, "b": self.b}
        if self.importance is not None:
            arrays["importance"] = self.importance
        np.savez_compressed(str(path), **arrays)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Histogram":
        with np.load(str(path)) as data:
            r = data["r"]
            if r.ndim != 2 or data["g"].shape != r.shape or data["b"].shape != r.shape:
                raise ValueError(f"Corrupt histogram file: {path}")
            height, width = r.shape
            h = cls(width, height, importance="importance" in data.files)
            h.r[...] = r
            h.g[...] = data["g"]
            h.b[...] = data["b"]
            if h.importance is not None:
                h.importance[...] = data["importance"]
        return h

    def __repr__(self) -> str:
        return f"Histogram({self.width}x{self.height})"
