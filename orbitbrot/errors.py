from __future__ import annotations

from typing import Any, Tuple


class ConfigError(ValueError):
    """A blueprint field or selector could not be resolved."""


class HistogramSizeError(ValueError):
    def __init__(self, a: Tuple[int, int], b: Tuple[int, int]):
        super().__init__(f"Invalid sizes of histograms: {a[0]}x{a[1]} != {b[0]}x{b[1]}")
        self.sizes = (a, b)


class BlackRenderError(RuntimeError):
    """Sampling finished without registering a single pixel.

    The fill result is attached so the caller can still inspect or write it.
    """

    def __init__(self, result: Any):
        super().__init__("Black render: every histogram cell is zero after sampling.")
        self.result = result
