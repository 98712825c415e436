from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from orbitbrot.config import FractalConfig, PlotSettings
from orbitbrot.errors import BlackRenderError
from orbitbrot.histogram import Histogram
from orbitbrot.plot import auto_factor, plot, plot_importance, save_image
from orbitbrot.sampler import FillResult, fill_histograms
from orbitbrot.util.logging_setup import get_logger


def _resolve_factor(settings: PlotSettings, result: FillResult, tries: float) -> float:
    if settings.factor == -1:
        return auto_factor(result.orbit_ratio, tries)
    return settings.factor


def render_job(
    *,
    cfg: Dict[str, Any],
    log_queue=None,
    log_level: int = logging.INFO,
    progress: bool = True,
    write_black: bool = False,
) -> Dict[str, Any]:
    """Sample, plot and save one blueprint.

    A black render is re-raised unless ``write_black`` is set, in which
    case the empty image is written with a ``-black`` suffix.
    """
    logger = get_logger()
    config = FractalConfig.from_dict(cfg)
    settings = PlotSettings.from_dict(cfg)
    output = settings.output

    logger.info("Render start size=%sx%s map=%s plane=%s register=%s coloring=%s",
                config.width, config.height, config.map.value, config.plane.value,
                config.register.value, config.coloring.value)

    black = False
    try:
        result = fill_histograms(config, log_queue=log_queue, log_level=log_level, progress=progress)
    except BlackRenderError as e:
        if not write_black:
            raise
        logger.warning("Black render, writing it anyway")
        result = e.result
        output += "-black"
        black = True

    if settings.cache_histograms:
        result.histogram.save(output + ".npz")
        logger.info("Histograms cached: %s.npz", output)

    factor = _resolve_factor(settings, result, config.tries)
    buf = plot(result.histogram, function=settings.function, factor=factor, exposure=settings.exposure)
    path = save_image(buf, output, settings.format)

    importance_path: Optional[str] = None
    if config.importance:
        importance_path = save_image(plot_importance(result.histogram), output + "-importance", settings.format)

    logger.info("Render complete %s", path)
    return {
        "image": path,
        "importance": importance_path,
        "black": black,
        "factor": factor,
        "orbit_ratio": result.orbit_ratio,
        "hits": result.hits,
        "pixels": result.pixels,
        "samples": result.samples,
        "total_tries": result.total_tries,
        "workers": result.workers,
        "elapsed": result.elapsed,
        "config": config.describe(),
    }


def replot(*, histogram_path: str, settings: PlotSettings) -> str:
    """Plot cached histograms again, e.g. with another exposure."""
    histogram = Histogram.load(histogram_path)
    if histogram.is_black():
        raise BlackRenderError(histogram)
    factor = 1.0 if settings.factor == -1 else settings.factor
    buf = plot(histogram, function=settings.function, factor=factor, exposure=settings.exposure)
    return save_image(buf, settings.output, settings.format)


def merge_files(paths: Sequence[str], output: str) -> Histogram:
    """Sum cached histograms of identical size into ``output``."""
    logger = get_logger()
    if not paths:
        raise ValueError("Nothing to merge.")
    merged = Histogram.load(paths[0])
    for p in paths[1:]:
        merged = merged.merge(Histogram.load(p))
    merged.save(output)
    logger.info("Merged %s histograms into %s", len(paths), output)
    return merged
