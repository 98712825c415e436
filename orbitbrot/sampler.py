"""
Parallel orbit sampling.

``fill_histograms`` splits ``tries * width * height`` samples evenly over a
pool of worker processes. Each worker owns a private histogram, a private
random generator seeded with ``seed + index + 1`` and a reusable orbit
buffer. The parent merges the private histograms in worker order once all
workers are done, so a fixed seed and worker count always give the same
result.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import time
from concurrent.futures import FIRST_EXCEPTION, ProcessPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

import numpy as np
from tqdm import tqdm

from orbitbrot.config import FractalConfig, StartMode
from orbitbrot.errors import BlackRenderError
from orbitbrot.fractal import Fractal
from orbitbrot.histogram import Histogram
from orbitbrot.orbit import Orbit
from orbitbrot.register import attempt
from orbitbrot.util.logging_setup import configure_worker_logging, get_logger

# Neighbourhood rings around a long orbit: h = 1e-15, 1e-14, ..., 1e-3.
NEARBY_EXPONENTS = range(15, 2, -1)

_BLOCK = 4096
_PROGRESS_EVERY = 1024

_G = {}


@dataclass
class Tally:
    """Running totals of one worker."""

    hits: int = 0
    pixels: int = 0
    samples: int = 0
    progress: Optional[object] = field(default=None, repr=False)
    _unreported: int = field(default=0, repr=False)

    def add(self, pixels: int) -> None:
        self.samples += 1
        self.pixels += pixels
        if pixels > 0:
            self.hits += 1
        self._unreported += 1
        if self._unreported >= _PROGRESS_EVERY:
            self.flush()

    def flush(self) -> None:
        if self.progress is not None and self._unreported:
            with self.progress.get_lock():
                self.progress.value += self._unreported
        self._unreported = 0


@dataclass
class WorkerResult:
    index: int
    histogram: Histogram
    hits: int
    pixels: int
    samples: int


@dataclass
class FillResult:
    histogram: Histogram
    orbit_ratio: float
    hits: int
    pixels: int
    samples: int
    total_tries: int
    workers: int
    elapsed: float


def is_long_orbit(length: int, frac) -> bool:
    """length > max(20, threshold, iterations / 1e4)"""
    return length > max(20.0, float(frac.threshold), frac.iterations / 1e4)


def _compass(c: complex, h: float) -> Tuple[complex, ...]:
    cr, ci = c.real, c.imag
    return (
        complex(cr + h, ci),
        complex(cr - h, ci),
        complex(cr, ci + h),
        complex(cr, ci - h),
        complex(cr + h, ci + h),
        complex(cr - h, ci - h),
        complex(cr + h, ci - h),
        complex(cr - h, ci + h),
    )


def register_importance(z: complex, c: complex, length: int, frac) -> None:
    """Record on the sampling map how long the orbit started at c was."""
    if frac.histogram.importance is None or frac.iterations <= 0:
        return
    pt = frac.importance_projection.point(z, c)
    if pt is not None:
        frac.histogram.add_importance(pt[0], pt[1], max(length, 0) / frac.iterations)


def search_nearby(z: complex, c: complex, orbit: Orbit, frac, tally: Optional[Tally] = None) -> int:
    """Sample the eight compass neighbours of c on rings of growing radius.

    Stops at the first neighbour whose orbit is not long. Returns the number
    of long orbits found.
    """
    if tally is None:
        tally = Tally()
    orbits = 0
    for exponent in NEARBY_EXPONENTS:
        h = 10.0 ** -exponent
        for cprim in _compass(c, h):
            length, pixels = attempt(z, cprim, orbit, frac)
            tally.add(pixels)
            register_importance(z, cprim, length, frac)
            if not is_long_orbit(length, frac):
                return orbits
            orbits += 1
    return orbits


def candidates(rng: np.random.Generator, config: FractalConfig) -> Iterator[Tuple[complex, complex]]:
    """Endless stream of ``(z, c)`` start points drawn from the sampling square."""
    r = config.sample_radius
    start = config.start
    while True:
        block = rng.uniform(-r, r, size=(_BLOCK, 4))
        for cr, ci, zr, zi in block.tolist():
            c = complex(cr, ci)
            if start is StartMode.ZERO:
                yield 0j, c
            elif start is StartMode.RANDOM:
                yield complex(zr, zi), c
            else:
                yield c, c


def sample(frac: Fractal, rng: np.random.Generator, share: int, tally: Optional[Tally] = None) -> Tally:
    """Worker loop: draw ``share`` samples and register their orbits into ``frac``.

    Long orbits trigger a neighbourhood search; the long orbits it finds
    count against the share.
    """
    if tally is None:
        tally = Tally()
    orbit = Orbit.for_iterations(frac.iterations)
    points = candidates(rng, frac.config)
    i = 0
    while i < share:
        z, c = next(points)
        length, pixels = attempt(z, c, orbit, frac)
        tally.add(pixels)
        register_importance(z, c, length, frac)
        if is_long_orbit(length, frac):
            i += search_nearby(z, c, orbit, frac, tally)
        i += 1
    tally.flush()
    return tally


def worker_seed(seed: int, index: int) -> int:
    return seed + index + 1


def run_worker(config: FractalConfig, index: int, share: int, progress=None) -> WorkerResult:
    logger = get_logger("sampler")
    frac = Fractal(config)
    if index == 0:
        logger.debug("Job\n%s", frac)
    rng = np.random.default_rng(worker_seed(config.seed, index))
    start = time.time()
    logger.debug("Worker %s start share=%s seed=%s", index, share, worker_seed(config.seed, index))
    tally = sample(frac, rng, share, Tally(progress=progress))
    logger.debug("Worker %s done samples=%s hits=%s pixels=%s time=%.2fs",
                 index, tally.samples, tally.hits, tally.pixels, time.time() - start)
    return WorkerResult(index=index, histogram=frac.histogram, hits=tally.hits,
                        pixels=tally.pixels, samples=tally.samples)


def _init_worker(config, log_queue, log_level, progress):
    _G["config"] = config
    _G["progress"] = progress
    configure_worker_logging(log_queue, level=log_level)


def _run_share(index_share: Tuple[int, int]) -> WorkerResult:
    index, share = index_share
    return run_worker(_G["config"], index, share, _G["progress"])


def fill_histograms(
    config: FractalConfig,
    workers: Optional[int] = None,
    *,
    log_queue=None,
    log_level: int = logging.INFO,
    progress: bool = True,
) -> FillResult:
    """Sample the whole job and return the merged histogram and the orbit ratio.

    Raises :class:`BlackRenderError` if no pixel was registered at all.
    """
    logger = get_logger()
    workers = int(workers or config.workers)
    total = config.total_tries
    share = total // workers
    counter = mp.Value("q", 0)

    # Resolve the job once here so blueprint errors surface before any worker starts.
    Fractal(config)

    logger.info("Sampling start tries=%s workers=%s share=%s size=%sx%s iterations=%s register=%s",
                total, workers, share, config.width, config.height, config.iterations, config.register.value)
    start = time.time()

    with ProcessPoolExecutor(
        max_workers=workers,
        initializer=_init_worker,
        initargs=(config, log_queue, log_level, counter),
    ) as pool:
        futures = [pool.submit(_run_share, (n, share)) for n in range(workers)]
        with tqdm(total=total, unit="orbit", disable=not progress) as bar:
            pending = set(futures)
            while pending:
                done, pending = wait(pending, timeout=1.0, return_when=FIRST_EXCEPTION)
                if any(f.exception() is not None for f in done):
                    break
                bar.update(max(0, min(counter.value, total) - bar.n))
        results = [f.result() for f in futures]

    histogram = results[0].histogram
    for r in results[1:]:
        histogram = histogram.merge(r.histogram)

    hits = sum(r.hits for r in results)
    result = FillResult(
        histogram=histogram,
        orbit_ratio=hits / total if total else 0.0,
        hits=hits,
        pixels=sum(r.pixels for r in results),
        samples=sum(r.samples for r in results),
        total_tries=total,
        workers=workers,
        elapsed=time.time() - start,
    )
    logger.info("Sampling done hits=%s pixels=%s samples=%s orbit_ratio=%.6f time=%.2fs",
                result.hits, result.pixels, result.samples, result.orbit_ratio, result.elapsed)
    if histogram.is_black():
        raise BlackRenderError(result)
    return result
