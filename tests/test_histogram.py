import numpy as np
import pytest

from orbitbrot.errors import HistogramSizeError
from orbitbrot.histogram import Histogram


def _random_histogram(seed, width=6, height=4):
    rng = np.random.default_rng(seed)
    h = Histogram(width, height)
    h.r[...] = rng.random((height, width))
    h.g[...] = rng.random((height, width))
    h.b[...] = rng.random((height, width))
    return h


def test_shape_is_height_by_width():
    h = Histogram(5, 3)
    assert h.r.shape == (3, 5)
    assert h.size == (5, 3)
    assert h.is_black()


def test_accumulate_repeated_pixels_adds_up():
    h = Histogram(4, 4)
    h.accumulate(np.array([1, 1, 2]), np.array([2, 2, 0]), 0.5, 0.0, 0.25)
    assert h.r[2, 1] == 1.0
    assert h.r[0, 2] == 0.5
    assert h.b[2, 1] == 0.5
    assert not h.g.any()


def test_accumulate_per_point_colors():
    h = Histogram(4, 4)
    h.accumulate(np.array([0, 3]), np.array([0, 3]), np.array([0.1, 0.2]), np.zeros(2), np.array([1.0, 0.0]))
    assert h.r[0, 0] == pytest.approx(0.1)
    assert h.r[3, 3] == pytest.approx(0.2)
    assert h.b[0, 0] == 1.0
    assert h.b[3, 3] == 0.0


def test_accumulation_is_monotonic():
    h = Histogram(8, 8)
    rng = np.random.default_rng(3)
    previous = [ch.copy() for ch in h.channels]
    for _ in range(20):
        n = rng.integers(1, 10)
        xs, ys = rng.integers(0, 8, n), rng.integers(0, 8, n)
        h.accumulate(xs, ys, *rng.random(3))
        for before, after in zip(previous, h.channels):
            assert np.all(after >= before)
        previous = [ch.copy() for ch in h.channels]


def test_clear():
    h = _random_histogram(1)
    h.clear()
    assert h.is_black()


def test_merge_is_commutative_and_pure():
    a, b = _random_histogram(1), _random_histogram(2)
    a_r, b_r = a.r.copy(), b.r.copy()
    ab, ba = a.merge(b), b.merge(a)
    for x, y in zip(ab.channels, ba.channels):
        np.testing.assert_array_equal(x, y)
    np.testing.assert_array_equal(ab.r, a_r + b_r)
    np.testing.assert_array_equal(a.r, a_r)
    np.testing.assert_array_equal(b.r, b_r)


def test_merge_size_mismatch():
    a, b = _random_histogram(1, 6, 4), _random_histogram(2, 4, 6)
    a_r, b_r = a.r.copy(), b.r.copy()
    with pytest.raises(HistogramSizeError, match="6x4 != 4x6"):
        a.merge(b)
    np.testing.assert_array_equal(a.r, a_r)
    np.testing.assert_array_equal(b.r, b_r)


def test_save_and_load(tmp_path):
    h = Histogram(6, 4, importance=True)
    h.accumulate(np.array([1]), np.array([2]), 1.0, 2.0, 3.0)
    h.add_importance(5, 3, 0.5)
    path = tmp_path / "rgb.npz"
    h.save(path)
    loaded = Histogram.load(path)
    assert loaded.size == (6, 4)
    assert loaded.max() == (1.0, 2.0, 3.0)
    assert loaded.importance[3, 5] == 0.5
