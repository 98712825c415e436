import numpy as np

from orbitbrot.coloring import ColoringMode
from orbitbrot.orbit import Orbit
from orbitbrot.paths import bernstein_matrix, bresenham, register_paths
from orbitbrot.register import cos_angles, register_colored_orbit, register_field, register_image, register_orbit

BLUE, RED = (0.0, 0.0, 1.0), (1.0, 0.0, 0.0)


def _orbit(points, c=0j):
    return Orbit(points=np.array(points, dtype=np.complex128), c=c)


def test_register_orbit_skips_points_outside(make_fractal):
    frac = make_fractal()
    orbit = _orbit([0, 0.5, 3j])
    assert register_orbit(3, orbit, frac) == 2
    # 3 / 200 iterations falls in the first range: blue.
    assert frac.histogram.b[32, 32] == 1.0
    assert frac.histogram.b[32, 40] == 1.0
    assert frac.histogram.b.sum() == 2.0
    assert not frac.histogram.r.any()


def test_register_orbit_only_uses_length(make_fractal):
    frac = make_fractal()
    orbit = _orbit([0, 0.5, -0.5])
    assert register_orbit(1, orbit, frac) == 1
    assert frac.histogram.b.sum() == 1.0


def test_colored_orbit_follows_point_index(make_fractal):
    frac = make_fractal(coloring=ColoringMode.ORBIT, gradient=(BLUE, RED), iterations=4)
    orbit = _orbit([0, 0.5, 3j, -0.5])
    assert register_colored_orbit(4, orbit, frac) == 3
    h = frac.histogram
    assert h.b[32, 32] == 1.0
    assert h.r[32, 40] == 0.25
    assert h.r[32, 24] == 0.75


def test_bresenham():
    np.testing.assert_array_equal(bresenham((0, 0), (3, 1)), [[0, 0], [1, 0], [2, 1], [3, 1]])
    np.testing.assert_array_equal(bresenham((3, 1), (0, 0)), [[3, 1], [2, 1], [1, 0], [0, 0]])
    np.testing.assert_array_equal(bresenham((5, 5), (5, 5)), [[5, 5]])
    np.testing.assert_array_equal(bresenham((2, 0), (2, 3)), [[2, 0], [2, 1], [2, 2], [2, 3]])


def test_bresenham_cap():
    assert len(bresenham((0, 0), (10, 0), cap=3)) == 3


def test_linear_path_fills_the_segment(make_fractal):
    frac = make_fractal(coloring=ColoringMode.PATH)
    orbit = _orbit([0, 1])
    assert register_paths(2, orbit, frac) == 17
    assert (frac.histogram.b[32, 32:49] > 0).all()
    assert frac.histogram.b[32, 49] == 0


def test_linear_path_is_capped_by_path_points(make_fractal):
    frac = make_fractal(coloring=ColoringMode.PATH, path_points=5)
    orbit = _orbit([0, 1])
    assert register_paths(2, orbit, frac) == 5


def test_linear_path_needs_two_points(make_fractal):
    frac = make_fractal(coloring=ColoringMode.PATH)
    assert register_paths(1, _orbit([0]), frac) == 0
    assert frac.histogram.is_black()


def test_bernstein_rows_sum_to_one():
    basis = bernstein_matrix(3, 10)
    assert basis.shape == (10, 4)
    np.testing.assert_allclose(basis.sum(axis=1), 1.0)


def test_bezier_path(make_fractal):
    frac = make_fractal(coloring=ColoringMode.PATH, path_level=2, path_points=8)
    orbit = _orbit([0, 0.5, 1])
    assert register_paths(3, orbit, frac) == 8
    row = frac.histogram.b[32]
    np.testing.assert_array_equal(np.flatnonzero(row), np.arange(32, 48, 2))


def test_cos_angles():
    cos = cos_angles(np.array([1, 2, 2j, 0, 1], dtype=np.complex128))
    np.testing.assert_allclose(cos[:2], [1.0, 0.0])
    assert np.isnan(cos[2:]).all()


def test_vector_field_skips_undefined_angles(make_fractal):
    frac = make_fractal(coloring=ColoringMode.VECTOR)
    orbit = _orbit([0, 1, 2])
    assert register_field(3, orbit, frac) == 1
    h = frac.histogram
    assert h.r[32, 48] > 0.99
    assert h.total() == h.r[32, 48] + h.g[32, 48] + h.b[32, 48]


def test_image_mode_samples_reference(make_fractal):
    reference = np.zeros((64, 64, 3))
    reference[32, 32] = (0.2, 0.4, 0.6)
    frac = make_fractal(coloring=ColoringMode.IMAGE, reference=reference)
    assert register_image(1, _orbit([0]), frac) == 1
    assert frac.histogram.max() == (0.2, 0.4, 0.6)
