import numpy as np
import pytest

from orbitbrot.coloring import Coloring, ColoringMode, Gradient, parse_color, resolve_mode
from orbitbrot.errors import ConfigError

BLUE, GREEN, RED = (0.0, 0.0, 1.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0)
BASE = (0.1, 0.1, 0.1)


def test_gradient_interpolates_between_stops():
    g = Gradient([(0, 0, 0), (1, 1, 1)])
    assert g.lookup(0.0) == (0.0, 0.0, 0.0)
    assert g.lookup(0.5) == pytest.approx((0.5, 0.5, 0.5))
    assert g.lookup(1.0) == pytest.approx((1.0, 1.0, 1.0), abs=1e-3)


def test_gradient_outside_range_is_base():
    g = Gradient([BLUE, RED], base=BASE)
    assert g.lookup(1.5) == BASE
    assert g.lookup(-0.1) == BASE
    out = g.lookup_many(np.array([np.nan, -1.0, 0.0]))
    np.testing.assert_allclose(out[0], BASE)
    np.testing.assert_allclose(out[1], BASE)
    np.testing.assert_allclose(out[2], BLUE)


def test_gradient_stops_are_normalised():
    g = Gradient([BLUE, GREEN, RED], stops=[10, 20, 30])
    np.testing.assert_allclose(g.stops, [0.0, 0.5, 1.0])
    assert g.lookup(0.5) == pytest.approx(GREEN)


def test_gradient_validation():
    with pytest.raises(ConfigError):
        Gradient([BLUE, RED], stops=[0.5, 0.2])
    with pytest.raises(ConfigError):
        Gradient([BLUE, RED], stops=[0.0, 0.5, 1.0])
    with pytest.raises(ConfigError):
        Gradient([])


def test_iteration_ranges():
    c = Coloring(ColoringMode.ITERATION, Gradient([BLUE, GREEN, RED]), BASE, ranges=[0.01, 0.1, 0.5])
    assert c.get(0, 100) == BASE
    assert c.get(5, 100) == BLUE
    assert c.get(20, 100) == GREEN
    assert c.get(60, 100) == RED


def test_iteration_ranges_must_match_colors():
    with pytest.raises(ConfigError):
        Coloring(ColoringMode.ITERATION, Gradient([BLUE, RED]), BASE, ranges=[0.0])


def test_modulo():
    c = Coloring(ColoringMode.MODULO, Gradient([BLUE, GREEN, RED]), BASE)
    assert c.get(3, 100) == BASE
    assert c.get(11, 100) == RED
    assert c.get(12, 100) == BLUE


def test_orbit_mode_follows_progress():
    c = Coloring(ColoringMode.ORBIT, Gradient([BLUE, RED]), BASE)
    colors = c.get_many(np.array([0, 50]), 100)
    np.testing.assert_allclose(colors[0], BLUE)
    np.testing.assert_allclose(colors[1], (0.5, 0.0, 0.5))


def test_angle_colors():
    c = Coloring(ColoringMode.VECTOR, Gradient([BLUE, RED]), BASE)
    colors = c.angle(np.array([-1.0, 0.0]))
    np.testing.assert_allclose(colors[0], BLUE)
    np.testing.assert_allclose(colors[1], (0.5, 0.0, 0.5))


def test_parse_color():
    assert parse_color([0.5, 0.25, 1.0]) == (0.5, 0.25, 1.0)
    assert parse_color("#ff0000") == (1.0, 0.0, 0.0)
    with pytest.raises(ConfigError):
        parse_color("not-a-color")


def test_resolve_mode():
    assert resolve_mode("Vector") is ColoringMode.VECTOR
    with pytest.raises(ConfigError):
        resolve_mode("rainbow")
