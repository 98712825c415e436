import pytest

from orbitbrot.config import FractalConfig
from orbitbrot.fractal import Fractal


@pytest.fixture
def make_fractal():
    """Build a Fractal from keyword overrides; ``func`` replaces the map."""
    def _make(func=None, reference=None, **overrides):
        fields = {"width": 64, "height": 64, "iterations": 200}
        fields.update(overrides)
        return Fractal(FractalConfig(**fields), func=func, reference=reference)
    return _make
