import json
from pathlib import Path

import pytest

from orbitbrot.coloring import ColoringMode
from orbitbrot.config import FractalConfig, PlotSettings, StartMode, load_config, normalise_config, parse_complex
from orbitbrot.errors import ConfigError
from orbitbrot.geometry import Plane
from orbitbrot.maps import ComplexMap
from orbitbrot.orbit import RegisterPolicy

BLUEPRINT = Path(__file__).resolve().parent.parent / "examples" / "buddha.json"


def _blueprint(**fields):
    cfg = {"width": 40, "height": 30, "iterations": 100}
    cfg.update(fields)
    return normalise_config(cfg)


@pytest.mark.parametrize("missing", ["width", "height", "iterations"])
def test_required_fields(missing):
    cfg = {"width": 40, "height": 30, "iterations": 100}
    del cfg[missing]
    with pytest.raises(ConfigError, match=missing):
        normalise_config(cfg)


def test_defaults_are_filled_in():
    cfg = _blueprint()
    assert cfg["bailout"] == 4.0
    assert cfg["map"] == "quadratic"
    assert cfg["register"] == "escapes"
    assert cfg["workers"] >= 1
    assert cfg["factor"] == -1.0


@pytest.mark.parametrize("fields", [
    {"width": 0},
    {"iterations": -1},
    {"tries": -2},
    {"path_level": 0},
    {"workers": 0},
    {"function": "cube"},
    {"format": "gif"},
    {"zoom": "near"},
])
def test_invalid_values(fields):
    with pytest.raises(ConfigError):
        _blueprint(**fields)


def test_function_and_format_are_lowercased():
    cfg = _blueprint(function="LOG", format="JPG")
    assert cfg["function"] == "log"
    assert cfg["format"] == "jpg"


def test_from_dict_resolves_selectors():
    config = FractalConfig.from_dict(_blueprint(
        map="Burning-Ship", plane="crci", register="converged", coloring="orbit",
        gradient=["red", [0, 1, 0]], offset=[0.5, -0.25], coefficient="1+2j", start="c",
    ))
    assert config.map is ComplexMap.BURNING_SHIP
    assert config.plane is Plane.CRCI
    assert config.register is RegisterPolicy.ANTI
    assert config.coloring is ColoringMode.ORBIT
    assert config.gradient == ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert config.offset == complex(0.5, -0.25)
    assert config.coefficient == 1 + 2j
    assert config.start is StartMode.C


@pytest.mark.parametrize("fields", [
    {"map": "julia"},
    {"plane": "xy"},
    {"register": "sometimes"},
    {"coloring": "rainbow"},
    {"start": "middle"},
    {"coloring": "image"},
])
def test_from_dict_rejects_unknown_selectors(fields):
    with pytest.raises(ConfigError):
        FractalConfig.from_dict(_blueprint(**fields))


def test_total_tries():
    assert FractalConfig(width=10, height=4, iterations=1, tries=2.5).total_tries == 100


def test_bulb_filter_selection():
    assert FractalConfig(width=1, height=1, iterations=1).uses_bulb_filter
    assert not FractalConfig(width=1, height=1, iterations=1, map=ComplexMap.TRICORN).uses_bulb_filter
    assert not FractalConfig(width=1, height=1, iterations=1, bulb_filter=False).uses_bulb_filter
    assert FractalConfig(width=1, height=1, iterations=1, map=ComplexMap.CUBIC, bulb_filter=True).uses_bulb_filter


@pytest.mark.parametrize("value,expected", [
    ([1, 2], 1 + 2j),
    ((0.5, 0), 0.5 + 0j),
    ("0.3+0.5j", 0.3 + 0.5j),
    ("0.3 + 0.5j", 0.3 + 0.5j),
    (3, 3 + 0j),
])
def test_parse_complex(value, expected):
    assert parse_complex(value) == expected


@pytest.mark.parametrize("value", [[1, 2, 3], "one", None])
def test_parse_complex_rejects(value):
    with pytest.raises(ConfigError):
        parse_complex(value)


def test_describe_is_json_friendly():
    config = FractalConfig(width=4, height=4, iterations=10, offset=1 - 1j, plane=Plane.ZRCI)
    described = config.describe()
    assert described["offset"] == [1.0, -1.0]
    assert described["plane"] == "zrci"
    json.dumps(described)


def test_load_config_errors(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(broken))
    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(listed))


def test_sample_blueprint():
    cfg = normalise_config(load_config(str(BLUEPRINT)))
    config = FractalConfig.from_dict(cfg)
    settings = PlotSettings.from_dict(cfg)
    assert config.width == 512
    assert config.gradient[-1] == (1.0, 0.0, 0.0)
    assert config.ranges == (0.0, 0.02, 0.2)
    assert config.bulb_filter is None and config.uses_bulb_filter
    assert settings.function == "exp"
    assert settings.factor == -1.0


def test_ranges_must_match_gradient():
    with pytest.raises(ConfigError, match="ranges"):
        FractalConfig.from_dict(_blueprint(ranges=[0.0, 0.5]))


def test_invalid_stops_fail_on_load():
    with pytest.raises(ConfigError):
        FractalConfig.from_dict(_blueprint(stops=[1.0, 0.5, 0.0]))


def test_missing_reference_image(tmp_path):
    with pytest.raises(ConfigError, match="Reference image"):
        FractalConfig.from_dict(_blueprint(coloring="image", reference=str(tmp_path / "nope.png")))


@pytest.mark.parametrize("value", ["false", 0, 1, "yes"])
def test_bulb_filter_must_be_boolean(value):
    with pytest.raises(ConfigError, match="bulb_filter"):
        _blueprint(bulb_filter=value)


def test_bulb_filter_accepts_booleans():
    assert _blueprint(bulb_filter=False)["bulb_filter"] is False
    assert not FractalConfig.from_dict(_blueprint(bulb_filter=False)).uses_bulb_filter
    assert _blueprint(bulb_filter=None)["bulb_filter"] is None
