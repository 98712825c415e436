from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from orbitbrot.coloring import Coloring, ColoringMode, Gradient, RGB, parse_color, resolve_mode
from orbitbrot.errors import ConfigError
from orbitbrot.geometry import Plane, resolve_plane
from orbitbrot.maps import ComplexMap, resolve_map
from orbitbrot.orbit import RegisterPolicy, resolve_policy


class StartMode(str, Enum):
    ZERO = "zero"
    RANDOM = "random"
    C = "c"


SCALING_FUNCTIONS = ("exp", "log", "sqrt", "lin")
IMAGE_FORMATS = ("png", "jpg")

_DEFAULT_GRADIENT = [[0.0, 0.0, 1.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]]

_DEFAULTS: Dict[str, Any] = {
    "bailout": 4.0,
    "tries": 1.0,
    "coefficient": [1.0, 0.0],
    "map": "quadratic",
    "plane": "zrzi",
    "register": "escapes",
    "coloring": "iteration",
    "gradient": _DEFAULT_GRADIENT,
    "stops": None,
    "base_color": [0.0, 0.0, 0.0],
    "ranges": None,
    "zoom": 1.0,
    "offset": [0.0, 0.0],
    "theta": 0.0,
    "theta2": 0.0,
    "seed": 0,
    "path_points": 64,
    "path_level": 1,
    "threshold": 0,
    "start": "zero",
    "sample_radius": 2.0,
    "bulb_filter": None,
    "importance": False,
    "reference": None,
    "workers": None,
    "function": "exp",
    "factor": -1.0,
    "exposure": 1.0,
    "output": "out",
    "format": "png",
    "cache_histograms": False,
}


def load_config(config_path: str) -> Dict[str, Any]:
    with open(config_path, "r", encoding="utf-8") as f:
        try:
            cfg = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Blueprint {config_path} is not valid JSON: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError("Blueprint JSON must be an object.")
    return cfg


def parse_complex(value: Any) -> complex:
    """Accept ``[re, im]``, a number or a string such as ``'0.3+0.5j'``."""
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ConfigError(f"Complex values must be [re, im], got {value!r}")
        return complex(float(value[0]), float(value[1]))
    if isinstance(value, str):
        try:
            return complex(value.strip().replace(" ", ""))
        except ValueError as e:
            raise ConfigError(f"Invalid complex value: {value!r}") from e
    if isinstance(value, (int, float, complex)):
        return complex(value)
    raise ConfigError(f"Invalid complex value: {value!r}")


def normalise_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    required = ["width", "height", "iterations"]
    for r in required:
        if r not in cfg:
            raise ConfigError(f"Missing config field: {r}")

    out = dict(_DEFAULTS)
    out.update({k: v for k, v in cfg.items() if v is not None or k in ("bulb_filter", "workers")})

    try:
        out["width"] = int(cfg["width"])
        out["height"] = int(cfg["height"])
        out["iterations"] = int(cfg["iterations"])
        out["bailout"] = float(out["bailout"])
        out["tries"] = float(out["tries"])
        out["zoom"] = float(out["zoom"])
        out["theta"] = float(out["theta"])
        out["theta2"] = float(out["theta2"])
        out["seed"] = int(out["seed"])
        out["path_points"] = int(out["path_points"])
        out["path_level"] = int(out["path_level"])
        out["threshold"] = int(out["threshold"])
        out["sample_radius"] = float(out["sample_radius"])
        out["factor"] = float(out["factor"])
        out["exposure"] = float(out["exposure"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric config field: {e}") from e

    if out["width"] <= 0 or out["height"] <= 0:
        raise ConfigError("width/height must be positive.")
    if out["iterations"] < 0:
        raise ConfigError("iterations must not be negative.")
    if out["tries"] < 0:
        raise ConfigError("tries must not be negative.")
    if out["path_level"] < 1 or out["path_points"] < 1:
        raise ConfigError("path_level and path_points must be at least 1.")
    if out["bulb_filter"] is not None and not isinstance(out["bulb_filter"], bool):
        raise ConfigError(f"bulb_filter must be true, false or null, got {out['bulb_filter']!r}")
    if out["workers"] is None:
        out["workers"] = os.cpu_count() or 1
    out["workers"] = int(out["workers"])
    if out["workers"] <= 0:
        raise ConfigError("workers must be positive.")

    if str(out["function"]).lower() not in SCALING_FUNCTIONS:
        raise ConfigError(f"Invalid color scaling function: {out['function']!r} (choose from {', '.join(SCALING_FUNCTIONS)})")
    out["function"] = str(out["function"]).lower()
    if str(out["format"]).lower() not in IMAGE_FORMATS:
        raise ConfigError(f"Invalid image format: {out['format']!r} (choose from {', '.join(IMAGE_FORMATS)})")
    out["format"] = str(out["format"]).lower()
    return out


@dataclass(frozen=True)
class FractalConfig:
    """Immutable description of one sampling job.

    Only plain values and enum tags are stored, so the object pickles into
    worker processes; each worker resolves it into a live :class:`Fractal`.
    """

    width: int
    height: int
    iterations: int
    bailout: float = 4.0
    coefficient: complex = 1 + 0j
    map: ComplexMap = ComplexMap.QUADRATIC
    plane: Plane = Plane.ZRZI
    register: RegisterPolicy = RegisterPolicy.ESCAPES
    coloring: ColoringMode = ColoringMode.ITERATION
    gradient: Tuple[RGB, ...] = tuple(tuple(c) for c in _DEFAULT_GRADIENT)
    stops: Optional[Tuple[float, ...]] = None
    base_color: RGB = (0.0, 0.0, 0.0)
    ranges: Optional[Tuple[float, ...]] = None
    zoom: float = 1.0
    offset: complex = 0j
    theta: float = 0.0
    theta2: float = 0.0
    tries: float = 1.0
    seed: int = 0
    path_points: int = 64
    path_level: int = 1
    threshold: int = 0
    start: StartMode = StartMode.ZERO
    sample_radius: float = 2.0
    bulb_filter: Optional[bool] = None
    importance: bool = False
    reference: Optional[str] = None
    workers: int = 1

    @property
    def total_tries(self) -> int:
        return int(self.tries * self.width * self.height)

    @property
    def uses_bulb_filter(self) -> bool:
        if self.bulb_filter is None:
            return self.map.is_canonical
        return bool(self.bulb_filter)

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "FractalConfig":
        """Resolve a normalised blueprint dict. Unknown selectors raise ConfigError."""
        coloring = resolve_mode(str(cfg.get("coloring", "iteration")))
        if coloring is ColoringMode.IMAGE and not cfg.get("reference"):
            raise ConfigError("The image coloring mode needs a reference image.")
        stops = cfg.get("stops")
        ranges = cfg.get("ranges")
        config = cls(
            width=int(cfg["width"]),
            height=int(cfg["height"]),
            iterations=int(cfg["iterations"]),
            bailout=float(cfg.get("bailout", 4.0)),
            coefficient=parse_complex(cfg.get("coefficient", 1.0)),
            map=resolve_map(str(cfg.get("map", "quadratic"))),
            plane=resolve_plane(str(cfg.get("plane", "zrzi"))),
            register=resolve_policy(str(cfg.get("register", "escapes"))),
            coloring=coloring,
            gradient=tuple(parse_color(c) for c in cfg.get("gradient", _DEFAULT_GRADIENT)),
            stops=tuple(float(s) for s in stops) if stops is not None else None,
            base_color=parse_color(cfg.get("base_color", [0.0, 0.0, 0.0])),
            ranges=tuple(float(r) for r in ranges) if ranges is not None else None,
            zoom=float(cfg.get("zoom", 1.0)),
            offset=parse_complex(cfg.get("offset", 0.0)),
            theta=float(cfg.get("theta", 0.0)),
            theta2=float(cfg.get("theta2", 0.0)),
            tries=float(cfg.get("tries", 1.0)),
            seed=int(cfg.get("seed", 0)),
            path_points=int(cfg.get("path_points", 64)),
            path_level=int(cfg.get("path_level", 1)),
            threshold=int(cfg.get("threshold", 0)),
            start=_resolve_start(str(cfg.get("start", "zero"))),
            sample_radius=float(cfg.get("sample_radius", 2.0)),
            bulb_filter=cfg.get("bulb_filter"),
            importance=bool(cfg.get("importance", False)),
            reference=cfg.get("reference"),
            workers=int(cfg.get("workers") or 1),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check the gradient, ranges and reference image without sampling."""
        gradient = Gradient(self.gradient, self.stops, self.base_color)
        Coloring(self.coloring, gradient, self.base_color, self.ranges)
        if self.reference and not os.path.isfile(self.reference):
            raise ConfigError(f"Reference image not found: {self.reference}")

    def describe(self) -> Dict[str, Any]:
        """Flat JSON-friendly view, used for logging and the run manifest."""
        out = {}
        for k, v in asdict(self).items():
            if isinstance(v, Enum):
                v = v.value
            elif isinstance(v, complex):
                v = [v.real, v.imag]
            out[k] = v
        return out


def _resolve_start(name: str) -> StartMode:
    try:
        return StartMode(name.strip().lower())
    except ValueError:
        choices = ", ".join(s.value for s in StartMode)
        raise ConfigError(f"Unknown start mode: {name!r} (choose from {choices})") from None


@dataclass(frozen=True)
class PlotSettings:
    function: str = "exp"
    factor: float = -1.0
    exposure: float = 1.0
    output: str = "out"
    format: str = "png"
    cache_histograms: bool = False

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "PlotSettings":
        return cls(
            function=str(cfg.get("function", "exp")),
            factor=float(cfg.get("factor", -1.0)),
            exposure=float(cfg.get("exposure", 1.0)),
            output=str(cfg.get("output", "out")),
            format=str(cfg.get("format", "png")),
            cache_histograms=bool(cfg.get("cache_histograms", False)),
        )
