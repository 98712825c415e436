"""
Orbit iteration and registration policies.

``iterate`` runs the configured complex map from a start point and
decides, according to the job's :class:`RegisterPolicy`, whether the
visited points form an orbit worth registering. The returned value is
the number of valid points in ``orbit.points`` or ``-1`` when the orbit
is rejected.

Cycle detection uses exponential back-off: the current value is saved
whenever the step index is a power of two, and every other step is
compared against the saved value. An exact match means the orbit has
entered a cycle and will never escape.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np
from numba import njit

from orbitbrot.errors import ConfigError


class RegisterPolicy(str, Enum):
    ESCAPES = "escapes"
    ANTI = "anti"
    PRIMITIVE = "primitive"


_POLICY_ALIASES = {
    "escape": RegisterPolicy.ESCAPES,
    "escaped": RegisterPolicy.ESCAPES,
    "converged": RegisterPolicy.ANTI,
}


def resolve_policy(name: str) -> RegisterPolicy:
    key = name.strip().lower()
    if key in _POLICY_ALIASES:
        return _POLICY_ALIASES[key]
    try:
        return RegisterPolicy(key)
    except ValueError:
        choices = ", ".join(p.value for p in RegisterPolicy)
        raise ConfigError(f"Unknown register mode: {name!r} (choose from {choices})") from None


@dataclass
class Orbit:
    """Reusable point buffer owned by a single worker."""

    points: np.ndarray
    c: complex = 0j

    @classmethod
    def for_iterations(cls, iterations: int) -> "Orbit":
        return cls(points=np.zeros(max(int(iterations), 1), dtype=np.complex128))


# Outcomes of a raw iteration run.
CYCLE = 0
ESCAPED = 1
EXHAUSTED = 2


@njit(cache=False)
def is_in_bulb(cr: float, ci: float) -> bool:
    """Closed-form test for the main cardioid, the period-2 bulb and three satellites."""
    # Main cardioid.
    q = (cr - 0.25) * (cr - 0.25) + ci * ci
    if q * (q + (cr - 0.25)) < 0.25 * ci * ci:
        return True
    # Period-2 bulb.
    if (cr + 1.0) * (cr + 1.0) + ci * ci < 0.0625:
        return True
    # Left of the period-2 bulb.
    if (cr + 1.309) * (cr + 1.309) + ci * ci < 0.00345:
        return True
    # Top and bottom of the main cardioid.
    if (cr + 0.125) * (cr + 0.125) + (ci - 0.744) * (ci - 0.744) < 0.0088:
        return True
    if (cr + 0.125) * (cr + 0.125) + (ci + 0.744) * (ci + 0.744) < 0.0088:
        return True
    return False


def is_outside(z: complex, bailout: float) -> bool:
    """Bailout is the squared radius."""
    x, y = z.real, z.imag
    return x * x + y * y >= bailout


def run(z: complex, c: complex, orbit: Orbit, frac) -> Tuple[int, int]:
    """Iterate the map and report ``(outcome, index)``.

    Points are stored in ``orbit.points`` until the run ends by cycle,
    escape or exhaustion of the iteration cap.
    """
    func, coef, bailout = frac.func, frac.coef, frac.bailout
    points = orbit.points
    snapshot = 0j
    for i in range(frac.iterations):
        z = func(z, c, coef)
        if i > 1 and (i & (i - 1)) == 0:
            snapshot = z
        elif z == snapshot:
            return CYCLE, i
        if is_outside(z, bailout):
            return ESCAPED, i
        points[i] = z
    return EXHAUSTED, frac.iterations


def escaped(z: complex, c: complex, orbit: Orbit, frac) -> int:
    """Accept orbits that leave the bailout radius before the iteration cap."""
    if frac.bulb_filter and is_in_bulb(c.real, c.imag):
        return -1
    outcome, i = run(z, c, orbit, frac)
    if outcome == ESCAPED:
        return i
    return -1


def converged(z: complex, c: complex, orbit: Orbit, frac) -> int:
    """Accept orbits that stay bounded: cycles and runs that hit the cap."""
    if frac.bulb_filter and is_in_bulb(c.real, c.imag):
        return -1
    outcome, i = run(z, c, orbit, frac)
    if outcome == ESCAPED:
        return -1
    return i


def primitive(z: complex, c: complex, orbit: Orbit, frac) -> int:
    """Accept every orbit, escaping or not."""
    _, i = run(z, c, orbit, frac)
    return i


_POLICIES = {
    RegisterPolicy.ESCAPES: escaped,
    RegisterPolicy.ANTI: converged,
    RegisterPolicy.PRIMITIVE: primitive,
}


def iterate(z: complex, c: complex, orbit: Orbit, frac) -> int:
    orbit.c = c
    return _POLICIES[frac.policy](z, c, orbit, frac)
