"""
Complex maps iterated by the orbit engine.

Every map has the signature ``f(z, c, coef) -> z'`` and works on plain
Python ``complex`` scalars. Maps are selected by name through
:class:`ComplexMap` and resolved once when a job is built.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict

from orbitbrot.errors import ConfigError

MapFunc = Callable[[complex, complex, complex], complex]


class ComplexMap(str, Enum):
    QUADRATIC = "quadratic"
    COEFFICIENT = "coefficient"
    CUBIC = "cubic"
    BURNING_SHIP = "burning-ship"
    TRICORN = "tricorn"
    POWER = "power"

    @property
    def func(self) -> MapFunc:
        return _MAPS[self]

    @property
    def is_canonical(self) -> bool:
        """True for the plain z² + c map, the only one the bulb filter is valid for."""
        return self is ComplexMap.QUADRATIC


def quadratic(z: complex, c: complex, coef: complex) -> complex:
    return z * z + c


def coefficient(z: complex, c: complex, coef: complex) -> complex:
    return coef * z * z + coef * c


def cubic(z: complex, c: complex, coef: complex) -> complex:
    return z * z * z + c


def burning_ship(z: complex, c: complex, coef: complex) -> complex:
    z = complex(abs(z.real), abs(z.imag))
    return z * z + c


def tricorn(z: complex, c: complex, coef: complex) -> complex:
    z = z.conjugate()
    return z * z + c


def power(z: complex, c: complex, coef: complex) -> complex:
    # 0j raised to a complex power raises ZeroDivisionError; callers reject the sample.
    return z ** coef + c


_MAPS: Dict[ComplexMap, MapFunc] = {
    ComplexMap.QUADRATIC: quadratic,
    ComplexMap.COEFFICIENT: coefficient,
    ComplexMap.CUBIC: cubic,
    ComplexMap.BURNING_SHIP: burning_ship,
    ComplexMap.TRICORN: tricorn,
    ComplexMap.POWER: power,
}


def resolve_map(name: str) -> ComplexMap:
    try:
        return ComplexMap(name.strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in ComplexMap)
        raise ConfigError(f"Unknown map function: {name!r} (choose from {choices})") from None
