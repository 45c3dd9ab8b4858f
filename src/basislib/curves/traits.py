"""
Curve traits: what quantity an interpolated curve stores at its nodes.

- Discount: discount factors, D(t) read directly from the interpolant
- ZeroYield: continuously compounded zero rates, D(t) = exp(-z(t) * t)
- ForwardRate: instantaneous forwards, D(t) = exp(-integral of f from 0 to t)

Traits are stateless strategies selected from a lookup table, so any trait
combines with any interpolator.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Union

import numpy as np

from ..exceptions import ConfigurationError
from .interpolation import Interpolator


class TraitKind(Enum):
    """Closed set of trait identifiers."""
    DISCOUNT = "Discount"
    ZERO_YIELD = "ZeroYield"
    FORWARD_RATE = "ForwardRate"

    @classmethod
    def parse(cls, value: Union[str, "TraitKind"]) -> "TraitKind":
        if isinstance(value, cls):
            return value
        key = str(value).replace("_", "").replace(" ", "").upper()
        for member in cls:
            if key in (member.value.upper(), member.name.replace("_", "")):
                return member
        raise ConfigurationError(f"Unknown curve traits: {value}")


class Traits(ABC):
    """Mapping between node values and discount factors."""

    kind: TraitKind

    @abstractmethod
    def discount(self, interpolator: Interpolator, t: float) -> float:
        """Discount factor at t implied by the fitted interpolant."""

    @abstractmethod
    def value_from_rate(self, rate: float, t: float) -> float:
        """Node value equivalent to a continuously compounded zero rate."""

    def initial_value(self, data: np.ndarray) -> float:
        """Value of the t=0 node given the remaining node values."""
        return float(data[1]) if len(data) > 1 else 0.0

    def validate(self, data: np.ndarray) -> None:
        """Check node values are admissible for this trait."""


class DiscountTraits(Traits):
    kind = TraitKind.DISCOUNT

    def discount(self, interpolator: Interpolator, t: float) -> float:
        return interpolator.interpolate(t)

    def value_from_rate(self, rate: float, t: float) -> float:
        return float(np.exp(-rate * t))

    def initial_value(self, data: np.ndarray) -> float:
        return 1.0

    def validate(self, data: np.ndarray) -> None:
        if abs(data[0] - 1.0) > 1e-12:
            raise ConfigurationError(f"First discount factor must be 1.0, got {data[0]}")
        if np.any(data <= 0):
            raise ConfigurationError("Discount factors must be positive")


class ZeroYieldTraits(Traits):
    kind = TraitKind.ZERO_YIELD

    def discount(self, interpolator: Interpolator, t: float) -> float:
        return float(np.exp(-interpolator.interpolate(t) * t))

    def value_from_rate(self, rate: float, t: float) -> float:
        return rate


class ForwardRateTraits(Traits):
    kind = TraitKind.FORWARD_RATE

    def discount(self, interpolator: Interpolator, t: float) -> float:
        return float(np.exp(-interpolator.primitive(t)))

    def value_from_rate(self, rate: float, t: float) -> float:
        return rate


_TRAITS: Dict[TraitKind, Traits] = {
    TraitKind.DISCOUNT: DiscountTraits(),
    TraitKind.ZERO_YIELD: ZeroYieldTraits(),
    TraitKind.FORWARD_RATE: ForwardRateTraits(),
}


def get_traits(kind: Union[str, TraitKind]) -> Traits:
    """Look up the traits strategy for an identifier."""
    return _TRAITS[TraitKind.parse(kind)]


__all__ = [
    "TraitKind",
    "Traits",
    "DiscountTraits",
    "ZeroYieldTraits",
    "ForwardRateTraits",
    "get_traits",
]
