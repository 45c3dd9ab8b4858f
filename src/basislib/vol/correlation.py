"""
Correlation structures between forward rates of different fixing times.

The tenor volatility transforms recombine base-tenor volatilities with
rho(t1, t2), the correlation between forward rates fixing at t1 and t2.

Variants:
- TwoParameterCorrelation: rho = rho_inf + (1 - rho_inf) * exp(-beta * |t1 - t2|)
- ConstantCorrelation: rho for every pair of distinct times

Parameters may be numbers, quotes or callables of the option time, so the
decay can vary along the expiry axis.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Union

import numpy as np

from ..exceptions import ConfigurationError, DomainError
from ..market.quotes import Handle, SimpleQuote, version_of

Parameter = Union[float, SimpleQuote, Handle, Callable[[float], float]]


def _parameter_value(param: Parameter, t: float) -> float:
    if isinstance(param, SimpleQuote):
        return param.value
    if isinstance(param, Handle):
        return param.link.value
    if callable(param):
        return float(param(t))
    return float(param)


class CorrelationKind(Enum):
    """Closed set of correlation structures."""
    TWO_PARAMETER = "TwoParameter"
    CONSTANT = "Constant"


class CorrelationStructure(ABC):
    """
    rho(t1, t2) between forward rates fixing at t1 and t2.

    Implementations return the raw model value; correlation() validates
    that it is a correlation.
    """

    kind: CorrelationKind

    @abstractmethod
    def _correlation_impl(self, t1: float, t2: float, expiry: float) -> float:
        """Model correlation, unchecked."""

    def correlation(self, t1: float, t2: float, expiry: float = 0.0) -> float:
        """
        Correlation between the forwards fixing at t1 and t2.

        Args:
            t1: First fixing time (years)
            t2: Second fixing time (years)
            expiry: Option time at which time-dependent parameters are read

        Raises:
            DomainError: If the model value lies outside [-1, 1]
        """
        if t1 == t2:
            return 1.0
        rho = float(self._correlation_impl(t1, t2, expiry))
        if not -1.0 <= rho <= 1.0 or np.isnan(rho):
            raise DomainError(
                f"{type(self).__name__} gives correlation {rho} outside [-1, 1] "
                f"for times {t1:.4f}, {t2:.4f}"
            )
        return rho

    def matrix(self, times, expiry: float = 0.0) -> np.ndarray:
        """Correlation matrix of a set of fixing times."""
        n = len(times)
        rho = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                rho[i, j] = rho[j, i] = self.correlation(times[i], times[j], expiry)
        return rho

    @property
    def version(self) -> Any:
        return 0


class TwoParameterCorrelation(CorrelationStructure):
    """
    Exponentially decaying correlation towards a long-run level.

    Args:
        rho_inf: Correlation as |t1 - t2| grows
        beta: Decay rate per year of separation
    """

    kind = CorrelationKind.TWO_PARAMETER

    def __init__(self, rho_inf: Parameter, beta: Parameter):
        self.rho_inf = rho_inf
        self.beta = beta

    def _correlation_impl(self, t1, t2, expiry):
        rho_inf = _parameter_value(self.rho_inf, expiry)
        beta = _parameter_value(self.beta, expiry)
        return rho_inf + (1.0 - rho_inf) * np.exp(-beta * abs(t1 - t2))

    @property
    def version(self):
        return (version_of(self.rho_inf), version_of(self.beta))


class ConstantCorrelation(CorrelationStructure):
    """Same correlation between any two distinct fixing times."""

    kind = CorrelationKind.CONSTANT

    def __init__(self, rho: Parameter):
        self.rho = rho

    def _correlation_impl(self, t1, t2, expiry):
        return _parameter_value(self.rho, expiry)

    @property
    def version(self):
        return version_of(self.rho)


_CORRELATIONS = {
    CorrelationKind.TWO_PARAMETER: TwoParameterCorrelation,
    CorrelationKind.CONSTANT: ConstantCorrelation,
}


def create_correlation(kind: Union[str, CorrelationKind], *args, **kwargs) -> CorrelationStructure:
    """
    Build a correlation structure from its kind.

    Args:
        kind: CorrelationKind or its name ("TwoParameter", "Constant")
        *args, **kwargs: Constructor arguments of the variant
    """
    if not isinstance(kind, CorrelationKind):
        key = str(kind).replace("_", "").replace(" ", "").lower()
        matches = [k for k in CorrelationKind if k.value.lower() == key]
        if not matches:
            raise ConfigurationError(f"Unknown correlation structure: {kind}")
        kind = matches[0]
    return _CORRELATIONS[kind](*args, **kwargs)


__all__ = [
    "CorrelationKind",
    "CorrelationStructure",
    "TwoParameterCorrelation",
    "ConstantCorrelation",
    "create_correlation",
]
