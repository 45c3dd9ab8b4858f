"""
Exceptions raised by the curve, helper and volatility engines.

- ConfigurationError: malformed inputs found before any numerical work
- ConvergenceError: a bootstrap or fit exhausted its iteration budget
- DomainError: a query outside the valid range of a structure
"""

from datetime import date
from typing import Optional


class BasisLibError(Exception):
    """Base exception for all basislib errors."""


class ConfigurationError(BasisLibError, ValueError):
    """Inputs are inconsistent (unsorted nodes, unknown ids, cycles, ...)."""


class DomainError(BasisLibError, ValueError):
    """Query outside the range a structure can answer."""


class ConvergenceError(BasisLibError, RuntimeError):
    """
    Root-finding or optimisation did not converge.

    Attributes:
        pillar_date: Pillar of the offending helper (if any)
        residual: Last residual seen by the solver
    """

    def __init__(
        self,
        message: str,
        pillar_date: Optional[date] = None,
        residual: Optional[float] = None
    ):
        super().__init__(message)
        self.pillar_date = pillar_date
        self.residual = residual


__all__ = [
    "BasisLibError",
    "ConfigurationError",
    "DomainError",
    "ConvergenceError",
]
