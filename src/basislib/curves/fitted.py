"""
Fitted bond discount curves.

A parametric discount function d(t; x) is fitted to a set of bond clean
prices by minimising the weighted squared pricing errors:

    cost(x) = sum_i w_i * (P_model_i(x) - P_market_i)^2

Fitting methods (d(0) = 1 is imposed by construction):
- ExponentialSplines: d(t) = sum_{i=0}^{8} c_i exp(-kappa (i+1) t)
- SimplePolynomial: d(t) = 1 + sum_{i=1}^{n} a_i t^i
- NelsonSiegel: zero rate with level, slope and one hump
- Svensson: Nelson-Siegel plus a second hump
- CubicBSplines: d(t) = sum_i c_i B_i(t) on given knots

With a base curve the fit is relative: D(t) = D_base(t) * d(t; x).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.interpolate import BSpline

from ..conventions import DayCount, year_fraction
from ..exceptions import ConfigurationError
from ..market.quotes import Handle, LazyObject, as_handle, version_of
from .base import YieldTermStructure
from .helpers import FixedRateBondHelper
from .optimization import EndCriteria, OptimizationMethod, create_optimizer

logger = logging.getLogger(__name__)


# =============================================================================
# Fitting methods
# =============================================================================

class FittingMethod(ABC):
    """Parametric discount function d(t; x)."""

    name: str = ""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of free parameters."""

    @abstractmethod
    def discount(self, x: np.ndarray, t: float) -> float:
        """Discount factor at time t for parameters x."""

    @abstractmethod
    def guess(self) -> np.ndarray:
        """Default starting parameters."""


class ExponentialSplinesFitting(FittingMethod):
    """
    Exponential splines (Li, DeWetering, Lucas, Brenner, Shapiro).

    Parameters x = [c_1, ..., c_8, kappa]; c_0 = 1 - sum(c_1..c_8).
    """

    name = "ExponentialSplines"
    N_COEFFICIENTS = 9

    @property
    def size(self) -> int:
        return self.N_COEFFICIENTS

    def discount(self, x, t):
        kappa = x[-1]
        coeffs = np.concatenate(([1.0 - np.sum(x[:-1])], x[:-1]))
        powers = np.exp(-kappa * t * np.arange(1, self.N_COEFFICIENTS + 1))
        return float(np.dot(coeffs, powers))

    def guess(self):
        x = np.zeros(self.size)
        x[-1] = 0.03
        return x


class SimplePolynomialFitting(FittingMethod):
    """Polynomial discount function of a given degree."""

    name = "SimplePolynomial"

    def __init__(self, degree: int = 3):
        if degree < 1:
            raise ConfigurationError(f"Polynomial degree must be at least 1, got {degree}")
        self.degree = degree

    @property
    def size(self) -> int:
        return self.degree

    def discount(self, x, t):
        powers = t ** np.arange(1, self.degree + 1)
        return float(1.0 + np.dot(x, powers))

    def guess(self):
        x = np.zeros(self.size)
        x[0] = -0.03
        return x


def _ns_loadings(t: float, kappa: float):
    """Nelson-Siegel slope and hump loadings at time t."""
    kappa = max(abs(kappa), 1e-8)
    kt = kappa * t
    if kt < 1e-10:
        return 1.0, 0.0
    decay = np.exp(-kt)
    slope = (1.0 - decay) / kt
    return slope, slope - decay


class NelsonSiegelFitting(FittingMethod):
    """
    Nelson-Siegel zero curve, d(t) = exp(-z(t) t) with

        z(t) = b0 + b1 * (1 - e^{-k t}) / (k t) + b2 * ((1 - e^{-k t}) / (k t) - e^{-k t})

    Parameters x = [b0, b1, b2, k].
    """

    name = "NelsonSiegel"

    @property
    def size(self) -> int:
        return 4

    def zero_rate(self, x, t: float) -> float:
        b0, b1, b2, kappa = x
        slope, hump = _ns_loadings(t, kappa)
        return b0 + b1 * slope + b2 * hump

    def discount(self, x, t):
        return float(np.exp(-self.zero_rate(x, t) * t))

    def guess(self):
        return np.array([0.04, -0.02, 0.01, 0.5])


class SvenssonFitting(NelsonSiegelFitting):
    """
    Svensson extension: adds b3 * hump(k2) to the Nelson-Siegel zero rate.

    Parameters x = [b0, b1, b2, k1, b3, k2].
    """

    name = "Svensson"

    @property
    def size(self) -> int:
        return 6

    def zero_rate(self, x, t: float) -> float:
        b0, b1, b2, k1, b3, k2 = x
        slope1, hump1 = _ns_loadings(t, k1)
        _, hump2 = _ns_loadings(t, k2)
        return b0 + b1 * slope1 + b2 * hump1 + b3 * hump2

    def guess(self):
        return np.array([0.04, -0.02, 0.01, 0.5, 0.01, 0.2])


class CubicBSplinesFitting(FittingMethod):
    """
    Cubic B-spline discount function on a knot vector.

    One coefficient is eliminated to impose d(0) = 1, leaving
    len(knots) - 5 free parameters.

    Args:
        knots: Non-decreasing knot times (at least 8)
    """

    name = "CubicBSplines"
    DEGREE = 3

    def __init__(self, knots: Sequence[float]):
        knots = np.asarray(knots, dtype=np.float64)
        if len(knots) < 2 * (self.DEGREE + 1):
            raise ConfigurationError(
                f"CubicBSplines needs at least {2 * (self.DEGREE + 1)} knots, got {len(knots)}"
            )
        if np.any(np.diff(knots) < 0):
            raise ConfigurationError("B-spline knots must be non-decreasing")
        self.knots = knots
        self.n_basis = len(knots) - self.DEGREE - 1
        at_zero = np.array([
            BSpline(knots, np.eye(self.n_basis)[i], self.DEGREE, extrapolate=True)(0.0)
            for i in range(self.n_basis)
        ])
        self._constrained = int(np.argmax(np.abs(at_zero)))
        if abs(at_zero[self._constrained]) < 1e-14:
            raise ConfigurationError("No B-spline basis function is supported at t = 0")
        self._at_zero = at_zero

    @property
    def size(self) -> int:
        return self.n_basis - 1

    def coefficients(self, x) -> np.ndarray:
        k = self._constrained
        coeffs = np.insert(np.asarray(x, dtype=np.float64), k, 0.0)
        others = np.dot(coeffs, self._at_zero)
        coeffs[k] = (1.0 - others) / self._at_zero[k]
        return coeffs

    def discount(self, x, t):
        spline = BSpline(self.knots, self.coefficients(x), self.DEGREE, extrapolate=True)
        return float(spline(t))

    def guess(self):
        # Greville abscissae of a 3% flat curve
        greville = np.array([
            self.knots[i + 1:i + self.DEGREE + 1].mean() for i in range(self.n_basis)
        ])
        return np.delete(np.exp(-0.03 * greville), self._constrained)


def create_fitting_method(
    method: Union[str, FittingMethod],
    knots: Optional[Sequence[float]] = None
) -> FittingMethod:
    """
    Resolve a fitting method from an instance or identifier.

    Args:
        method: FittingMethod or one of "ExponentialSplines", "SimplePolynomial",
            "NelsonSiegel", "Svensson", "CubicBSplines"
        knots: Knot times, required for "CubicBSplines"
    """
    if isinstance(method, FittingMethod):
        return method
    key = method.replace("_", "").replace(" ", "").lower()
    if key == "exponentialsplines":
        return ExponentialSplinesFitting()
    if key == "simplepolynomial":
        return SimplePolynomialFitting()
    if key == "nelsonsiegel":
        return NelsonSiegelFitting()
    if key == "svensson":
        return SvenssonFitting()
    if key == "cubicbsplines":
        if knots is None:
            raise ConfigurationError("CubicBSplines fitting needs knots")
        return CubicBSplinesFitting(knots)
    raise ConfigurationError(f"Unknown fitting method: {method}")


# =============================================================================
# Curve
# =============================================================================

@dataclass(frozen=True)
class _BondData:
    """Precomputed flows of one bond for the objective."""
    settlement_time: float
    times: np.ndarray
    amounts: np.ndarray
    accrued: float
    market_price: float
    weight: float


@dataclass(frozen=True)
class FittedSnapshot:
    """Result of one fit."""
    solution: np.ndarray
    number_of_iterations: int
    number_of_evaluations: int
    minimum_cost: float
    converged: bool
    bonds: tuple


class FittedBondDiscountCurve(LazyObject, YieldTermStructure):
    """
    Discount curve fitted to bond clean prices.

    Refits lazily when any bond quote or the base curve changes version.

    Args:
        reference_date: Curve reference date
        bond_helpers: FixedRateBondHelper instances
        day_count: Curve time axis day count
        fitting_method: FittingMethod instance or identifier
        weights: Per-bond weights (default: inverse time to maturity)
        optimization_method: OptimizationMethod instance or identifier
        accuracy: Optimiser tolerance
        max_evaluations: Optimiser evaluation budget
        guess: Starting parameters (default: the fitting method's guess)
        simplex_lambda: Initial simplex size when using the simplex
        max_stationary_state_iterations: Stationary iterations before stopping
        base_curve: Optional curve the fit is relative to
        knots: Knot times for CubicBSplines
    """

    def __init__(
        self,
        reference_date: date,
        bond_helpers: Sequence[FixedRateBondHelper],
        day_count: DayCount = DayCount.ACT_365,
        fitting_method: Union[str, FittingMethod] = "NelsonSiegel",
        weights: Optional[Sequence[float]] = None,
        optimization_method: Union[str, OptimizationMethod, None] = None,
        accuracy: float = 1e-10,
        max_evaluations: int = 10000,
        guess: Optional[Sequence[float]] = None,
        simplex_lambda: Optional[float] = None,
        max_stationary_state_iterations: int = 100,
        base_curve: Any = None,
        knots: Optional[Sequence[float]] = None
    ):
        LazyObject.__init__(self)
        YieldTermStructure.__init__(self, reference_date, day_count, extrapolate=True)
        if not bond_helpers:
            raise ConfigurationError("Need at least one bond to fit a curve")
        self.fitting_method = create_fitting_method(fitting_method, knots)
        if len(bond_helpers) < self.fitting_method.size:
            logger.warning(
                "%d bonds for %d parameters of %s: fit is underdetermined",
                len(bond_helpers), self.fitting_method.size, self.fitting_method.name
            )
        self.optimization_method = create_optimizer(optimization_method, simplex_lambda)
        self.end_criteria = EndCriteria(
            max_evaluations=max_evaluations,
            max_stationary_state_iterations=max_stationary_state_iterations,
            accuracy=accuracy,
        )
        if weights is not None and len(weights) != len(bond_helpers):
            raise ConfigurationError(
                f"Got {len(weights)} weights for {len(bond_helpers)} bonds"
            )
        if guess is not None and len(guess) != self.fitting_method.size:
            raise ConfigurationError(
                f"{self.fitting_method.name} takes {self.fitting_method.size} parameters, "
                f"guess has {len(guess)}"
            )
        self.weights = None if weights is None else np.asarray(weights, dtype=np.float64)
        self.guess = None if guess is None else np.asarray(guess, dtype=np.float64)
        self.base_curve: Handle = as_handle(base_curve)

        self.helpers: List[FixedRateBondHelper] = []
        for helper in bond_helpers:
            if not isinstance(helper, FixedRateBondHelper):
                raise ConfigurationError(f"{helper!r} is not a bond helper")
            helper.initialize(reference_date)
            self.helpers.append(helper)

    # ------------------------------------------------------------------
    # Lazy snapshot
    # ------------------------------------------------------------------

    def dependencies(self) -> List[Handle]:
        return [] if self.base_curve.empty else [self.base_curve]

    def _state_key(self):
        return (
            tuple(version_of(h.quote_handle) for h in self.helpers),
            None if self.base_curve.empty else self.base_curve.version,
        )

    def _model_discount(self, x: np.ndarray, t: float) -> float:
        d = self.fitting_method.discount(x, t)
        if not self.base_curve.empty:
            d *= self.base_curve.link.discount(t, extrapolate=True)
        return d

    def _bond_data(self) -> List[_BondData]:
        rows = []
        for i, helper in enumerate(self.helpers):
            bond = helper.bond
            settlement = helper.settlement_date
            flows = bond.remaining_cashflows(settlement)
            times = np.array([year_fraction(self.reference_date, d, self.day_count) for d, _ in flows])
            if self.weights is not None:
                weight = float(self.weights[i])
            else:
                weight = 1.0 / max(times[-1], 1.0 / 365.0)
            rows.append(_BondData(
                settlement_time=year_fraction(self.reference_date, settlement, self.day_count),
                times=times,
                amounts=np.array([a for _, a in flows]),
                accrued=bond.accrued_amount(settlement),
                market_price=helper.quote,
                weight=weight,
            ))
        return rows

    def _model_price(self, x: np.ndarray, bond: _BondData) -> float:
        discounts = np.array([self._model_discount(x, t) for t in bond.times])
        dirty = np.dot(bond.amounts, discounts) / self._model_discount(x, bond.settlement_time)
        return dirty - bond.accrued

    def _perform_calculations(self) -> FittedSnapshot:
        bonds = self._bond_data()
        sqrt_w = np.sqrt([b.weight for b in bonds])

        def residuals(x: np.ndarray) -> np.ndarray:
            errors = np.array([self._model_price(x, b) - b.market_price for b in bonds])
            return sqrt_w * errors

        x0 = self.guess if self.guess is not None else self.fitting_method.guess()
        result = self.optimization_method.minimize(residuals, x0, self.end_criteria)
        logger.debug(
            "%s fit with %s: cost %.3e after %d iterations (%s)",
            self.fitting_method.name, self.optimization_method.name,
            result.cost, result.iterations, result.message
        )
        if not result.converged:
            logger.warning(
                "%s fit stopped before convergence: %s", self.fitting_method.name, result.message
            )
        logger.info(
            "Fitted %s curve to %d bonds (cost %.3e)", self.fitting_method.name, len(bonds), result.cost
        )
        return FittedSnapshot(
            solution=result.x,
            number_of_iterations=result.iterations,
            number_of_evaluations=result.evaluations,
            minimum_cost=result.cost,
            converged=result.converged,
            bonds=tuple(bonds),
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def solution(self) -> np.ndarray:
        return self.snapshot().solution.copy()

    @property
    def number_of_iterations(self) -> int:
        return self.snapshot().number_of_iterations

    @property
    def minimum_cost(self) -> float:
        return self.snapshot().minimum_cost

    @property
    def converged(self) -> bool:
        """False when the optimiser stopped on its evaluation budget."""
        return self.snapshot().converged

    def fit_report(self) -> pd.DataFrame:
        """Market vs model clean price of every bond."""
        snap = self.snapshot()
        rows = []
        for helper, bond in zip(self.helpers, snap.bonds):
            model = self._model_price(snap.solution, bond)
            rows.append({
                "maturity_date": helper.bond.maturity_date,
                "coupon": helper.bond.coupon_rate,
                "market_price": bond.market_price,
                "model_price": model,
                "error": model - bond.market_price,
                "weight": bond.weight,
            })
        return pd.DataFrame(rows)

    # ------------------------------------------------------------------
    # Curve queries
    # ------------------------------------------------------------------

    def _discount_impl(self, t: float) -> float:
        return self._model_discount(self.snapshot().solution, t)

    def __repr__(self) -> str:
        return (
            f"FittedBondDiscountCurve({self.reference_date}, method={self.fitting_method.name}, "
            f"bonds={len(self.helpers)})"
        )


__all__ = [
    "FittingMethod",
    "ExponentialSplinesFitting",
    "SimplePolynomialFitting",
    "NelsonSiegelFitting",
    "SvenssonFitting",
    "CubicBSplinesFitting",
    "create_fitting_method",
    "FittedSnapshot",
    "FittedBondDiscountCurve",
]
