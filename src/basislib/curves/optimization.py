"""
Optimisation strategies for parametric curve fitting.

Every optimiser minimises a sum of squared residuals through the same
contract:

    minimize(residuals, x0, end_criteria) -> OptimizationResult

where residuals(x) returns a vector. The curve-fitting code never depends
on which optimiser is used.

Available strategies (all backed by scipy.optimize):
- Simplex: Nelder-Mead with an initial simplex of size `lambda`
- LevenbergMarquardt: least_squares(method="lm")
- BFGS: quasi-Newton on the summed squares
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Union

import numpy as np
from scipy.optimize import least_squares, minimize

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Residuals = Callable[[np.ndarray], np.ndarray]


@dataclass
class EndCriteria:
    """
    Stopping rules for an optimisation.

    Attributes:
        max_evaluations: Cap on objective evaluations
        max_stationary_state_iterations: Stop after this many iterations
            without improvement of the best cost
        accuracy: Tolerance on parameters and cost
    """
    max_evaluations: int = 10000
    max_stationary_state_iterations: int = 100
    accuracy: float = 1e-10


@dataclass
class OptimizationResult:
    """Outcome of a minimisation."""
    x: np.ndarray
    cost: float
    iterations: int
    evaluations: int
    converged: bool
    message: str = ""


def _sum_of_squares(residuals: Residuals) -> Callable[[np.ndarray], float]:
    def cost(x: np.ndarray) -> float:
        r = residuals(x)
        value = float(np.dot(r, r))
        return value if np.isfinite(value) else 1e100
    return cost


class OptimizationMethod(ABC):
    """Strategy interface for least-squares minimisation."""

    name: str = ""

    @abstractmethod
    def minimize(
        self,
        residuals: Residuals,
        x0: np.ndarray,
        end_criteria: EndCriteria
    ) -> OptimizationResult:
        """Minimise sum(residuals(x)**2) starting at x0."""


class _StationaryStop:
    """Callback stopping a scipy run once the best cost stops improving."""

    def __init__(self, cost: Callable[[np.ndarray], float], max_stationary: int, accuracy: float):
        self.cost = cost
        self.max_stationary = max_stationary
        self.accuracy = accuracy
        self.best = np.inf
        self.stationary = 0
        self.iterations = 0

    def __call__(self, xk: np.ndarray) -> None:
        self.iterations += 1
        value = self.cost(xk)
        if value < self.best - self.accuracy:
            self.best = value
            self.stationary = 0
        else:
            self.stationary += 1
        if self.stationary >= self.max_stationary:
            raise StopIteration


class Simplex(OptimizationMethod):
    """
    Nelder-Mead simplex.

    Args:
        lambda_: Edge length of the initial simplex around the guess
    """

    name = "Simplex"

    def __init__(self, lambda_: float = 0.5):
        if lambda_ <= 0:
            raise ConfigurationError(f"Simplex lambda must be positive, got {lambda_}")
        self.lambda_ = lambda_

    def minimize(self, residuals, x0, end_criteria):
        x0 = np.asarray(x0, dtype=np.float64)
        cost = _sum_of_squares(residuals)
        simplex = np.vstack([x0] + [x0 + self.lambda_ * e for e in np.eye(len(x0))])
        stop = _StationaryStop(
            cost, end_criteria.max_stationary_state_iterations, end_criteria.accuracy
        )
        result = minimize(
            cost,
            x0,
            method="Nelder-Mead",
            callback=stop,
            options={
                "initial_simplex": simplex,
                "xatol": end_criteria.accuracy,
                "fatol": end_criteria.accuracy,
                "maxfev": end_criteria.max_evaluations,
                "maxiter": end_criteria.max_evaluations,
            },
        )
        return OptimizationResult(
            x=np.asarray(result.x),
            cost=float(result.fun),
            iterations=int(result.get("nit", stop.iterations)),
            evaluations=int(result.nfev),
            converged=bool(result.success) or stop.stationary >= stop.max_stationary,
            message=str(result.message),
        )


class LevenbergMarquardt(OptimizationMethod):
    """Levenberg-Marquardt on the residual vector."""

    name = "LevenbergMarquardt"

    def minimize(self, residuals, x0, end_criteria):
        x0 = np.asarray(x0, dtype=np.float64)
        n_res = len(residuals(x0))
        if n_res < len(x0):
            raise ConfigurationError(
                f"Levenberg-Marquardt needs at least as many residuals ({n_res}) "
                f"as parameters ({len(x0)})"
            )
        tol = max(end_criteria.accuracy, np.finfo(float).eps)
        result = least_squares(
            residuals,
            x0,
            method="lm",
            xtol=tol,
            ftol=tol,
            gtol=tol,
            max_nfev=end_criteria.max_evaluations,
        )
        return OptimizationResult(
            x=np.asarray(result.x),
            cost=float(2.0 * result.cost),
            iterations=int(result.nfev),
            evaluations=int(result.nfev),
            converged=bool(result.success),
            message=str(result.message),
        )


class BFGS(OptimizationMethod):
    """Quasi-Newton BFGS on the summed squared residuals."""

    name = "BFGS"

    def minimize(self, residuals, x0, end_criteria):
        x0 = np.asarray(x0, dtype=np.float64)
        cost = _sum_of_squares(residuals)
        stop = _StationaryStop(
            cost, end_criteria.max_stationary_state_iterations, end_criteria.accuracy
        )
        result = minimize(
            cost,
            x0,
            method="BFGS",
            callback=stop,
            options={"gtol": end_criteria.accuracy, "maxiter": end_criteria.max_evaluations},
        )
        return OptimizationResult(
            x=np.asarray(result.x),
            cost=float(result.fun),
            iterations=int(result.get("nit", stop.iterations)),
            evaluations=int(result.nfev),
            converged=bool(result.success) or stop.stationary >= stop.max_stationary,
            message=str(result.message),
        )


def create_optimizer(
    method: Union[str, OptimizationMethod, None],
    simplex_lambda: Optional[float] = None
) -> OptimizationMethod:
    """
    Resolve an optimiser from an instance or identifier.

    Args:
        method: OptimizationMethod, or one of "Simplex", "LevenbergMarquardt", "BFGS"
        simplex_lambda: Initial simplex size for "Simplex"

    Returns:
        OptimizationMethod instance
    """
    if isinstance(method, OptimizationMethod):
        return method
    key = (method or "Simplex").replace("_", "").replace("-", "").replace(" ", "").lower()
    if key in ("simplex", "neldermead"):
        return Simplex(simplex_lambda if simplex_lambda is not None else 0.5)
    if key in ("levenbergmarquardt", "lm"):
        return LevenbergMarquardt()
    if key == "bfgs":
        return BFGS()
    raise ConfigurationError(f"Unknown optimization method: {method}")


__all__ = [
    "EndCriteria",
    "OptimizationResult",
    "OptimizationMethod",
    "Simplex",
    "LevenbergMarquardt",
    "BFGS",
    "create_optimizer",
]
