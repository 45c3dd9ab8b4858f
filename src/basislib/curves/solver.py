"""
One-dimensional root finding for curve bootstrapping.

Each pillar is solved in rate space: a bracket [min_rate, max_rate] is
widened around the guess until the helper's quote error changes sign, then
Brent's method (scipy brentq) polishes the root.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Tuple

from scipy.optimize import brentq

from ..exceptions import ConvergenceError

logger = logging.getLogger(__name__)


@dataclass
class BootstrapConfig:
    """
    Configuration for the bootstrap process.

    Attributes:
        accuracy: Node change tolerance between passes; pillar roots are
            polished to a hundredth of it
        max_iterations: Brent iteration budget per pillar
        max_passes: Full passes allowed for non-local interpolators
        min_rate: Lower end of the initial bracket (zero rate space)
        max_rate: Upper end of the initial bracket (zero rate space)
        bracket_expansion: Growth factor applied when the bracket has no sign change
        max_bracket_expansions: Number of times the bracket may grow
    """
    accuracy: float = 1e-12
    max_iterations: int = 100
    max_passes: int = 50
    min_rate: float = -0.02
    max_rate: float = 0.30
    bracket_expansion: float = 1.8
    max_bracket_expansions: int = 12


def find_bracket(
    func: Callable[[float], float],
    guess: float,
    lower: float,
    upper: float,
    expansion: float = 1.8,
    max_iter: int = 12,
    pillar_date: Optional[date] = None
) -> Tuple[float, float]:
    """
    Widen [lower, upper] around guess until func changes sign.

    Raises:
        ConvergenceError: If no sign change is found
    """
    a, b = lower, upper
    f_a = func(a)
    f_b = func(b)
    for _ in range(max_iter):
        if f_a == 0.0:
            return a, a
        if f_b == 0.0:
            return b, b
        if f_a * f_b < 0:
            return a, b
        a = guess - (guess - a) * expansion
        b = guess + (b - guess) * expansion
        f_a = func(a)
        f_b = func(b)
    if f_a * f_b < 0:
        return a, b
    residual = min(abs(f_a), abs(f_b))
    raise ConvergenceError(
        f"Failed to bracket the root in [{a:.6f}, {b:.6f}]",
        pillar_date=pillar_date,
        residual=residual,
    )


def solve_pillar(
    func: Callable[[float], float],
    guess: float,
    config: BootstrapConfig,
    pillar_date: Optional[date] = None
) -> float:
    """
    Solve func(rate) = 0 for one pillar.

    Args:
        func: Quote error as a function of the pillar's zero rate
        guess: Starting rate (usually the previous pillar's solution)
        config: Bracketing and tolerance settings
        pillar_date: Pillar being solved, for error reporting

    Returns:
        Rate at which func vanishes
    """
    lower = min(config.min_rate, guess - 0.01)
    upper = max(config.max_rate, guess + 0.01)
    a, b = find_bracket(
        func, guess, lower, upper,
        config.bracket_expansion, config.max_bracket_expansions, pillar_date
    )
    if a == b:
        return a

    root, result = brentq(
        func, a, b,
        xtol=config.accuracy * 1e-2,
        maxiter=config.max_iterations,
        full_output=True,
        disp=False,
    )
    if not result.converged:
        raise ConvergenceError(
            f"Bootstrap did not converge after {result.iterations} iterations ({result.flag})",
            pillar_date=pillar_date,
            residual=abs(func(root)),
        )
    logger.debug(
        "Pillar %s solved at %.10f in %d iterations", pillar_date, root, result.iterations
    )
    return root


__all__ = ["BootstrapConfig", "find_bracket", "solve_pillar"]
