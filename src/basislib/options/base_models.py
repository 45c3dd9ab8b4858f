"""
Option pricing formulae on a forward.

Implements:
- Bachelier (normal) model
- Black'76 model with an optional displacement (shifted lognormal)
- Implied volatility inversion for both

Prices are undiscounted unless a discount factor or annuity is passed as
`df`. These formulae convert volatilities between conventions in the
tenor volatility transforms.
"""

from typing import Callable

import numpy as np
from scipy.optimize import brentq
from scipy.stats import norm

from ..exceptions import ConvergenceError, DomainError


# Standard normal CDF and PDF
N = norm.cdf
n = norm.pdf


def bachelier_call(
    F: float,
    K: float,
    T: float,
    sigma_n: float,
    df: float = 1.0
) -> float:
    """
    Bachelier (normal) model call price.

    Assumes dF = sigma_n * dW.

    Args:
        F: Forward rate
        K: Strike
        T: Time to expiry (years)
        sigma_n: Normal volatility
        df: Discount factor or annuity

    Returns:
        Call price
    """
    if T <= 0 or sigma_n <= 0:
        return max(F - K, 0.0) * df

    std = sigma_n * np.sqrt(T)
    d = (F - K) / std
    return float(df * ((F - K) * N(d) + std * n(d)))


def bachelier_put(
    F: float,
    K: float,
    T: float,
    sigma_n: float,
    df: float = 1.0
) -> float:
    """Bachelier (normal) model put price."""
    if T <= 0 or sigma_n <= 0:
        return max(K - F, 0.0) * df

    std = sigma_n * np.sqrt(T)
    d = (F - K) / std
    return float(df * ((K - F) * N(-d) + std * n(d)))


def _shifted(F: float, K: float, shift: float):
    F_shifted = F + shift
    K_shifted = K + shift
    if F_shifted <= 0 or K_shifted <= 0:
        raise DomainError(
            f"Shifted forward ({F_shifted}) and strike ({K_shifted}) must be positive for Black model"
        )
    return F_shifted, K_shifted


def black76_call(
    F: float,
    K: float,
    T: float,
    sigma_b: float,
    df: float = 1.0,
    shift: float = 0.0
) -> float:
    """
    Black'76 call price, shifted lognormal if shift > 0.

    Assumes d(F + shift) = sigma_b * (F + shift) * dW.

    Args:
        F: Forward rate
        K: Strike
        T: Time to expiry
        sigma_b: Black volatility
        df: Discount factor or annuity
        shift: Displacement

    Returns:
        Call price

    Raises:
        DomainError: If the shifted forward or strike is not positive
    """
    F, K = _shifted(F, K, shift)
    if T <= 0 or sigma_b <= 0:
        return max(F - K, 0.0) * df

    std = sigma_b * np.sqrt(T)
    d1 = np.log(F / K) / std + 0.5 * std
    d2 = d1 - std
    return float(df * (F * N(d1) - K * N(d2)))


def black76_put(
    F: float,
    K: float,
    T: float,
    sigma_b: float,
    df: float = 1.0,
    shift: float = 0.0
) -> float:
    """Black'76 put price, shifted lognormal if shift > 0."""
    F, K = _shifted(F, K, shift)
    if T <= 0 or sigma_b <= 0:
        return max(K - F, 0.0) * df

    std = sigma_b * np.sqrt(T)
    d1 = np.log(F / K) / std + 0.5 * std
    d2 = d1 - std
    return float(df * (K * N(-d2) - F * N(-d1)))


def _invert(
    pricer: Callable[[float], float],
    price: float,
    upper: float,
    tol: float,
    max_iter: int
) -> float:
    """Find sigma with pricer(sigma) = price by expanding an upper bound then brentq."""
    floor = pricer(0.0)
    if price < floor - tol:
        raise DomainError(f"Price {price} is below intrinsic value {floor}")
    if price <= floor + tol:
        return 0.0

    for _ in range(max_iter):
        if pricer(upper) >= price:
            break
        upper *= 2.0
    else:
        raise ConvergenceError(f"No volatility reproduces price {price}")

    return float(brentq(lambda s: pricer(s) - price, 0.0, upper, xtol=tol, maxiter=max_iter))


def implied_vol_bachelier(
    price: float,
    F: float,
    K: float,
    T: float,
    df: float = 1.0,
    is_call: bool = True,
    tol: float = 1e-12,
    max_iter: int = 100
) -> float:
    """
    Implied normal volatility from an option price.

    Args:
        price: Option price
        F: Forward rate
        K: Strike
        T: Time to expiry
        df: Discount factor or annuity used in the price
        is_call: True for call, False for put

    Returns:
        Implied normal volatility

    Raises:
        DomainError: Expired option or price below intrinsic
    """
    if T <= 0:
        raise DomainError("Cannot compute implied vol for expired option")
    pricer = bachelier_call if is_call else bachelier_put
    return _invert(lambda s: pricer(F, K, T, s, df), price, 0.01, tol, max_iter)


def implied_vol_black(
    price: float,
    F: float,
    K: float,
    T: float,
    df: float = 1.0,
    is_call: bool = True,
    shift: float = 0.0,
    tol: float = 1e-12,
    max_iter: int = 100
) -> float:
    """
    Implied Black (shifted lognormal) volatility from an option price.

    Args:
        price: Option price
        F: Forward rate
        K: Strike
        T: Time to expiry
        df: Discount factor or annuity used in the price
        is_call: True for call, False for put
        shift: Displacement

    Returns:
        Implied Black volatility
    """
    if T <= 0:
        raise DomainError("Cannot compute implied vol for expired option")
    _shifted(F, K, shift)
    pricer = black76_call if is_call else black76_put
    return _invert(lambda s: pricer(F, K, T, s, df, shift), price, 0.2, tol, max_iter)


__all__ = [
    "bachelier_call",
    "bachelier_put",
    "black76_call",
    "black76_put",
    "implied_vol_bachelier",
    "implied_vol_black",
]
